# lf.py - 지형 블록 테이블(.lf) 정보 / 언팩 / 리팩
# 언팩하면 출력 폴더에 manifest.json과 <index>.nif 블록 파일이 생기고, 리팩은 그 manifest.json을 입력으로 받음.

import sys
import os
import logging
import argparse

from execution.logconfig import setup_logging
from gameres.gameres import FormatCatalog, InvalidFormatException
from naya import terrain
from naya.terrain import TerrainOpener

FormatCatalog.add_format(TerrainOpener())


def build_parser():
    parser = argparse.ArgumentParser(prog="lf", description="terrain block table (.lf) tool")
    parser.add_argument("-v", "--verbose", action="store_true", help="콘솔에 디버그 로그 출력")
    parser.add_argument("--log-file", default="debug_log.txt", help="로그 파일 경로")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("info", help="display info about table contents")
    p.add_argument("input_path")
    p.add_argument("-b", "--blocks", action="store_true", help="블록 수만 출력")

    p = sub.add_parser("unpack", help="unpack terrain block nifs and create manifest")
    p.add_argument("input_path")
    p.add_argument("output_dir")

    p = sub.add_parser("pack", help="pack terrain block nifs using manifest")
    p.add_argument("manifest_path")
    p.add_argument("output_path")

    return parser


def cmd_info(opts) -> int:
    with FormatCatalog.open_archive(opts.input_path, TerrainOpener) as arc:
        table = arc.table

    if opts.blocks:
        print(table.block_count)
        return 0

    print(f"Version: {table.version_date}")
    print(f"Dimensions: {table.size_x}x{table.size_y}")
    print(f"Block count: {table.block_count}")
    return 0


def cmd_unpack(opts) -> int:
    with open(opts.input_path, "rb") as f:
        table = terrain.unpack(f, opts.output_dir, progress=True)
    print(f"[완료] 블록 {table.block_count}개 → {opts.output_dir}")
    return 0


def cmd_pack(opts) -> int:
    if not os.path.isfile(opts.manifest_path):
        print(f"[오류] manifest 파일이 존재하지 않습니다: {opts.manifest_path}")
        return 1

    with open(opts.output_path, "wb") as out:
        table = terrain.pack(opts.manifest_path, out)
    print(f"[완료] 리팩 성공 → {opts.output_path} (블록 {table.block_count}개)")
    return 0


COMMANDS = {
    "info": cmd_info,
    "unpack": cmd_unpack,
    "pack": cmd_pack,
}


def main(args=None) -> int:
    if args is None:
        args = sys.argv[1:]

    opts = build_parser().parse_args(args)
    setup_logging(opts.verbose, opts.log_file)
    logging.info(f"[lf] {opts.command} 실행: {args}")

    try:
        return COMMANDS[opts.command](opts)
    except InvalidFormatException as e:
        logging.error(f"[lf] 테이블 처리 실패: {e}")
        print(f"[오류] {e}")
        return 1
    except (OSError, ValueError) as e:
        logging.error(f"[lf] 입력 오류: {e}")
        print(f"[오류] {e}")
        return 1
    except KeyboardInterrupt:
        print("\n[취소] 사용자에 의해 중단되었습니다.")
        logging.warning("[main] 사용자 중단 (Ctrl+C)")
        return 130
    finally:
        logging.shutdown()


if __name__ == "__main__":
    sys.exit(main())
