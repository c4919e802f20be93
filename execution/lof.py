# lof.py - 모델 테이블(.lof) 정보 / 언팩 / 리팩
# 모델 파일은 file_name 경로 그대로 출력 폴더 아래에 저장됨.

import sys
import os
import logging
import argparse

from execution.logconfig import setup_logging
from gameres.gameres import FormatCatalog, InvalidFormatException
from gameres.utility import printable
from naya import modeltable
from naya.modeltable import ModelTableOpener

FormatCatalog.add_format(ModelTableOpener())


def build_parser():
    parser = argparse.ArgumentParser(prog="lof", description="model table (.lof) tool")
    parser.add_argument("-v", "--verbose", action="store_true", help="콘솔에 디버그 로그 출력")
    parser.add_argument("--log-file", default="debug_log.txt", help="로그 파일 경로")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("info", help="display info about table contents")
    p.add_argument("input_path")
    p.add_argument("-l", "--list", action="store_true", help="모델 목록 출력")

    p = sub.add_parser("unpack", help="unpack model table nifs and create manifest")
    p.add_argument("input_path")
    p.add_argument("output_dir")

    p = sub.add_parser("pack", help="pack model table nifs using manifest")
    p.add_argument("manifest_path")
    p.add_argument("output_path")

    return parser


def cmd_info(opts) -> int:
    with FormatCatalog.open_archive(opts.input_path, ModelTableOpener) as arc:
        table = arc.table

    print(f"Model count: {table.model_count}")
    print(f"Max file size: {table.max_file_size}")
    if opts.list:
        for model in table.models:
            print(f"{model.index:>5}  {model.file_length:>10}  {printable(model.name)}  ({printable(model.file_name)})")
    return 0


def cmd_unpack(opts) -> int:
    with open(opts.input_path, "rb") as f:
        table = modeltable.unpack(f, opts.output_dir, progress=True)
    print(f"[완료] 모델 {table.model_count}개 → {opts.output_dir}")
    return 0


def cmd_pack(opts) -> int:
    if not os.path.isfile(opts.manifest_path):
        print(f"[오류] manifest 파일이 존재하지 않습니다: {opts.manifest_path}")
        return 1

    with open(opts.output_path, "wb") as out:
        table = modeltable.pack(opts.manifest_path, out)
    print(f"[완료] 리팩 성공 → {opts.output_path} (모델 {table.model_count}개)")
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
    logging.info(f"[lof] {opts.command} 실행: {args}")

    try:
        return COMMANDS[opts.command](opts)
    except InvalidFormatException as e:
        logging.error(f"[lof] 테이블 처리 실패: {e}")
        print(f"[오류] {e}")
        return 1
    except (OSError, ValueError) as e:
        logging.error(f"[lof] 입력 오류: {e}")
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
