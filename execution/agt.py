# agt.py - NayaPack(.agt) 아카이브 정보 / 언팩 / 리팩 / 전체 복호화
# 언팩 시 리팩에 필요한 메타데이터 JSON(<아카이브 이름>_entries.json)을 자동으로 출력함.

import sys
import os
import time
import logging
import argparse

from execution.logconfig import setup_logging
from gameres.gameres import FormatCatalog, InvalidFormatException, DecodeError
from gameres.utility import EntryMetadataManager
from naya.agtunpack import AgtOpener, open_archive
from naya.agtrepack import AgtBuilder
from naya.cipher import apply_keystream
from naya.nayakeys import load_key, KnownKeys

FormatCatalog.add_format(AgtOpener())


def default_meta_path(archive_path: str) -> str:
    return os.path.splitext(archive_path)[0] + "_entries.json"


# 로컬 경로로 옮길 수 없는 엔트리(빈 경로 등)는 null로 기록
def meta_local_path(entry):
    try:
        return entry.local_path().replace(os.sep, "/")
    except DecodeError:
        return None


def add_key_options(parser):
    parser.add_argument("--key", dest="key_name", choices=sorted(KnownKeys), help="KnownKeys 이름")
    parser.add_argument("--key-file", help="키 바이트가 들어있는 파일")


def build_parser():
    parser = argparse.ArgumentParser(prog="agt", description="NayaPack (.agt) archive tool")
    parser.add_argument("-v", "--verbose", action="store_true", help="콘솔에 디버그 로그 출력")
    parser.add_argument("--log-file", default="debug_log.txt", help="로그 파일 경로")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("info", help="display info about archive contents")
    p.add_argument("input_path")
    p.add_argument("-l", "--list", action="store_true", help="엔트리 목록 출력")
    add_key_options(p)

    p = sub.add_parser("unpack", help="extract every entry and write the entry metadata json")
    p.add_argument("input_path")
    p.add_argument("output_dir")
    p.add_argument("--meta", help="메타데이터 JSON 경로 (기본: <input>_entries.json)")
    add_key_options(p)

    p = sub.add_parser("pack", help="build an archive from a directory")
    p.add_argument("input_dir")
    p.add_argument("output_path")
    p.add_argument("--meta", help="언팩 시 생성된 메타데이터 JSON (원래 아카이브 경로 복원용)")
    add_key_options(p)

    p = sub.add_parser("decipher", help="write a copy of the archive with the keystream removed")
    p.add_argument("input_path")
    p.add_argument("output_path", nargs="?")
    add_key_options(p)

    return parser


def cmd_info(opts) -> int:
    key = load_key(opts.key_name, opts.key_file)
    with FormatCatalog.open_archive(opts.input_path, AgtOpener, key=key) as arc:
        print(f"Key: {arc.key_name or '(사용자 지정)'}")
        print(f"Version: {arc.header.version[0]}.{arc.header.version[1]}")
        print(f"File count: {len(arc)}")
        if opts.list:
            for path, size in arc.list():
                print(f"{size:>10}  {path}")
    return 0


def cmd_unpack(opts) -> int:
    key = load_key(opts.key_name, opts.key_file)
    meta_path = opts.meta or default_meta_path(opts.input_path)

    start = time.time()
    with open_archive(opts.input_path, key) as arc:
        extracted, failed = arc.extract_all(opts.output_dir, progress=True)
        meta = {
            "key": arc.key_name,
            "version": list(arc.header.version),
            "entries": [
                {
                    "path": entry.path,
                    "local_path": meta_local_path(entry),
                    "decompressed_length": entry.decompressed_length,
                    "chunk_count": entry.chunk_count,
                }
                for entry in arc.entries
            ],
            "failed": [{"path": path, "error": message} for path, message in failed],
        }

    EntryMetadataManager(meta_path).save_metadata(meta)
    elapsed = time.time() - start

    print(f"[완료] 추출: {len(extracted)}개, 실패: {len(failed)}개 ({elapsed:.2f}초)")
    print(f"[완료] 메타데이터: {meta_path}")
    for path, message in failed:
        print(f"  ❌ {path}: {message}")
    return 0


def cmd_pack(opts) -> int:
    if not os.path.isdir(opts.input_dir):
        print(f"[오류] 폴더가 존재하지 않습니다: {opts.input_dir}")
        return 1

    names = None
    key_name = opts.key_name
    if opts.meta:
        meta = EntryMetadataManager(opts.meta).load_metadata()
        names = {item["local_path"]: item["path"] for item in meta.get("entries", []) if item.get("local_path")}
        key_name = key_name or meta.get("key")
        logging.debug(f"[pack] 메타데이터에서 경로 {len(names)}개 복원")

    key = load_key(key_name, opts.key_file)
    if key is None:
        key = KnownKeys["spooky"]
        logging.info("[pack] 키 미지정 → 기본 키(spooky) 사용")

    builder = AgtBuilder()
    builder.add_dir(opts.input_dir, names)

    start = time.time()
    entries = builder.write(opts.output_path, key, progress=True)
    print(f"[완료] 리팩 성공 → {opts.output_path} (엔트리 {len(entries)}개, {time.time() - start:.2f}초)")
    return 0


# 헤더를 제외한 전체에서 키스트림을 제거한 사본을 만듦 (분석용)
def cmd_decipher(opts) -> int:
    key = load_key(opts.key_name, opts.key_file)
    output_path = opts.output_path or os.path.splitext(opts.input_path)[0] + "_plain.agt"

    # 키 확인은 디렉토리를 실제로 풀어서 판단
    with open_archive(opts.input_path, key) as arc:
        key = arc.key

    block_size = 0x100000
    with open(opts.input_path, "rb") as src, open(output_path, "wb") as out:
        offset = 0
        while True:
            block = src.read(block_size)
            if not block:
                break
            out.write(apply_keystream(block, key, offset))
            offset += len(block)

    print(f"[완료] 복호화된 파일: {output_path}")
    return 0


COMMANDS = {
    "info": cmd_info,
    "unpack": cmd_unpack,
    "pack": cmd_pack,
    "decipher": cmd_decipher,
}


def main(args=None) -> int:
    if args is None:
        args = sys.argv[1:]

    opts = build_parser().parse_args(args)
    setup_logging(opts.verbose, opts.log_file)
    logging.info(f"[agt] {opts.command} 실행: {args}")

    try:
        return COMMANDS[opts.command](opts)
    except InvalidFormatException as e:
        logging.error(f"[agt] 아카이브 처리 실패: {e}")
        print(f"[오류] {e}")
        return 1
    except (OSError, ValueError) as e:
        logging.error(f"[agt] 입력 오류: {e}")
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
