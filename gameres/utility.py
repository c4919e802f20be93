# utility.py - binary, string and metadata helpers shared by the Naya formats
# Layout follows GARbro's Utility.cs (GARbro: https://github.com/morkt/GARbro)

# MIT License (for GARbro ported structure)
# Copyright (c) morkt

# Permission is hereby granted, free of charge, to any person obtaining a copy
# of this software and associated documentation files (the "Software"), to
# deal in the Software without restriction, including without limitation the
# rights to use, copy, modify, merge, publish, distribute, sublicense, and/or
# sell copies of the Software, and to permit persons to whom the Software is
# furnished to do so, subject to the following conditions:

# The above copyright notice and this permission notice shall be included in
# all copies or substantial portions of the Software.

# THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
# IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
# FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE
# AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER
# LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING
# FROM, OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS
# IN THE SOFTWARE.

# Python에 맞춰 전용 헬퍼 함수들도 추가함.

import os
import json
import struct
import logging

# ============================
# Encodings
# ============================
UTF8 = 'utf-8'
EUC_KR = 'cp949'  # 게임 테이블의 문자열 (EUC-KR 상위 호환)

# ============================
# Binary helpers
# ============================
# 스트림에서 정확히 size 바이트를 읽음. 모자라면 EOFError.
def read_exact(stream, size: int) -> bytes:
    data = stream.read(size)
    if data is None or len(data) != size:
        got = 0 if data is None else len(data)
        raise EOFError(f"expected {size} bytes, got {got}")
    return data


def read_struct(stream, fmt: str):
    return struct.unpack(fmt, read_exact(stream, struct.calcsize(fmt)))

# ============================
# 문자열 코덱
# ============================

# u32 길이 + 바이트 (널 종료 없음). 디코딩은 호출측 책임.
def read_int_prefixed_bytes(stream) -> bytes:
    (count,) = read_struct(stream, '<I')
    return read_exact(stream, count)


def write_int_prefixed_string(stream, value: str, encoding=UTF8) -> int:
    raw = value.encode(encoding)
    return stream.write(struct.pack('<I', len(raw)) + raw)


# 널 종료 문자열. 끝까지 널이 없으면 EOFError.
# 디코딩할 수 없는 바이트는 surrogateescape로 보존되어 to_cstring에서 그대로 복원됨.
def read_cstring(stream, encoding=EUC_KR) -> str:
    result = bytearray()
    while True:
        b = stream.read(1)
        if not b:
            raise EOFError("unterminated string")
        if b == b'\x00':
            break
        result += b
    return result.decode(encoding, errors="surrogateescape")


def to_cstring(value: str, encoding=EUC_KR) -> bytes:
    return value.encode(encoding, errors="surrogateescape") + b"\x00"


# 콘솔 출력용. 보존된 원시 바이트는 \xNN 형태로 표시
def printable(value: str) -> str:
    return value.encode(UTF8, errors="surrogateescape").decode(UTF8, errors="backslashreplace")


# ============================
# 경로 유틸
# ============================

# 아카이브 경로(\ 구분)를 로컬 상대 경로로
def archive_to_local(path: str) -> str:
    parts = [p for p in path.replace("\\", "/").split("/") if p not in ("", ".", "..")]
    if not parts:
        raise ValueError(f"empty archive path: {path!r}")
    return os.path.join(*parts)


# 로컬 상대 경로를 아카이브 경로(\ 구분)로
def local_to_archive(path: str) -> str:
    return path.replace(os.sep, "\\").replace("/", "\\")


# 디렉토리 아래 모든 파일을 정렬된 순서로 재귀 탐색
def visit_files(root_dir: str):
    for name in sorted(os.listdir(root_dir)):
        full_path = os.path.join(root_dir, name)
        if os.path.isdir(full_path):
            yield from visit_files(full_path)
        elif os.path.isfile(full_path):
            yield full_path

# ============================
# 메타데이터 저장 및 출력. 리팩 시 중요함!
# ============================
class EntryMetadataManager:
    def __init__(self, json_path: str):
        self.json_path = json_path
        self.meta = None
        if os.path.isfile(self.json_path):
            self.meta = self.load_metadata()

    def load_metadata(self):
        with open(self.json_path, "r", encoding="utf-8") as f:
            return json.load(f)

    def save_metadata(self, meta, output_path=None):
        output_path = output_path or self.json_path
        dir_name = os.path.dirname(output_path)
        if dir_name:
            os.makedirs(dir_name, exist_ok=True)

        # 보존된 원시 바이트(서로게이트)는 \uDCxx JSON 이스케이프로 기록됨
        with open(output_path, "w", encoding="utf-8", errors="backslashreplace") as f:
            json.dump(meta, f, ensure_ascii=False, indent=2)
            f.write("\n")

        self.meta = meta
        logging.info(f"[EntryMetadataManager] 메타데이터 저장 완료 → {output_path}")
