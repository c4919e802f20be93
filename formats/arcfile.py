# arcfile.py - archive container and entry base classes for the Naya formats
# Ported from C# by morkt (GARbro: https://github.com/morkt/GARbro)

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

# GARbro(by. morkt) 1.1.6 ver.을 기준으로 Python으로 포팅했습니다.

import io
import logging
from typing import List, Optional

from gameres.gameres import DecodeError
from gameres.utility import archive_to_local


# 기본 Entry 구조 정의
class Entry:
    def __init__(self, name: str, offset: int, size: int, unpacked_size: Optional[int] = None):
        self.name = name
        self.offset = offset
        self.size = size
        self.unpacked_size = unpacked_size if unpacked_size is not None else size
        self.index = -1  # 디렉토리 내 위치

    # 아카이브 내부 경로(\ 구분)를 로컬 상대 경로로 변환. 빈 경로는 엔트리 단위 실패(DecodeError)
    def local_path(self) -> str:
        try:
            return archive_to_local(self.name)
        except ValueError as e:
            raise DecodeError(f"entry has no usable local path: {e}") from e

    def __repr__(self):
        return f"<{type(self).__name__} name={self.name!r}, offset=0x{self.offset:X}, size={self.size}>"


# ArcFile 컨테이너
# 엔트리 순서는 디렉토리에 기록된 순서를 그대로 유지함.
class ArcFile:
    def __init__(self, view, format, entries: List[Entry]):
        self.view = view
        self.format = format
        self.name = view.name if hasattr(view, 'name') else "unnamed"
        self.entries = list(entries)

        for i, entry in enumerate(self.entries):
            entry.index = i

        logging.debug(f"[ArcFile] '{self.name}' 초기화, 항목 수: {len(self.entries)}")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def __len__(self):
        return len(self.entries)

    def __iter__(self):
        return iter(self.entries)

    #내부 View 리소스를 정리
    def close(self):
        self.view.close()
        logging.debug(f"[ArcFile] '{self.name}' 닫힘")

    # 이름으로 Entry 검색 (없으면 KeyError)
    def find_entry(self, name: str) -> Entry:
        for entry in self.entries:
            if entry.name == name:
                return entry
        raise KeyError(name)

    #항목 데이터를 스트림으로 열기. 기본 구현은 원본 바이트를 그대로 반환.
    def open_entry(self, entry: Entry) -> io.BytesIO:
        if entry.offset + entry.size > self.view.size:
            logging.error(f"[ArcFile] 범위 초과 오류: {entry.name} @0x{entry.offset:X} + {entry.size} > {self.view.size}")
            raise EOFError(f"{entry.name}: entry extends past end of file")

        data = self.view.read_at(entry.offset, entry.size)
        return io.BytesIO(data)

