# fileview.py - seekable file views used by the Naya archive readers
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

import os
import logging
from io import BytesIO


#FileView (ArcView에 해당): 아카이브 파일(또는 메모리 버퍼)을 시커블 스트림으로 열어 읽을 수 있도록 처리
class FileView:
    def __init__(self, filepath: str):
        self.filepath = filepath
        self.file = open(filepath, "rb")
        self.name = os.path.basename(filepath)
        self.stream = self.file
        self.size = os.fstat(self.file.fileno()).st_size

        logging.debug(f"[fileview] '{self.name}' 열림 (크기: {self.size} bytes)")

    @classmethod
    def from_bytes(cls, data: bytes, name="<memory>") -> "FileView":
        view = cls.__new__(cls)
        view.filepath = None
        view.file = BytesIO(data)
        view.name = name
        view.stream = view.file
        view.size = len(data)
        logging.debug(f"[fileview] '{name}' 메모리에서 열림 (크기: {view.size} bytes)")
        return view

    def __len__(self):
        return self.size

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def read_at(self, offset: int, size: int) -> bytes:
        if offset < 0 or offset > self.size:
            logging.debug(f"[fileview] read_at 오류 - offset 범위 초과 (offset=0x{offset:X})")
            raise ValueError("Seek offset out of range")

        # 읽기 가능한 최대 바이트 수 계산
        read_size = min(size, self.size - offset)

        self.stream.seek(offset)
        return self.stream.read(read_size)

    def close(self):
        self.file.close()
        logging.debug(f"[fileview] '{self.name}' 닫힘")


__all__ = ["FileView"]
