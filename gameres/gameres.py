# gameres.py - format registry, archive format base and error types for the Naya toolkit
# Structure ported from GARbro's GameRes.cs / MultiDict.cs (GARbro: https://github.com/morkt/GARbro)

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

# GameRes.cs / MultiDict.cs 중 나야 포맷(.agt/.lf/.lof)에 필요한 부분만 남겨 정리함.

import os
import logging
from typing import Callable, Optional
from collections import defaultdict
from enum import Enum


# ============================
# 예외 계층
# ============================
class InvalidFormatException(Exception):
    pass


# 아카이브 단위 실패 (시그니처/버전 불일치, 헤더·엔트리 잘림, 키 불일치). 복구 불가.
class FormatError(InvalidFormatException):
    pass


# 엔트리 단위 실패 (청크 압축 해제 실패, 크기 불일치, 경로 인코딩 오류). 호출측에서 스킵 가능.
class DecodeError(InvalidFormatException):
    pass


# 엔트리별 진행 여부. 콜백이 돌려줌.
class ArchiveOperation(Enum):
    CONTINUE = "continue"
    SKIP = "skip"
    ABORT = "abort"


# (index, entry, message) -> ArchiveOperation
EntryCallback = Callable[[int, object, str], ArchiveOperation]


class ArchiveFormat:
    """Base class for the container openers registered in FormatCatalog.

    Subclasses fill in ``name``, ``extensions`` (without the dot) and
    ``signatures`` (leading magic bytes, at least 4) and implement ``try_open``.
    """

    def __init__(self):
        self.name = type(self).__name__
        self.extensions = []
        self.signatures = []

    def __repr__(self):
        return f"<{type(self).__name__} {self.name!r}>"

    # 열 수 없으면 None 반환 (예외 대신)
    def try_open(self, view, **options):
        raise NotImplementedError(f"{type(self).__name__}.try_open")

    @staticmethod
    def is_sane_count(count: int, max_reasonable: int = 0x10000) -> bool:
        sane = 0 <= count <= max_reasonable
        if not sane:
            logging.warning(f"[ArchiveFormat] 항목 수 비정상: {count} (허용 범위 0..{max_reasonable})")
        return sane

    def extract(self, arc, entry, out_dir: str, callback: Optional[EntryCallback] = None, index: int = 0) -> bool:
        """Write one entry under ``out_dir``; returns False when the callback skips it."""
        if callback is not None:
            decision = callback(index, entry, f"[{entry.name}]")
            if decision == ArchiveOperation.SKIP:
                logging.info(f"[extract] 스킵: {entry.name}")
                return False
            if decision == ArchiveOperation.ABORT:
                logging.warning(f"[extract] {entry.name}에서 중단 요청")
                raise InterruptedError(f"extraction aborted at {entry.name}")

        # 디코딩이 끝난 뒤에 파일 생성 (실패 시 빈 파일을 남기지 않음)
        data = arc.open_entry(entry).getvalue()
        with self.create_file(os.path.join(out_dir, entry.local_path())) as f:
            f.write(data)
        logging.debug(f"[extract] {entry.name} ({len(data)} bytes)")
        return True

    @staticmethod
    def create_file(path: str):
        dir_path = os.path.dirname(path)
        if dir_path:
            os.makedirs(dir_path, exist_ok=True)
        return open(path, "wb")


# MultiDict.cs 대응. 키 하나에 값 여러 개 (중복 제외, 등록 순서 유지)
class MultiValueDict:
    def __init__(self):
        self._store = defaultdict(list)

    def add(self, key, value):
        values = self._store[key]
        if value not in values:
            values.append(value)

    def get(self, key, return_empty_list=False):
        if key in self._store:
            return self._store[key]
        return [] if return_empty_list else None

    def __contains__(self, key):
        return key in self._store

    def clear(self):
        self._store.clear()


# 포맷 레지스트리. 시그니처(선두 4바이트)와 확장자로 오프너를 찾음.
class FormatCatalog:
    formats = []
    _by_extension = MultiValueDict()
    _by_signature = MultiValueDict()

    @classmethod
    def add_format(cls, fmt: ArchiveFormat):
        if fmt in cls.formats:
            return
        cls.formats.append(fmt)
        for ext in fmt.extensions:
            cls._by_extension.add(ext.lower(), fmt)
        for sig in fmt.signatures:
            if len(sig) >= 4:
                cls._by_signature.add(bytes(sig[:4]), fmt)
        logging.debug(f"[FormatCatalog] 등록: {fmt.name} (ext={fmt.extensions}, sig={fmt.signatures})")

    @classmethod
    def lookup_signature(cls, sig: bytes) -> Optional[ArchiveFormat]:
        if not isinstance(sig, (bytes, bytearray)) or len(sig) < 4:
            return None
        found = cls._by_signature.get(bytes(sig[:4]), return_empty_list=True)
        return found[0] if found else None

    @classmethod
    def from_extension(cls, ext: str) -> Optional[ArchiveFormat]:
        found = cls._by_extension.get(ext.lower().lstrip("."), return_empty_list=True)
        return found[0] if found else None

    @classmethod
    def detect_format(cls, filename: str) -> Optional[ArchiveFormat]:
        """Pick an opener by leading magic, falling back to the file extension."""
        with open(filename, "rb") as f:
            fmt = cls.lookup_signature(f.read(4))
        if fmt is None:
            fmt = cls.from_extension(os.path.splitext(filename)[1])
        logging.debug(f"[FormatCatalog] {os.path.basename(filename)} → {fmt.name if fmt else '감지 실패'}")
        return fmt

    @classmethod
    def open_archive(cls, filename: str, expected: Optional[type] = None, **options):
        """Detect and open ``filename``; ``expected`` restricts the result to one opener type."""
        from formats.fileview import FileView

        fmt = cls.detect_format(filename)
        if fmt is None:
            raise FormatError(f"unrecognized file format: {filename}")
        if expected is not None and not isinstance(fmt, expected):
            raise FormatError(f"{filename} was detected as {fmt.name}, expected {expected.__name__}")

        view = FileView(filename)
        arc = fmt.try_open(view, **options)
        if arc is None:
            view.close()
            raise FormatError(f"{filename} looks like {fmt.name} but could not be opened")

        logging.info(f"[FormatCatalog] {fmt.name} 열림: {filename} (항목 {len(arc)}개)")
        return arc
