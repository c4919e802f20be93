# agtindex.py - NayaPack (.agt) header and directory entry codec
#
# Header (32 bytes, little-endian):
#   0x00  8  magic "NayaPack"
#   0x08  4  reserved
#   0x0C  4  version (u16 major, u16 minor)
#   0x10  4  file count
#   0x14 12  reserved
# Directory (from 0x20, file_count entries):
#   u32 data offset, u32 chunk count, u32 decompressed length,
#   u32 path length, path bytes (UTF-8, no terminator)
#
# Licensed under the MIT License.

import struct
import logging

from formats.arcfile import Entry
from gameres.gameres import FormatError, DecodeError
from gameres.utility import read_exact, read_struct, read_int_prefixed_bytes, write_int_prefixed_string, UTF8
from naya.chunks import chunk_count as calc_chunk_count

AGT_MAGIC = b"NayaPack"
HEADER_SIZE = 0x20
DEFAULT_VERSION = (1, 1)
SUPPORTED_VERSIONS = {(1, 1)}


class AgtHeader:
    def __init__(self, file_count: int = 0, version=DEFAULT_VERSION,
                 reserved: bytes = b"\x00" * 4, reserved_tail: bytes = b"\x00" * 12):
        self.file_count = file_count
        self.version = tuple(version)
        # 의미 불명 필드. 해석하지 않고 바이트 그대로 보존
        self.reserved = reserved
        self.reserved_tail = reserved_tail

    def __eq__(self, other):
        if not isinstance(other, AgtHeader):
            return NotImplemented
        return self.to_bytes() == other.to_bytes()

    def __repr__(self):
        return f"AgtHeader(file_count={self.file_count}, version={self.version})"

    @classmethod
    def parse(cls, stream) -> "AgtHeader":
        try:
            raw = read_exact(stream, HEADER_SIZE)
        except EOFError as e:
            raise FormatError(f"truncated header: {e}") from e

        if raw[:8] != AGT_MAGIC:
            raise FormatError(f"bad magic: {raw[:8]!r} (expected {AGT_MAGIC!r})")

        major, minor, file_count = struct.unpack_from("<HHI", raw, 0x0C)
        if (major, minor) not in SUPPORTED_VERSIONS:
            raise FormatError(f"unsupported version {major}.{minor}")

        header = cls(file_count, (major, minor), reserved=raw[0x08:0x0C], reserved_tail=raw[0x14:0x20])
        logging.debug(f"[agtindex] 헤더 읽음: {header}")
        return header

    def to_bytes(self) -> bytes:
        raw = (
            AGT_MAGIC
            + self.reserved
            + struct.pack("<HHI", self.version[0], self.version[1], self.file_count)
            + self.reserved_tail
        )
        assert len(raw) == HEADER_SIZE, f"헤더 길이 불일치: {len(raw)}"
        return raw

    def write(self, stream) -> int:
        return stream.write(self.to_bytes())


# 디렉토리 엔트리. offset = data_offset (청크 길이 테이블의 절대 위치)
class AgtEntry(Entry):
    def __init__(self, path: str, data_offset: int = 0, chunk_count: int = None, decompressed_length: int = 0):
        super().__init__(path, data_offset, decompressed_length, decompressed_length)
        self.chunk_count = calc_chunk_count(decompressed_length) if chunk_count is None else chunk_count

    @property
    def path(self) -> str:
        return self.name

    @property
    def data_offset(self) -> int:
        return self.offset

    @data_offset.setter
    def data_offset(self, value: int):
        self.offset = value

    @property
    def decompressed_length(self) -> int:
        return self.unpacked_size

    def __eq__(self, other):
        if not isinstance(other, AgtEntry):
            return NotImplemented
        return (self.name, self.offset, self.chunk_count, self.unpacked_size) == \
            (other.name, other.offset, other.chunk_count, other.unpacked_size)

    def __repr__(self):
        return (f"AgtEntry(path={self.name!r}, data_offset=0x{self.offset:X}, "
                f"chunk_count={self.chunk_count}, decompressed_length={self.unpacked_size})")

    @classmethod
    def parse(cls, stream) -> "AgtEntry":
        try:
            data_offset, chunks, length = read_struct(stream, "<III")
            raw_path = read_int_prefixed_bytes(stream)
        except EOFError as e:
            raise FormatError(f"truncated directory entry: {e}") from e

        try:
            path = raw_path.decode(UTF8)
        except UnicodeDecodeError as e:
            raise DecodeError(f"invalid entry path encoding: {raw_path[:32]!r}") from e

        return cls(path, data_offset, chunks, length)

    @classmethod
    def parse_entries(cls, stream, count: int):
        return [cls.parse(stream) for _ in range(count)]

    # entry_offsets가 주어지면 data offset 필드 위치를 기록 (백패치용)
    def write(self, stream, entry_offsets=None) -> None:
        if entry_offsets is not None:
            entry_offsets.record(stream, self.offset)
        else:
            stream.write(struct.pack("<I", self.offset))
        stream.write(struct.pack("<II", self.chunk_count, self.unpacked_size))
        write_int_prefixed_string(stream, self.name, UTF8)


__all__ = ["AGT_MAGIC", "HEADER_SIZE", "DEFAULT_VERSION", "SUPPORTED_VERSIONS", "AgtHeader", "AgtEntry"]
