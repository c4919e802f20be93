# terrain.py - terrain block table (.lf)
#
# Layout (little-endian, not enciphered, not compressed):
#   magic "LF\0\0kjc\0ag\0\0", u32 version date, u32 unknown, u32 block count,
#   13 x u32 unknown, u32 size_x, u32 size_y, u32 size_idx, 5 x f32 unknown,
#   block count x (u32 index, u32 position_x, u32 position_y,
#                  u32 file_offset, u32 file_length, u32 unknown)
# The block geometry blobs (<index>.nif) follow the table and are referenced
# by (file_offset, file_length).
#
# Licensed under the MIT License.

import os
import struct
import logging

from tqdm import tqdm

from formats.arcfile import ArcFile, Entry
from formats.fileview import FileView
from gameres.gameres import ArchiveFormat, FormatError, InvalidFormatException
from gameres.utility import read_exact, read_struct, EntryMetadataManager
from naya.entryoffsets import EntryOffsets, write_blobs

TERRAIN_MAGIC = b"LF\x00\x00kjc\x00ag\x00\x00"
TERRAIN_VERSIONS = (20061220, 20090406)
MANIFEST_NAME = "manifest.json"

_BLOCK_FORMAT = "<IIIIII"


class TerrainBlock:
    def __init__(self, index: int, position_x: int = 0, position_y: int = 0,
                 file_offset: int = 0, file_length: int = 0, unknown: int = 0):
        self.index = index
        self.position_x = position_x
        self.position_y = position_y
        self.file_offset = file_offset
        self.file_length = file_length
        self.unknown = unknown

    def __eq__(self, other):
        if not isinstance(other, TerrainBlock):
            return NotImplemented
        return vars(self) == vars(other)

    def __repr__(self):
        return (f"TerrainBlock(index={self.index}, x={self.position_x}, y={self.position_y}, "
                f"file_offset=0x{self.file_offset:X}, file_length={self.file_length})")

    @property
    def blob_name(self) -> str:
        return f"{self.index}.nif"

    @classmethod
    def parse(cls, stream) -> "TerrainBlock":
        return cls(*read_struct(stream, _BLOCK_FORMAT))

    def write(self, stream, entry_offsets: EntryOffsets = None):
        stream.write(struct.pack("<III", self.index, self.position_x, self.position_y))
        if entry_offsets is not None:
            entry_offsets.record(stream, (self.file_offset, self.file_length), "<II")
        else:
            stream.write(struct.pack("<II", self.file_offset, self.file_length))
        stream.write(struct.pack("<I", self.unknown))

    # 매니페스트에는 offset/length를 남기지 않음 (pack 시 다시 계산)
    def to_manifest(self) -> dict:
        return {
            "index": self.index,
            "position_x": self.position_x,
            "position_y": self.position_y,
            "unknown": self.unknown,
        }

    @classmethod
    def from_manifest(cls, meta: dict) -> "TerrainBlock":
        return cls(meta["index"], meta["position_x"], meta["position_y"], unknown=meta.get("unknown", 0))


class TerrainTable:
    def __init__(self, version_date: int = TERRAIN_VERSIONS[-1], unknown2: int = 0, unknown3=None,
                 size_x: int = 0, size_y: int = 0, size_idx: int = 0, unknown4=None, blocks=None):
        self.version_date = version_date
        self.unknown2 = unknown2
        self.unknown3 = list(unknown3) if unknown3 is not None else [0] * 13
        self.size_x = size_x
        self.size_y = size_y
        self.size_idx = size_idx
        self.unknown4 = list(unknown4) if unknown4 is not None else [0.0] * 5
        self.blocks = list(blocks) if blocks is not None else []

    @property
    def block_count(self) -> int:
        return len(self.blocks)

    def __eq__(self, other):
        if not isinstance(other, TerrainTable):
            return NotImplemented
        return vars(self) == vars(other)

    def __repr__(self):
        return (f"TerrainTable(version={self.version_date}, size={self.size_x}x{self.size_y}, "
                f"blocks={self.block_count})")

    @classmethod
    def read_without_data(cls, stream) -> "TerrainTable":
        """Parse the table at the current position; block blobs are left in place."""
        try:
            magic = read_exact(stream, len(TERRAIN_MAGIC))
            if magic != TERRAIN_MAGIC:
                raise FormatError(f"bad terrain table magic: {magic!r}")

            version_date, unknown2, block_count = read_struct(stream, "<III")
            if version_date not in TERRAIN_VERSIONS:
                raise FormatError(f"unexpected terrain table version {version_date}")

            unknown3 = list(read_struct(stream, "<13I"))
            size_x, size_y, size_idx = read_struct(stream, "<III")
            unknown4 = list(read_struct(stream, "<5f"))
            blocks = [TerrainBlock.parse(stream) for _ in range(block_count)]
        except EOFError as e:
            raise FormatError(f"truncated terrain table: {e}") from e

        table = cls(version_date, unknown2, unknown3, size_x, size_y, size_idx, unknown4, blocks)
        logging.debug(f"[terrain] 테이블 읽음: {table}")
        return table

    def write_without_data(self, stream, entry_offsets: EntryOffsets):
        """Write the table with placeholder (offset, length) pairs recorded in ``entry_offsets``."""
        stream.write(TERRAIN_MAGIC)
        stream.write(struct.pack("<III", self.version_date, self.unknown2, self.block_count))
        stream.write(struct.pack("<13I", *self.unknown3))
        stream.write(struct.pack("<III", self.size_x, self.size_y, self.size_idx))
        stream.write(struct.pack("<5f", *self.unknown4))
        for block in self.blocks:
            block.write(stream, entry_offsets)

    def to_manifest(self) -> dict:
        return {
            "version_date": self.version_date,
            "unknown2": self.unknown2,
            "unknown3": self.unknown3,
            "size_x": self.size_x,
            "size_y": self.size_y,
            "size_idx": self.size_idx,
            "unknown4": self.unknown4,
            "blocks": [block.to_manifest() for block in self.blocks],
        }

    @classmethod
    def from_manifest(cls, meta: dict) -> "TerrainTable":
        try:
            table = cls(
                meta["version_date"], meta.get("unknown2", 0), meta.get("unknown3"),
                meta["size_x"], meta["size_y"], meta.get("size_idx", 0), meta.get("unknown4"),
                [TerrainBlock.from_manifest(b) for b in meta["blocks"]],
            )
        except (KeyError, TypeError) as e:
            raise FormatError(f"invalid terrain manifest: missing or malformed field {e}") from e

        # 헤더 고정 필드 개수 (u32 x13, f32 x5)
        if len(table.unknown3) != 13 or len(table.unknown4) != 5:
            raise FormatError(
                f"invalid terrain manifest: unknown3 needs 13 values and unknown4 needs 5 "
                f"(got {len(table.unknown3)} and {len(table.unknown4)})"
            )
        return table


def read_blob(stream, offset: int, length: int, name: str) -> bytes:
    stream.seek(offset)
    try:
        return read_exact(stream, length)
    except EOFError as e:
        raise FormatError(f"{name}: blob @0x{offset:X}+{length} extends past end of file") from e


def unpack(stream, out_dir: str, progress: bool = False) -> TerrainTable:
    """Write ``manifest.json`` and one ``<index>.nif`` per block into ``out_dir``."""
    table = TerrainTable.read_without_data(stream)
    os.makedirs(out_dir, exist_ok=True)
    EntryMetadataManager(os.path.join(out_dir, MANIFEST_NAME)).save_metadata(table.to_manifest())

    for block in tqdm(table.blocks, desc="블록 추출중", unit="블록", disable=not progress):
        data = read_blob(stream, block.file_offset, block.file_length, block.blob_name)
        with open(os.path.join(out_dir, block.blob_name), "wb") as f:
            f.write(data)
        logging.debug(f"[terrain] 블록 {block.index} 추출 ({block.file_length} bytes)")

    logging.info(f"[terrain] 언팩 완료: 블록 {table.block_count}개 → {out_dir}")
    return table


def _read_blob_files(paths):
    for path in paths:
        with open(path, "rb") as f:
            yield f.read()


def pack(manifest_path: str, out_stream) -> TerrainTable:
    """Build a terrain table from ``manifest_path`` and the ``<index>.nif`` files beside it."""
    table = TerrainTable.from_manifest(EntryMetadataManager(manifest_path).load_metadata())
    base_dir = os.path.dirname(manifest_path)

    entry_offsets = EntryOffsets()
    table.write_without_data(out_stream, entry_offsets)

    paths = [os.path.join(base_dir, block.blob_name) for block in table.blocks]
    placed = write_blobs(out_stream, entry_offsets, _read_blob_files(paths))
    for block, (file_offset, file_length) in zip(table.blocks, placed):
        block.file_offset = file_offset
        block.file_length = file_length

    out_stream.flush()
    logging.info(f"[terrain] 팩 완료: 블록 {table.block_count}개")
    return table


class TerrainArchive(ArcFile):
    def __init__(self, view, format, table: TerrainTable):
        entries = [Entry(block.blob_name, block.file_offset, block.file_length) for block in table.blocks]
        super().__init__(view, format, entries)
        self.table = table


class TerrainOpener(ArchiveFormat):
    def __init__(self):
        super().__init__()
        self.name = "Terrain block table"
        self.extensions = ["lf"]
        self.signatures = [TERRAIN_MAGIC[:4]]

    def try_open(self, view: FileView, **options):
        try:
            view.stream.seek(0)
            table = TerrainTable.read_without_data(view.stream)
        except InvalidFormatException as e:
            logging.warning(f"[TerrainOpener] 열기 실패: {view.name}: {e}")
            return None
        return TerrainArchive(view, self, table)


__all__ = ["TERRAIN_MAGIC", "TERRAIN_VERSIONS", "TerrainBlock", "TerrainTable", "TerrainArchive",
           "TerrainOpener", "unpack", "pack", "read_blob"]
