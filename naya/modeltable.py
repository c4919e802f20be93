# modeltable.py - model table (.lof)
#
# Layout (little-endian, not enciphered, not compressed):
#   magic "LOF\0kjc\0ag\0\0", u32 version date, u32 model count, u32 max file size,
#   model count x (u32 index, u32 unknown1..3, u32 lighting, u32 effect_id,
#                  EUC-KR name\0, EUC-KR file_name\0, f32 animation_duration,
#                  u32 loop, u32 random_offset, u32 file_offset, u32 file_length)
# The model blobs follow the table, referenced by (file_offset, file_length),
# and are unpacked under their file_name.
#
# Licensed under the MIT License.

import os
import struct
import logging

from tqdm import tqdm

from formats.arcfile import ArcFile, Entry
from formats.fileview import FileView
from gameres.gameres import ArchiveFormat, FormatError, InvalidFormatException
from gameres.utility import (
    read_exact, read_struct, read_cstring, to_cstring, archive_to_local, EntryMetadataManager, EUC_KR,
)
from naya.entryoffsets import EntryOffsets, write_blobs
from naya.terrain import read_blob, MANIFEST_NAME

MODEL_TABLE_MAGIC = b"LOF\x00kjc\x00ag\x00\x00"
MODEL_TABLE_VERSION = 20061222


class ModelRecord:
    def __init__(self, index: int, unknown1: int = 0, unknown2: int = 0, unknown3: int = 0,
                 lighting: int = 0, effect_id: int = 0, name: str = "", file_name: str = "",
                 animation_duration: float = 0.0, loop: int = 0, random_offset: int = 0,
                 file_offset: int = 0, file_length: int = 0):
        self.index = index
        self.unknown1 = unknown1
        self.unknown2 = unknown2
        self.unknown3 = unknown3
        self.lighting = lighting  # 야간 조명 여부로 추정
        self.effect_id = effect_id
        self.name = name
        self.file_name = file_name
        self.animation_duration = animation_duration
        self.loop = loop
        self.random_offset = random_offset
        self.file_offset = file_offset
        self.file_length = file_length

    def __eq__(self, other):
        if not isinstance(other, ModelRecord):
            return NotImplemented
        return vars(self) == vars(other)

    def __repr__(self):
        return (f"ModelRecord(index={self.index}, name={self.name!r}, file_name={self.file_name!r}, "
                f"file_offset=0x{self.file_offset:X}, file_length={self.file_length})")

    @classmethod
    def parse(cls, stream) -> "ModelRecord":
        index, unknown1, unknown2, unknown3, lighting, effect_id = read_struct(stream, "<6I")
        name = read_cstring(stream, EUC_KR)
        file_name = read_cstring(stream, EUC_KR)
        animation_duration, loop, random_offset, file_offset, file_length = read_struct(stream, "<fIIII")
        return cls(index, unknown1, unknown2, unknown3, lighting, effect_id, name, file_name,
                   animation_duration, loop, random_offset, file_offset, file_length)

    def write(self, stream, entry_offsets: EntryOffsets = None):
        stream.write(struct.pack("<6I", self.index, self.unknown1, self.unknown2, self.unknown3,
                                 self.lighting, self.effect_id))
        stream.write(to_cstring(self.name, EUC_KR))
        stream.write(to_cstring(self.file_name, EUC_KR))
        stream.write(struct.pack("<fII", self.animation_duration, self.loop, self.random_offset))
        if entry_offsets is not None:
            entry_offsets.record(stream, (self.file_offset, self.file_length), "<II")
        else:
            stream.write(struct.pack("<II", self.file_offset, self.file_length))

    def to_manifest(self) -> dict:
        meta = vars(self).copy()
        del meta["file_offset"]
        del meta["file_length"]
        return meta

    @classmethod
    def from_manifest(cls, meta: dict) -> "ModelRecord":
        fields = {k: v for k, v in meta.items() if k not in ("file_offset", "file_length")}
        return cls(**fields)


class ModelTable:
    def __init__(self, version_date: int = MODEL_TABLE_VERSION, max_file_size: int = 0, models=None):
        self.version_date = version_date
        self.max_file_size = max_file_size
        self.models = list(models) if models is not None else []

    @property
    def model_count(self) -> int:
        return len(self.models)

    def __eq__(self, other):
        if not isinstance(other, ModelTable):
            return NotImplemented
        return vars(self) == vars(other)

    def __repr__(self):
        return f"ModelTable(version={self.version_date}, models={self.model_count}, max_file_size={self.max_file_size})"

    @classmethod
    def read_without_data(cls, stream) -> "ModelTable":
        try:
            magic = read_exact(stream, len(MODEL_TABLE_MAGIC))
            if magic != MODEL_TABLE_MAGIC:
                raise FormatError(f"bad model table magic: {magic!r}")

            version_date, model_count, max_file_size = read_struct(stream, "<III")
            if version_date != MODEL_TABLE_VERSION:
                raise FormatError(f"unexpected model table version {version_date}")

            models = [ModelRecord.parse(stream) for _ in range(model_count)]
        except EOFError as e:
            raise FormatError(f"truncated model table: {e}") from e

        table = cls(version_date, max_file_size, models)
        logging.debug(f"[modeltable] 테이블 읽음: {table}")
        return table

    def write_without_data(self, stream, entry_offsets: EntryOffsets):
        stream.write(MODEL_TABLE_MAGIC)
        stream.write(struct.pack("<III", self.version_date, self.model_count, self.max_file_size))
        for model in self.models:
            model.write(stream, entry_offsets)

    def to_manifest(self) -> dict:
        return {
            "version_date": self.version_date,
            "max_file_size": self.max_file_size,
            "models": [model.to_manifest() for model in self.models],
        }

    @classmethod
    def from_manifest(cls, meta: dict) -> "ModelTable":
        try:
            return cls(
                meta.get("version_date", MODEL_TABLE_VERSION),
                meta.get("max_file_size", 0),
                [ModelRecord.from_manifest(m) for m in meta["models"]],
            )
        except (KeyError, TypeError) as e:
            raise FormatError(f"invalid model table manifest: missing or malformed field {e}") from e


def unpack(stream, out_dir: str, progress: bool = False) -> ModelTable:
    """Write ``manifest.json`` and every model blob (under its file_name) into ``out_dir``."""
    table = ModelTable.read_without_data(stream)
    os.makedirs(out_dir, exist_ok=True)
    EntryMetadataManager(os.path.join(out_dir, MANIFEST_NAME)).save_metadata(table.to_manifest())

    for model in tqdm(table.models, desc="모델 추출중", unit="모델", disable=not progress):
        data = read_blob(stream, model.file_offset, model.file_length, model.file_name)
        out_path = os.path.join(out_dir, archive_to_local(model.file_name))
        os.makedirs(os.path.dirname(out_path), exist_ok=True)
        with open(out_path, "wb") as f:
            f.write(data)
        logging.debug(f"[modeltable] 모델 {model.index} 추출: {model.file_name} ({model.file_length} bytes)")

    logging.info(f"[modeltable] 언팩 완료: 모델 {table.model_count}개 → {out_dir}")
    return table


def _read_model_files(base_dir: str, models):
    for model in models:
        with open(os.path.join(base_dir, archive_to_local(model.file_name)), "rb") as f:
            yield f.read()


def pack(manifest_path: str, out_stream) -> ModelTable:
    """Build a model table from ``manifest_path``; blobs are read relative to the manifest's directory."""
    table = ModelTable.from_manifest(EntryMetadataManager(manifest_path).load_metadata())
    base_dir = os.path.dirname(manifest_path)

    entry_offsets = EntryOffsets()
    table.write_without_data(out_stream, entry_offsets)

    placed = write_blobs(out_stream, entry_offsets, _read_model_files(base_dir, table.models))
    for model, (file_offset, file_length) in zip(table.models, placed):
        model.file_offset = file_offset
        model.file_length = file_length

    out_stream.flush()
    logging.info(f"[modeltable] 팩 완료: 모델 {table.model_count}개")
    return table


class ModelTableArchive(ArcFile):
    def __init__(self, view, format, table: ModelTable):
        entries = [Entry(model.file_name, model.file_offset, model.file_length) for model in table.models]
        super().__init__(view, format, entries)
        self.table = table


class ModelTableOpener(ArchiveFormat):
    def __init__(self):
        super().__init__()
        self.name = "Model table"
        self.extensions = ["lof"]
        self.signatures = [MODEL_TABLE_MAGIC[:4]]

    def try_open(self, view: FileView, **options):
        try:
            view.stream.seek(0)
            table = ModelTable.read_without_data(view.stream)
        except InvalidFormatException as e:
            logging.warning(f"[ModelTableOpener] 열기 실패: {view.name}: {e}")
            return None
        return ModelTableArchive(view, self, table)


__all__ = ["MODEL_TABLE_MAGIC", "MODEL_TABLE_VERSION", "ModelRecord", "ModelTable", "ModelTableArchive",
           "ModelTableOpener", "unpack", "pack"]
