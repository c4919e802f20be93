"""
Tests for the model table (.lof) codec.
"""

import io
import struct

import pytest

from formats.fileview import FileView
from gameres.gameres import FormatError
from naya import modeltable
from naya.entryoffsets import EntryOffsets, write_blobs
from naya.modeltable import MODEL_TABLE_MAGIC, ModelRecord, ModelTable, ModelTableOpener


def sample_table():
    return ModelTable(
        max_file_size=4096,
        models=[
            ModelRecord(0, 1, 2, 3, lighting=1, effect_id=5, name="가로등", file_name="objects\\lamp.nif",
                        animation_duration=0.5, loop=1, random_offset=0),
            ModelRecord(1, name="tree", file_name="tree.nif", animation_duration=2.0),
        ],
    )


def build_lof(table, blobs) -> bytes:
    out = io.BytesIO()
    offsets = EntryOffsets()
    table.write_without_data(out, offsets)
    write_blobs(out, offsets, blobs)
    return out.getvalue()


# ============================================================================
# Table codec
# ============================================================================

def test_header_layout():
    raw = build_lof(sample_table(), [b"", b""])
    assert raw[:12] == MODEL_TABLE_MAGIC
    assert struct.unpack_from("<III", raw, 12) == (20061222, 2, 4096)
    # 첫 모델 이름은 EUC-KR 널 종료 문자열
    name_start = 24 + 6 * 4
    assert raw[name_start:name_start + 7] == "가로등".encode("cp949") + b"\x00"


def test_write_then_read_without_data():
    blobs = [b"lamp model", b"tree model bytes"]
    raw = build_lof(sample_table(), blobs)

    table = ModelTable.read_without_data(io.BytesIO(raw))
    assert table.model_count == 2
    assert table.max_file_size == 4096
    lamp = table.models[0]
    assert (lamp.name, lamp.file_name) == ("가로등", "objects\\lamp.nif")
    assert (lamp.unknown1, lamp.unknown2, lamp.unknown3, lamp.lighting, lamp.effect_id) == (1, 2, 3, 1, 5)
    assert lamp.animation_duration == 0.5

    for model, blob in zip(table.models, blobs):
        assert raw[model.file_offset:model.file_offset + model.file_length] == blob


def test_bad_magic():
    raw = b"LF\x00\x00kjc\x00ag\x00\x00" + build_lof(sample_table(), [b"", b""])[12:]
    with pytest.raises(FormatError):
        ModelTable.read_without_data(io.BytesIO(raw))


def test_unexpected_version():
    table = sample_table()
    table.version_date = 20061216
    with pytest.raises(FormatError):
        ModelTable.read_without_data(io.BytesIO(build_lof(table, [b"", b""])))


def test_unterminated_name_is_format_error():
    raw = MODEL_TABLE_MAGIC + struct.pack("<III", 20061222, 1, 0) + struct.pack("<6I", 0, 0, 0, 0, 0, 0) + b"abc"
    with pytest.raises(FormatError):
        ModelTable.read_without_data(io.BytesIO(raw))


def test_manifest_round_trip():
    meta = sample_table().to_manifest()
    assert "file_offset" not in meta["models"][0]
    assert ModelTable.from_manifest(meta) == sample_table()


def test_manifest_unknown_field():
    meta = sample_table().to_manifest()
    meta["models"][0]["colour"] = "red"
    with pytest.raises(FormatError):
        ModelTable.from_manifest(meta)


# ============================================================================
# unpack / pack
# ============================================================================

def test_unpack_then_pack(tmp_path):
    blobs = [b"\xAA" * 123, b"\xBB" * 45]
    raw = build_lof(sample_table(), blobs)

    out_dir = tmp_path / "models"
    table = modeltable.unpack(io.BytesIO(raw), str(out_dir))
    assert table.model_count == 2
    assert (out_dir / "objects" / "lamp.nif").read_bytes() == blobs[0]
    assert (out_dir / "tree.nif").read_bytes() == blobs[1]

    repacked = io.BytesIO()
    packed = modeltable.pack(str(out_dir / "manifest.json"), repacked)
    assert repacked.getvalue() == raw
    assert [m.file_length for m in packed.models] == [123, 45]


def test_opener():
    raw = build_lof(sample_table(), [b"lamp", b"tree"])
    arc = ModelTableOpener().try_open(FileView.from_bytes(raw, "test.lof"))
    assert [e.name for e in arc.entries] == ["objects\\lamp.nif", "tree.nif"]
    assert arc.open_entry(arc.entries[0]).getvalue() == b"lamp"


def test_undecodable_name_bytes_survive_unpack_and_pack(tmp_path):
    """Name bytes that are not valid EUC-KR are written back unchanged."""
    table = ModelTable(models=[ModelRecord(0, name="\udcffbroken", file_name="lamp.nif")])
    raw = build_lof(table, [b"lamp"])
    assert b"\xffbroken\x00" in raw

    read = ModelTable.read_without_data(io.BytesIO(raw))
    assert read.models[0].name == "\udcffbroken"

    out_dir = tmp_path / "models"
    modeltable.unpack(io.BytesIO(raw), str(out_dir))
    repacked = io.BytesIO()
    modeltable.pack(str(out_dir / "manifest.json"), repacked)
    assert repacked.getvalue() == raw


def test_name_outside_euc_kr_cannot_be_written():
    table = ModelTable(models=[ModelRecord(0, name="\U0001F600", file_name="x.nif")])
    with pytest.raises(UnicodeEncodeError):
        table.write_without_data(io.BytesIO(), EntryOffsets())
