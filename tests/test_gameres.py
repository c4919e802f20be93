"""
Tests for the format registry, extraction callbacks and shared helpers.
"""

import io
import os

import pytest

from conftest import build_archive, open_bytes
from gameres.gameres import ArchiveFormat, ArchiveOperation, FormatCatalog, FormatError, MultiValueDict
from gameres.utility import (
    EntryMetadataManager,
    archive_to_local,
    local_to_archive,
    read_cstring,
    to_cstring,
    visit_files,
)
from naya.agtunpack import AgtArchive, AgtOpener
from naya.entryoffsets import EntryOffsets, write_blobs
from naya.modeltable import ModelTableOpener
from naya.terrain import TerrainArchive, TerrainBlock, TerrainOpener, TerrainTable


@pytest.fixture(autouse=True)
def registered_formats():
    for fmt in (AgtOpener(), TerrainOpener(), ModelTableOpener()):
        FormatCatalog.add_format(fmt)


def write_lf(path):
    out = io.BytesIO()
    offsets = EntryOffsets()
    TerrainTable(blocks=[TerrainBlock(0)]).write_without_data(out, offsets)
    write_blobs(out, offsets, [b"nif"])
    path.write_bytes(out.getvalue())


# ============================================================================
# FormatCatalog
# ============================================================================

def test_open_archive_by_signature(tmp_path):
    path = tmp_path / "renamed.bin"
    write_lf(path)
    arc = FormatCatalog.open_archive(str(path))
    try:
        assert isinstance(arc, TerrainArchive)
        assert arc.open_entry(arc.entries[0]).getvalue() == b"nif"
    finally:
        arc.close()


def test_open_agt_archive_tries_known_keys(tmp_path):
    path = tmp_path / "dev.agt"
    path.write_bytes(build_archive({"a.txt": b"hello"}))
    with FormatCatalog.open_archive(str(path)) as arc:
        assert isinstance(arc, AgtArchive)
        assert arc.extract("a.txt") == b"hello"


def test_detect_by_extension_when_signature_unknown(tmp_path):
    path = tmp_path / "broken.lof"
    path.write_bytes(b"\x00" * 32)
    assert isinstance(FormatCatalog.detect_format(str(path)), ModelTableOpener)
    with pytest.raises(FormatError):
        FormatCatalog.open_archive(str(path))


def test_unrecognized_file(tmp_path):
    path = tmp_path / "mystery.dat"
    path.write_bytes(b"\x00" * 32)
    assert FormatCatalog.detect_format(str(path)) is None
    with pytest.raises(FormatError):
        FormatCatalog.open_archive(str(path))


def test_multi_value_dict():
    d = MultiValueDict()
    d.add("lf", 1)
    d.add("lf", 1)
    d.add("lf", 2)
    assert d.get("lf") == [1, 2]
    assert "lf" in d
    assert d.get("agt") is None
    assert d.get("agt", return_empty_list=True) == []


def test_is_sane_count():
    assert ArchiveFormat.is_sane_count(0)
    assert ArchiveFormat.is_sane_count(10, 10)
    assert not ArchiveFormat.is_sane_count(11, 10)
    assert not ArchiveFormat.is_sane_count(-1)


# ============================================================================
# Extraction callbacks
# ============================================================================

def test_extract_callback_skip_and_abort(tmp_path):
    arc = open_bytes(build_archive({"keep.bin": b"k", "skip.bin": b"s", "zzz.bin": b"z"}))

    def skip_one(index, entry, message):
        return ArchiveOperation.SKIP if entry.name == "skip.bin" else ArchiveOperation.CONTINUE

    extracted, failed = arc.extract_all(str(tmp_path), callback=skip_one)
    assert extracted == ["keep.bin", "zzz.bin"]
    assert failed == []
    assert not (tmp_path / "skip.bin").exists()

    def abort(index, entry, message):
        return ArchiveOperation.ABORT

    with pytest.raises(InterruptedError):
        arc.extract_all(str(tmp_path / "aborted"), callback=abort)
    arc.close()


# ============================================================================
# utility
# ============================================================================

def test_archive_path_conversion():
    assert archive_to_local("NeoData\\NC_quest.xlt") == os.path.join("NeoData", "NC_quest.xlt")
    assert archive_to_local("..\\..\\evil.txt") == "evil.txt"
    assert local_to_archive(os.path.join("a", "b.txt")) == "a\\b.txt"
    with pytest.raises(ValueError):
        archive_to_local("\\")


def test_cstring_codec():
    raw = to_cstring("가로등") + to_cstring("lamp.nif")
    stream = io.BytesIO(raw)
    assert read_cstring(stream) == "가로등"
    assert read_cstring(stream) == "lamp.nif"
    with pytest.raises(EOFError):
        read_cstring(io.BytesIO(b"no terminator"))


def test_visit_files_sorted(tmp_path):
    (tmp_path / "b").mkdir()
    (tmp_path / "b" / "inner.txt").write_bytes(b"")
    (tmp_path / "a.txt").write_bytes(b"")
    (tmp_path / "c.txt").write_bytes(b"")
    found = [os.path.relpath(p, tmp_path) for p in visit_files(str(tmp_path))]
    assert found == ["a.txt", os.path.join("b", "inner.txt"), "c.txt"]


def test_metadata_manager_round_trip(tmp_path):
    path = tmp_path / "meta" / "entries.json"
    manager = EntryMetadataManager(str(path))
    assert manager.meta is None
    manager.save_metadata({"name": "나무", "items": [1, 2]})

    reloaded = EntryMetadataManager(str(path))
    assert reloaded.meta == {"name": "나무", "items": [1, 2]}
    assert "나무" in path.read_text(encoding="utf-8")
