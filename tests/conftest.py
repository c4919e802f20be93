"""
Shared fixtures for the Naya toolkit tests.

Archives and tables are built in memory (io.BytesIO) or under tmp_path so no
game data is needed.
"""

import io

import pytest

from formats.fileview import FileView
from naya.agtrepack import AgtBuilder
from naya.agtunpack import AgtOpener
from naya.nayakeys import SPOOKY_KEY


NEODATA_PATHS = [
    "NeoData\\NC_chapter.xlt",
    "NeoData\\NC_mission.xlt",
    "NeoData\\NC_object.xlt",
    "NeoData\\NC_objectDef.xlt",
    "NeoData\\NC_quest.xlt",
]


def utf16_table(name: str, rows: int) -> bytes:
    """Tab-separated table text in the game's encoding (UTF-16LE with BOM)."""
    lines = ["ID\tName\tValue"]
    lines += [f"{i}\t{name}_{i}\t{i * 7}" for i in range(rows)]
    return ("\ufeff" + "\r\n".join(lines)).encode("utf-16-le")


def build_archive(entries: dict, key=SPOOKY_KEY) -> bytes:
    builder = AgtBuilder()
    for path, data in entries.items():
        builder.add(path, data)
    out = io.BytesIO()
    builder.write(out, key)
    return out.getvalue()


def open_bytes(raw: bytes, key=None):
    return AgtOpener().open_view(FileView.from_bytes(raw, "test.agt"), key)


@pytest.fixture
def key():
    return SPOOKY_KEY


@pytest.fixture
def neodata_entries():
    # 마지막 항목은 청크 여러 개에 걸치도록 큼
    return {
        path: utf16_table(path.split("\\")[-1], 40 if i < 4 else 2000)
        for i, path in enumerate(NEODATA_PATHS)
    }


@pytest.fixture
def neodata_archive(neodata_entries, key):
    return build_archive(neodata_entries, key)
