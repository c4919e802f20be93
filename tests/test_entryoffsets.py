"""
Tests for the placeholder/backpatch helper (naya.entryoffsets).
"""

import io
import struct

import pytest

from naya.entryoffsets import EntryOffsets, write_blobs


def write_records(placeholder):
    stream = io.BytesIO()
    offsets = EntryOffsets()
    for i in range(4):
        stream.write(b"REC" + bytes([i]))
        offsets.record(stream, placeholder)
    stream.write(b"TAIL")
    return stream, offsets


def test_record_returns_absolute_positions():
    _, offsets = write_records(0)
    assert list(offsets) == [4, 12, 20, 28]
    assert len(offsets) == 4
    assert offsets[2] == 20


def test_final_content_independent_of_placeholders():
    """Same resolved values give identical output whatever was written provisionally."""
    results = []
    for placeholder in (0, 0xFFFFFFFF, 0xDEADBEEF):
        stream, offsets = write_records(placeholder)
        offsets.patch(stream, [100, 200, 300, 400])
        results.append(stream.getvalue())

    assert results[0] == results[1] == results[2]
    assert struct.unpack_from("<I", results[0], 12)[0] == 200


def test_patch_restores_stream_position():
    stream, offsets = write_records(0)
    end = stream.tell()
    offsets.patch(stream, [1, 2, 3, 4])
    assert stream.tell() == end


def test_patch_tuple_values():
    stream = io.BytesIO()
    offsets = EntryOffsets()
    offsets.record(stream, (0, 0), "<II")
    offsets.patch(stream, [(0x40, 0x10)], "<II")
    assert stream.getvalue() == struct.pack("<II", 0x40, 0x10)


def test_patch_count_mismatch_is_asserted():
    stream, offsets = write_records(0)
    with pytest.raises(AssertionError):
        offsets.patch(stream, [1, 2, 3])


def test_write_blobs_places_after_table():
    stream = io.BytesIO()
    offsets = EntryOffsets()
    stream.write(b"HEAD")
    offsets.record(stream, (0, 0), "<II")
    offsets.record(stream, (0, 0), "<II")

    placed = write_blobs(stream, offsets, [b"first", b"second!"])

    raw = stream.getvalue()
    assert placed == [(20, 5), (25, 7)]
    assert struct.unpack_from("<IIII", raw, 4) == (20, 5, 25, 7)
    assert raw[20:25] == b"first"
    assert raw[25:32] == b"second!"
    assert stream.tell() == len(raw)
