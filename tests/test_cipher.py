"""
Tests for the offset-indexed XOR keystream (naya.cipher).

Tests cover:
- Idempotence at a matching absolute offset
- Mismatch at a shifted offset
- The plaintext header boundary
- XorStream position tracking across seeks and partial reads
"""

import io

import pytest

from naya.cipher import ACTIVATION_OFFSET, XorStream, apply_keystream


KEY = bytes([0x11, 0x22, 0x33, 0x44, 0x55, 0x66, 0x77])


# ============================================================================
# apply_keystream
# ============================================================================

def test_round_trip_at_same_offset():
    """Applying the keystream twice at the same offset restores the input."""
    data = bytes(range(256)) * 3
    for position in (0, 5, 32, 1000):
        enciphered = apply_keystream(data, KEY, position)
        assert apply_keystream(enciphered, KEY, position) == data


def test_shifted_offset_does_not_restore():
    """Deciphering one byte later than it was enciphered yields garbage."""
    data = b"NeoData\\NC_quest.xlt" * 4
    enciphered = apply_keystream(data, KEY, 64)
    assert apply_keystream(enciphered, KEY, 65) != data


def test_header_bytes_are_untouched():
    """Bytes below the activation offset pass through unchanged."""
    data = b"\xAA" * 48
    out = apply_keystream(data, KEY, 0)
    assert out[:ACTIVATION_OFFSET] == data[:ACTIVATION_OFFSET]
    assert out[32] == 0xAA ^ KEY[32 % len(KEY)]
    assert out[47] == 0xAA ^ KEY[47 % len(KEY)]


def test_range_straddling_activation_offset():
    """A slice that starts below 32 is only XORed from 32 onward."""
    data = b"\x00" * 10
    out = apply_keystream(data, KEY, 28)
    assert out[:4] == b"\x00" * 4
    assert out[4:] == bytes(KEY[p % len(KEY)] for p in range(32, 38))


def test_key_indexed_by_absolute_offset():
    """Key byte for position p is key[p % len(key)] regardless of where the slice starts."""
    data = b"\x00" * 16
    whole = apply_keystream(b"\x00" * 116, KEY, 0)
    assert apply_keystream(data, KEY, 100) == whole[100:116]


def test_single_byte_key():
    out = apply_keystream(b"\x0F" * 40, b"\xF0", 0)
    assert out[32:] == b"\xFF" * 8


def test_empty_input():
    assert apply_keystream(b"", KEY, 40) == b""


def test_empty_key_rejected():
    with pytest.raises(ValueError):
        apply_keystream(b"abc", b"", 40)


# ============================================================================
# XorStream
# ============================================================================

def test_stream_write_matches_stateless_transform():
    """Writing through the stream equals enciphering the whole buffer at offset 0."""
    data = bytes(range(100))
    inner = io.BytesIO()
    writer = XorStream(inner, KEY)
    writer.write(data[:40])
    writer.write(data[40:])
    assert writer.tell() == 100
    assert inner.getvalue() == apply_keystream(data, KEY, 0)


def test_stream_seek_and_partial_read():
    """Reads after arbitrary seeks decode with the right key phase."""
    data = bytes(range(200))
    inner = io.BytesIO(apply_keystream(data, KEY, 0))
    reader = XorStream(inner, KEY)

    reader.seek(150)
    assert reader.read(10) == data[150:160]
    assert reader.tell() == 160

    reader.seek(-20, io.SEEK_CUR)
    assert reader.read(5) == data[140:145]

    reader.seek(-8, io.SEEK_END)
    assert reader.read(100) == data[192:]
    assert reader.read(1) == b""


def test_stream_position_taken_from_inner():
    """A stream wrapped mid-file starts at the inner stream's position."""
    data = bytes(range(64))
    inner = io.BytesIO(apply_keystream(data, KEY, 0))
    inner.seek(40)
    reader = XorStream(inner, KEY)
    assert reader.tell() == 40
    assert reader.read(8) == data[40:48]


def test_stream_backpatch_overwrite():
    """Seeking back and overwriting re-enciphers at the overwritten position."""
    inner = io.BytesIO()
    writer = XorStream(inner, KEY)
    writer.write(b"\x00" * 64)
    writer.seek(40)
    writer.write(b"\x12\x34")
    writer.seek(0, io.SEEK_END)

    expected = bytearray(64)
    expected[40:42] = b"\x12\x34"
    assert apply_keystream(inner.getvalue(), KEY, 0) == bytes(expected)
    assert writer.tell() == 64


def test_stream_readinto():
    data = bytes(range(50))
    reader = XorStream(io.BytesIO(apply_keystream(data, KEY, 0)), KEY)
    reader.seek(30)
    buf = bytearray(8)
    assert reader.readinto(buf) == 8
    assert bytes(buf) == data[30:38]


def test_close_leaves_inner_open():
    inner = io.BytesIO()
    writer = XorStream(inner, KEY)
    writer.write(b"abc")
    writer.close()
    assert not inner.closed
