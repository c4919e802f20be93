# chunks.py - fixed-size zlib chunk transcoder for NayaPack (.agt) entries
#
# An entry's data region is a table of chunk_count little-endian u16 compressed
# lengths followed by the compressed chunks. Every chunk is an independent
# zlib stream holding at most CHUNK_SIZE raw bytes.
#
# Licensed under the MIT License.

import zlib
import struct
import logging

from gameres.gameres import DecodeError
from gameres.utility import read_exact

CHUNK_SIZE = 0x4000  # 16384, 포맷 고정값


def chunk_count(length: int) -> int:
    return (length + CHUNK_SIZE - 1) // CHUNK_SIZE


def split_chunks(data: bytes):
    return [data[i:i + CHUNK_SIZE] for i in range(0, len(data), CHUNK_SIZE)]


def compress_chunk(chunk: bytes) -> bytes:
    return zlib.compress(chunk, zlib.Z_DEFAULT_COMPRESSION)


def compress_chunks(data: bytes):
    """Deflate ``data`` slice by slice.

    Returns ``(lengths, payload)``: the compressed length of every chunk and the
    concatenated compressed bytes. Where the length table goes is up to the caller.
    """
    lengths = []
    payload = bytearray()
    for chunk in split_chunks(data):
        compressed = compress_chunk(chunk)
        # 16KiB 청크의 최악 압축 크기도 u16 범위 안
        assert len(compressed) <= 0xFFFF, f"compressed chunk too large: {len(compressed)}"
        lengths.append(len(compressed))
        payload += compressed
    return lengths, bytes(payload)


def pack_lengths(lengths) -> bytes:
    return struct.pack(f"<{len(lengths)}H", *lengths)


def read_chunk_lengths(stream, count: int):
    try:
        raw = read_exact(stream, count * 2)
    except EOFError as e:
        raise DecodeError(f"chunk length table truncated: {e}") from e
    return list(struct.unpack(f"<{count}H", raw))


def decompress_chunk(compressed: bytes) -> bytes:
    decoder = zlib.decompressobj()
    try:
        data = decoder.decompress(compressed)
        data += decoder.flush()
    except zlib.error as e:
        raise DecodeError(f"chunk inflate failed: {e}") from e
    if not decoder.eof:
        raise DecodeError("chunk inflate failed: incomplete zlib stream")
    if decoder.unused_data:
        raise DecodeError(f"chunk inflate failed: {len(decoder.unused_data)} trailing bytes after zlib stream")
    return data


def read_chunks(stream, count: int) -> bytes:
    """Read a chunk length table of ``count`` entries at the current position and inflate every chunk."""
    lengths = read_chunk_lengths(stream, count)

    result = bytearray()
    for i, length in enumerate(lengths):
        try:
            compressed = read_exact(stream, length)
        except EOFError as e:
            raise DecodeError(f"chunk {i}/{count} truncated: {e}") from e
        chunk = decompress_chunk(compressed)
        if len(chunk) > CHUNK_SIZE:
            logging.warning(f"[chunks] 청크 {i} 크기 초과: {len(chunk)} > {CHUNK_SIZE}")
        result += chunk

    return bytes(result)


__all__ = [
    "CHUNK_SIZE", "chunk_count", "split_chunks", "compress_chunks", "pack_lengths",
    "read_chunk_lengths", "read_chunks", "decompress_chunk",
]
