# cipher.py - offset-indexed XOR keystream transform for NayaPack (.agt) archives
#
# Every byte at absolute stream position p >= activation offset is XORed with
# key[p % len(key)]. Bytes below the activation offset (the 32-byte header) are
# stored in plain text.
#
# Licensed under the MIT License.

import io
import logging

import numpy as np
from numba import njit

ACTIVATION_OFFSET = 32


# XOR 커널. buf는 position 위치부터 시작하는 바이트 배열 (in-place 변환)
@njit
def _xor_keystream(buf, key, position, activation_offset):
    key_len = key.shape[0]
    for i in range(buf.shape[0]):
        pos = position + i
        if pos >= activation_offset:
            buf[i] ^= key[pos % key_len]


def _key_array(key) -> np.ndarray:
    if key is None or len(key) == 0:
        raise ValueError("keystream key must not be empty")
    return np.frombuffer(bytes(key), dtype=np.uint8).copy()


def _apply(data, key_arr: np.ndarray, position: int, activation_offset: int) -> bytes:
    buf = np.frombuffer(bytes(data), dtype=np.uint8).copy()
    # 활성 구간에 걸치지 않으면 그대로 통과
    if buf.size and position + buf.size > activation_offset:
        _xor_keystream(buf, key_arr, position, activation_offset)
    return buf.tobytes()


def apply_keystream(data, key, position: int, activation_offset: int = ACTIVATION_OFFSET) -> bytes:
    """XOR ``data`` as if it were located at absolute ``position`` of an enciphered file.

    The transform is its own inverse when applied at the same position, so the
    same call both enciphers and deciphers.
    """
    return _apply(data, _key_array(key), position, activation_offset)


# XorStream: 시커블 스트림을 감싸 읽기/쓰기 시 키스트림을 투명하게 적용.
# 위치는 항상 내부 스트림이 돌려준 값(읽은/쓴 바이트 수, seek 결과)으로 갱신함.
class XorStream(io.RawIOBase):
    def __init__(self, inner, key, activation_offset: int = ACTIVATION_OFFSET):
        super().__init__()
        self.inner = inner
        self.key = _key_array(key)
        self.activation_offset = activation_offset
        self.pos = inner.tell()
        logging.debug(f"[cipher] XorStream 생성 (pos=0x{self.pos:X}, key_len={len(self.key)}, activation=0x{activation_offset:X})")

    def read(self, size=-1):
        data = self.inner.read(size)
        if not data:
            return data
        out = _apply(data, self.key, self.pos, self.activation_offset)
        self.pos += len(data)
        return out

    def readinto(self, b) -> int:
        data = self.read(len(b))
        if not data:
            return 0
        b[:len(data)] = data
        return len(data)

    def write(self, b):
        data = _apply(b, self.key, self.pos, self.activation_offset)
        written = self.inner.write(data)
        if written is None:
            return None
        self.pos += written
        return written

    def seek(self, offset: int, whence: int = io.SEEK_SET) -> int:
        self.pos = self.inner.seek(offset, whence)
        return self.pos

    def tell(self) -> int:
        return self.pos

    def flush(self):
        if not self.inner.closed:
            self.inner.flush()

    # 내부 스트림은 호출측 소유. flush만 하고 닫지 않음.
    def close(self):
        super().close()

    def readable(self) -> bool:
        return self.inner.readable()

    def writable(self) -> bool:
        return self.inner.writable()

    def seekable(self) -> bool:
        return True


__all__ = ["ACTIVATION_OFFSET", "XorStream", "apply_keystream"]
