# nayakeys.py - known keystreams for NayaPack (.agt) archives
#
# Keys are applied from absolute file offset 32 onward, cycling over the key bytes.
#
# Licensed under the MIT License.

# 개발 빌드 아카이브(dev_neodata.agt 등)에서 사용되는 기본 키 (90 bytes)
SPOOKY_KEY = bytes([
    0x01, 0x05, 0x06, 0x02, 0x04, 0x03, 0x07, 0x08, 0x01, 0x05, 0x06, 0x0F, 0x04, 0x03, 0x07, 0x0C,
    0x31, 0x85, 0x76, 0x39, 0x34, 0x3D, 0x30, 0xE8, 0x67, 0x36, 0x36, 0x32, 0x3E, 0x33, 0x34, 0x3B,
    0x11, 0x15, 0x16, 0x16, 0x14, 0x13, 0x1D, 0x18, 0x11, 0x03, 0x06, 0x0C, 0x04, 0x03, 0x06, 0x08,
    0x2E, 0x55, 0x26, 0x23, 0x2A, 0x23, 0x2E, 0x28, 0x21, 0x21, 0x26, 0x27, 0x2E, 0x00, 0x2D, 0x2D,
    0xCF, 0xA5, 0x06, 0x02, 0x04, 0x0F, 0x07, 0x18, 0xE1, 0x15, 0x36, 0x18, 0x60, 0x13, 0x1A, 0x19,
    0x11, 0x15, 0x16, 0x10, 0x12, 0x13, 0x17, 0x38, 0xF1, 0x25,
])

# 키 이름 → 키 바이트. 키를 지정하지 않고 열 때 순서대로 시도함.
KnownKeys = {
    "spooky": SPOOKY_KEY,
}


def load_key(key_name: str = None, key_file: str = None):
    """Resolve a key from a raw key file or a KnownKeys name; None means "try all"."""
    if key_file:
        with open(key_file, "rb") as f:
            key = f.read()
        if not key:
            raise ValueError(f"key file is empty: {key_file}")
        return key
    if key_name:
        try:
            return KnownKeys[key_name]
        except KeyError:
            raise ValueError(f"unknown key name: {key_name} (known: {', '.join(KnownKeys)})") from None
    return None
