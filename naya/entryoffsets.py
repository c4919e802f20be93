# entryoffsets.py - placeholder/backpatch helper shared by the Naya table writers
#
# Writers that place large blobs after a compact header do it in two phases:
# while the header is serialized, every field whose value is not known yet is
# written as a placeholder and its absolute position is recorded here; once the
# blobs are written the recorded positions are revisited in the same order and
# overwritten with the real values.
#
# Licensed under the MIT License.

import io
import struct
import logging


class EntryOffsets:
    def __init__(self):
        self.positions = []

    def __len__(self):
        return len(self.positions)

    def __iter__(self):
        return iter(self.positions)

    def __getitem__(self, index):
        return self.positions[index]

    # 현재 위치를 기록하고 임시값을 씀
    def record(self, stream, value=0, fmt: str = "<I") -> int:
        pos = stream.tell()
        self.positions.append(pos)
        if not isinstance(value, tuple):
            value = (value,)
        stream.write(struct.pack(fmt, *value))
        return pos

    def patch_one(self, stream, index: int, value, fmt: str = "<I"):
        if not isinstance(value, tuple):
            value = (value,)
        resume = stream.tell()
        stream.seek(self.positions[index], io.SEEK_SET)
        stream.write(struct.pack(fmt, *value))
        stream.seek(resume, io.SEEK_SET)

    # 기록된 순서대로 실제 값을 덮어씀. values의 개수/순서는 기록 순서와 일치해야 함.
    def patch(self, stream, values, fmt: str = "<I"):
        values = list(values)
        assert len(values) == len(self.positions), (
            f"backpatch mismatch: {len(self.positions)} placeholders, {len(values)} values"
        )

        resume = stream.tell()
        for pos, value in zip(self.positions, values):
            if not isinstance(value, tuple):
                value = (value,)
            stream.seek(pos, io.SEEK_SET)
            stream.write(struct.pack(fmt, *value))
        stream.seek(resume, io.SEEK_SET)

        logging.debug(f"[entryoffsets] 백패치 완료 ({len(values)}개, fmt={fmt})")


# 테이블 뒤에 블롭을 차례로 붙이고, 기록된 (offset, length) 자리를 채움.
# blobs는 기록 순서와 같은 순서의 bytes iterable. 끝난 뒤 스트림은 마지막 블롭 끝에 위치.
def write_blobs(stream, entry_offsets: EntryOffsets, blobs) -> list:
    placed = []
    for index, blob in enumerate(blobs):
        assert index < len(entry_offsets), "more blobs than recorded placeholders"
        file_offset = stream.tell()
        stream.write(blob)
        entry_offsets.patch_one(stream, index, (file_offset, len(blob)), "<II")
        placed.append((file_offset, len(blob)))

    assert len(placed) == len(entry_offsets), (
        f"backpatch mismatch: {len(entry_offsets)} placeholders, {len(placed)} blobs"
    )
    logging.debug(f"[entryoffsets] 블롭 {len(placed)}개 배치 완료")
    return placed


__all__ = ["EntryOffsets", "write_blobs"]
