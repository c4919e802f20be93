# agtrepack.py - NayaPack (.agt) archive builder
#
# Writes a complete enciphered archive from in-memory entries in one forward
# pass plus backpatching:
#   1. header
#   2. directory with placeholder data offsets (positions recorded)
#   3. per entry: reserved chunk length table, compressed chunks, then the
#      table is filled in
#   4. recorded placeholders are overwritten with the real data offsets
#
# Licensed under the MIT License.

import io
import os
import logging

from tqdm import tqdm

from gameres.utility import visit_files, local_to_archive
from naya.agtindex import AgtHeader, AgtEntry
from naya.chunks import compress_chunks, pack_lengths
from naya.cipher import XorStream, ACTIVATION_OFFSET
from naya.entryoffsets import EntryOffsets


class AgtBuilder:
    def __init__(self):
        # 경로 → 원본 데이터. 같은 경로를 다시 추가하면 덮어씀
        self.entry_sources = {}

    def __len__(self):
        return len(self.entry_sources)

    def __contains__(self, path):
        return path in self.entry_sources

    def add(self, path: str, data: bytes):
        if path in self.entry_sources:
            logging.debug(f"[agtrepack] 덮어씀: {path}")
        self.entry_sources[path] = bytes(data)

    def add_file(self, path: str, src_path: str):
        with open(src_path, "rb") as f:
            self.add(path, f.read())

    # input_dir 아래 모든 파일을 추가. 아카이브 경로는 \ 구분 (예: NeoData\NC_quest.xlt)
    def add_dir(self, input_dir: str, names: dict = None):
        count = 0
        for full_path in visit_files(input_dir):
            rel_path = os.path.relpath(full_path, input_dir)
            arc_path = (names or {}).get(rel_path.replace(os.sep, "/")) or local_to_archive(rel_path)
            self.add_file(arc_path, full_path)
            count += 1
        logging.info(f"[agtrepack] 폴더에서 {count}개 파일 등록: {input_dir}")
        return count

    def sorted_paths(self):
        return sorted(self.entry_sources)

    def write(self, out, key, progress: bool = False):
        """Write the archive to ``out`` (a path or a seekable binary stream), enciphered with ``key``.

        Returns the directory entries as written, with their final data offsets.
        """
        if isinstance(out, (str, os.PathLike)):
            with open(out, "wb") as f:
                return self._write_archive(f, key, progress)
        return self._write_archive(out, key, progress)

    def _write_archive(self, f, key, progress: bool):
        start = f.tell()
        assert start == 0, "archive must start at offset 0 of the output stream"
        writer = XorStream(f, key, ACTIVATION_OFFSET)
        paths = self.sorted_paths()

        AgtHeader(file_count=len(paths)).write(writer)

        # 1차: 임시 디렉토리 (data offset = 0, 위치 기록)
        entry_offsets = EntryOffsets()
        entries = []
        for path in paths:
            entry = AgtEntry(path, 0, None, len(self.entry_sources[path]))
            entry.write(writer, entry_offsets)
            entries.append(entry)

        # 2차: 청크 길이 테이블 자리 확보 → 압축 청크 기록 → 테이블 채우기
        data_offsets = []
        for entry in tqdm(entries, desc="압축 진행중", unit="파일", disable=not progress):
            data = self.entry_sources[entry.path]
            data_offset = writer.tell()
            data_offsets.append(data_offset)

            writer.seek(entry.chunk_count * 2, io.SEEK_CUR)
            lengths, payload = compress_chunks(data)
            assert len(lengths) == entry.chunk_count, f"chunk count mismatch for {entry.path}"
            writer.write(payload)

            post_data_offset = writer.tell()
            writer.seek(data_offset, io.SEEK_SET)
            writer.write(pack_lengths(lengths))
            writer.seek(post_data_offset, io.SEEK_SET)

            entry.data_offset = data_offset
            logging.debug(f"[agtrepack] {entry.path}: offset=0x{data_offset:X}, "
                          f"chunks={entry.chunk_count}, {len(data)} → {len(payload)} bytes")

        # 3차: data offset 백패치
        entry_offsets.patch(writer, data_offsets)
        writer.seek(0, io.SEEK_END)
        writer.flush()

        logging.info(f"[agtrepack] 아카이브 작성 완료 (엔트리 {len(entries)}개, {writer.tell()} bytes)")
        return entries


__all__ = ["AgtBuilder"]
