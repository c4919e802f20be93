# agtunpack.py - NayaPack (.agt) archive reader
#
# Everything from absolute offset 0x20 onward is enciphered with an XOR
# keystream (see naya.cipher). The header itself is plain text, so the key can
# only be verified by decoding the directory.
#
# Licensed under the MIT License.

import io
import logging
from io import BytesIO
from typing import Optional

from tqdm import tqdm

from formats.arcfile import ArcFile
from formats.fileview import FileView
from gameres.gameres import ArchiveFormat, EntryCallback, FormatError, DecodeError, InvalidFormatException
from naya.agtindex import AGT_MAGIC, HEADER_SIZE, AgtHeader, AgtEntry
from naya.chunks import read_chunks, chunk_count
from naya.cipher import XorStream, ACTIVATION_OFFSET
from naya.nayakeys import KnownKeys


class AgtReader:
    """Random-access reader over an enciphered .agt stream.

    Every call seeks explicitly, so header, directory and entry data can be
    read in any order and any number of times.
    """

    def __init__(self, stream, key):
        self.stream = XorStream(stream, key, ACTIVATION_OFFSET)

    def read_header(self) -> AgtHeader:
        self.stream.seek(0, io.SEEK_SET)
        return AgtHeader.parse(self.stream)

    def read_entries(self, file_count: int):
        self.stream.seek(HEADER_SIZE, io.SEEK_SET)
        return AgtEntry.parse_entries(self.stream, file_count)

    def read_entry_data(self, entry: AgtEntry) -> bytes:
        self.stream.seek(entry.data_offset, io.SEEK_SET)

        if entry.chunk_count != chunk_count(entry.decompressed_length):
            logging.warning(f"[agtunpack] {entry.path}: chunk_count={entry.chunk_count}, "
                            f"길이 기준 기대값={chunk_count(entry.decompressed_length)}")

        data = read_chunks(self.stream, entry.chunk_count)
        if len(data) != entry.decompressed_length:
            raise DecodeError(
                f"{entry.path}: decompressed {len(data)} bytes, expected {entry.decompressed_length}"
            )
        return data


# AgtArchive: 디렉토리와 복호화 리더를 함께 들고 있는 ArcFile
class AgtArchive(ArcFile):
    def __init__(self, view, format, header: AgtHeader, entries, key, key_name: Optional[str] = None):
        super().__init__(view, format, entries)
        self.header = header
        self.key = key
        self.key_name = key_name
        self.reader = AgtReader(view.stream, key)

    # [(path, decompressed size)]
    def list(self):
        return [(entry.path, entry.decompressed_length) for entry in self.entries]

    def extract(self, path: str) -> bytes:
        return self.reader.read_entry_data(self.find_entry(path))

    def open_entry(self, entry: AgtEntry) -> BytesIO:
        return BytesIO(self.reader.read_entry_data(entry))

    def extract_all(self, out_dir: str, callback: Optional[EntryCallback] = None, progress: bool = False):
        """Extract every entry under ``out_dir``.

        An entry that fails to decode is logged and skipped. Returns
        ``(extracted, failed)`` where ``failed`` holds ``(path, message)`` pairs.
        """
        extracted, failed = [], []
        for entry in tqdm(self.entries, desc="추출 진행중", unit="파일", disable=not progress):
            try:
                if self.format.extract(self, entry, out_dir, callback, entry.index):
                    extracted.append(entry.path)
            except DecodeError as e:
                logging.error(f"[AgtArchive] ❌ {entry.path} 추출 실패: {e}")
                failed.append((entry.path, str(e)))

        logging.info(f"[AgtArchive] 추출 완료: {len(extracted)}개 성공, {len(failed)}개 실패 → {out_dir}")
        return extracted, failed


class AgtOpener(ArchiveFormat):
    def __init__(self):
        super().__init__()
        self.name = "NayaPack archive"
        self.extensions = ["agt"]
        self.signatures = [AGT_MAGIC[:4]]

    # 디렉토리가 파일 범위 안에 있는지 검사 (잘못된 키 판별용)
    @staticmethod
    def _check_entries(entries, file_size: int):
        for entry in entries:
            end = entry.data_offset + entry.chunk_count * 2
            if entry.data_offset < HEADER_SIZE or end > file_size:
                raise FormatError(
                    f"{entry.path!r}: data offset 0x{entry.data_offset:X} (+{entry.chunk_count} chunks) "
                    f"outside file (size 0x{file_size:X})"
                )

    def read_directory(self, view: FileView, key):
        reader = AgtReader(view.stream, key)
        header = reader.read_header()
        if not self.is_sane_count(header.file_count, view.size):
            raise FormatError(f"implausible file count {header.file_count}")
        entries = reader.read_entries(header.file_count)
        self._check_entries(entries, view.size)
        return header, entries

    def open_view(self, view: FileView, key=None) -> AgtArchive:
        """Open ``view`` with ``key``, or with every KnownKeys entry in turn when ``key`` is None."""
        if key is not None:
            candidates = [(None, key)]
        else:
            candidates = list(KnownKeys.items())

        last_error = None
        for key_name, key_data in candidates:
            try:
                header, entries = self.read_directory(view, key_data)
            except DecodeError as e:
                # 잘못된 키로 풀면 경로가 깨짐
                logging.debug(f"[AgtOpener] ❌ 디렉토리 해독 실패 (key={key_name}): {e}")
                last_error = FormatError(f"directory could not be decoded: {e}")
                continue
            except FormatError as e:
                logging.debug(f"[AgtOpener] ❌ read_directory 실패 (key={key_name}): {e}")
                last_error = e
                continue

            logging.debug(f"[AgtOpener] ✅ 성공 (key={key_name}, entries={len(entries)})")
            return AgtArchive(view, self, header, entries, key_data, key_name)

        raise last_error or FormatError("no key available")

    def try_open(self, view: FileView, key=None, **options):
        try:
            return self.open_view(view, key)
        except InvalidFormatException as e:
            logging.warning(f"[AgtOpener] 열기 실패: {view.name}: {e}")
            return None


def open_archive(path: str, key=None) -> AgtArchive:
    """Open the .agt archive at ``path``. Raises FormatError when it cannot be read with ``key``."""
    view = FileView(path)
    try:
        return AgtOpener().open_view(view, key)
    except BaseException:
        view.close()
        raise


open = open_archive


__all__ = ["AgtReader", "AgtArchive", "AgtOpener", "open_archive", "open"]
