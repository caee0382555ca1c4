"""Gateway: filters + vocabulary blob reader.

Blob layout (native byte order)::

    int32 magic == 0x5553454E ("USEN")
    int32 n_mel, int32 n_fft
    n_mel * n_fft float32      mel filterbank
    int32 n_vocab
    n_vocab x (int32 length, length bytes UTF-8)
"""

from __future__ import annotations

import logging
import struct
from pathlib import Path

import numpy as np

from pocket_whisper.l1_entities.errors import AssetIOError, InvalidFormatError
from pocket_whisper.l1_entities.features import FilterBank
from pocket_whisper.l1_entities.vocabulary import SpecialTokens, VocabularyTable, vocab_ceiling

log = logging.getLogger('pw.vocab')

MAGIC = 0x5553454E

_INT32 = struct.Struct('=i')


class _BlobReader:
    """Sequential reader that raises AssetIOError on a short read."""

    def __init__(self, blob: bytes) -> None:
        self._view = memoryview(blob)
        self._pos = 0

    def take(self, size: int) -> memoryview:
        end = self._pos + size
        if end > len(self._view):
            raise AssetIOError(
                f'Unexpected end of vocab data: wanted {size} bytes at offset {self._pos}, '
                f'{len(self._view) - self._pos} left'
            )
        chunk = self._view[self._pos : end]
        self._pos = end
        return chunk

    def int32(self) -> int:
        return _INT32.unpack(self.take(_INT32.size))[0]

    def size(self, what: str) -> int:
        value = self.int32()
        if value < 0:
            raise InvalidFormatError(f'Negative {what}: {value}')
        return value


def _special_word(token: int, special: SpecialTokens) -> str:
    if token > special.timestamp_begin:
        return f'[_TT_{token - special.timestamp_begin}]'
    names = {
        special.end_of_transcript: '[_EOT_]',
        special.start_of_transcript: '[_SOT_]',
        special.previous_context: '[_PREV_]',
        special.start_of_lm: '[_SOLM_]',
        special.no_timestamps: '[_NOT_]',
        special.timestamp_begin: '[_BEG_]',
    }
    return names.get(token, f'[_extra_token_{token}]')


def parse_filters_and_vocab(blob: bytes, multilingual: bool) -> tuple[FilterBank, VocabularyTable]:
    """Parse a filters/vocab blob.

    Raises:
        InvalidFormatError: bad magic number or negative sizes.
        AssetIOError: the blob ends before all declared data was read.
    """
    reader = _BlobReader(blob)

    magic = reader.int32()
    if magic != MAGIC:
        raise InvalidFormatError(f'Invalid vocab file (bad magic: {magic:#x})')

    n_mel = reader.size('n_mel')
    n_fft = reader.size('n_fft')
    log.debug('n_mel: %d, n_fft: %d', n_mel, n_fft)
    raw_filters = reader.take(n_mel * n_fft * 4)
    filters = FilterBank(
        n_mel=n_mel,
        n_fft=n_fft,
        data=np.frombuffer(raw_filters, dtype='=f4').copy(),
    )

    n_vocab = reader.size('n_vocab')
    log.debug('n_vocab: %d', n_vocab)
    words: dict[int, str] = {}
    for token in range(n_vocab):
        length = reader.size('word length')
        words[token] = bytes(reader.take(length)).decode('utf-8', errors='replace')

    special = SpecialTokens.for_vocab(multilingual)
    ceiling = vocab_ceiling(multilingual)
    for token in range(n_vocab, ceiling):
        words[token] = _special_word(token, special)

    vocab = VocabularyTable(words=words, special=special, multilingual=multilingual, ceiling=ceiling)
    return filters, vocab


def load_filters_and_vocab(path: str | Path, multilingual: bool) -> tuple[FilterBank, VocabularyTable]:
    """Read and parse the blob at *path*; unreadable files raise AssetIOError."""
    try:
        blob = Path(path).read_bytes()
    except OSError as exc:
        raise AssetIOError(f'Cannot read vocab file {path}: {exc}') from exc
    log.debug('Vocab file size: %d', len(blob))
    return parse_filters_and_vocab(blob, multilingual)


def build_blob(filters: np.ndarray, words: list[str]) -> bytes:
    """Serialize a filterbank matrix and word list into the blob layout."""
    matrix = np.asarray(filters, dtype='=f4')
    n_mel, n_fft = matrix.shape
    parts = [_INT32.pack(MAGIC), _INT32.pack(n_mel), _INT32.pack(n_fft), matrix.tobytes()]
    parts.append(_INT32.pack(len(words)))
    for word in words:
        encoded = word.encode('utf-8')
        parts.append(_INT32.pack(len(encoded)))
        parts.append(encoded)
    return b''.join(parts)
