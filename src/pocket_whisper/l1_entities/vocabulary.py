"""Vocabulary entity: token id -> word table with special-token ids."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

# English-only token ids. Multilingual vocabularies reserve one extra id
# below these, so every id except the task selectors moves up by one.
TOKEN_EOT = 50256
TOKEN_SOT = 50257
TOKEN_PREV = 50360
TOKEN_SOLM = 50361
TOKEN_NOT = 50362
TOKEN_BEG = 50363

TOKEN_TRANSLATE = 50358
TOKEN_TRANSCRIBE = 50359

N_VOCAB_ENGLISH = 51864
N_VOCAB_MULTILINGUAL = 51865


@dataclass(frozen=True)
class SpecialTokens:
    """Control token ids, fixed once the vocabulary is loaded."""

    end_of_transcript: int
    start_of_transcript: int
    previous_context: int
    start_of_lm: int
    no_timestamps: int
    timestamp_begin: int
    translate: int = TOKEN_TRANSLATE
    transcribe: int = TOKEN_TRANSCRIBE

    @classmethod
    def for_vocab(cls, multilingual: bool) -> SpecialTokens:
        shift = 1 if multilingual else 0
        return cls(
            end_of_transcript=TOKEN_EOT + shift,
            start_of_transcript=TOKEN_SOT + shift,
            previous_context=TOKEN_PREV + shift,
            start_of_lm=TOKEN_SOLM + shift,
            no_timestamps=TOKEN_NOT + shift,
            timestamp_begin=TOKEN_BEG + shift,
        )


def vocab_ceiling(multilingual: bool) -> int:
    return N_VOCAB_MULTILINGUAL if multilingual else N_VOCAB_ENGLISH


@dataclass(frozen=True)
class VocabularyTable:
    """Immutable token table built once at model-load time."""

    words: Mapping[int, str]
    special: SpecialTokens
    multilingual: bool = False
    ceiling: int = field(default=N_VOCAB_ENGLISH)

    def __post_init__(self) -> None:
        if not isinstance(self.words, MappingProxyType):
            object.__setattr__(self, 'words', MappingProxyType(dict(self.words)))

    def __len__(self) -> int:
        return len(self.words)

    def word_for(self, token_id: int) -> str | None:
        return self.words.get(token_id)

    @property
    def end_of_transcript(self) -> int:
        return self.special.end_of_transcript

    @property
    def start_of_transcript(self) -> int:
        return self.special.start_of_transcript

    @property
    def translate(self) -> int:
        return self.special.translate

    @property
    def transcribe(self) -> int:
        return self.special.transcribe

    @property
    def previous_context(self) -> int:
        return self.special.previous_context

    @property
    def start_of_lm(self) -> int:
        return self.special.start_of_lm

    @property
    def no_timestamps(self) -> int:
        return self.special.no_timestamps

    @property
    def timestamp_begin(self) -> int:
        return self.special.timestamp_begin
