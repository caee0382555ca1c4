"""Use case: turn engine output token ids into text."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from pocket_whisper.l1_entities.vocabulary import VocabularyTable

log = logging.getLogger('pw.engine')


def decode_tokens(token_ids: Iterable[int], vocab: VocabularyTable) -> str:
    """Concatenate the words of *token_ids* up to the end-of-transcript token.

    Special and timestamp tokens (every id at or above end-of-transcript) are
    skipped.
    """
    eot = vocab.end_of_transcript
    words: list[str] = []
    for raw in token_ids:
        token = int(raw)
        if token == eot:
            break
        if token < eot:
            word = vocab.word_for(token)
            if word is not None:
                words.append(word)
            continue
        if token == vocab.transcribe:
            log.debug('Task token: transcribe')
        elif token == vocab.translate:
            log.debug('Task token: translate')
        log.debug('Skipping token: %d, word: %s', token, vocab.word_for(token))
    return ''.join(words)
