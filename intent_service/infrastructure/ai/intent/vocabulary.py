"""
Bag-of-words feature extraction.

The vocabulary and label order produced here become the column and output
order of the trained network, so both are fully sorted and independent of
the order intents appear in the catalog.
"""

import re
from typing import Iterable, List, Sequence, Tuple

import numpy as np

from intent_service.domain.models.intent import Catalog

_TOKEN_PATTERN = re.compile(r"\w+")

MIN_TOKEN_LENGTH = 2


def tokenize(text: str) -> List[str]:
    """
    Split text into case-folded word tokens.

    Any non-word character acts as a separator, so punctuation never ends
    up inside a token.

    Args:
        text: Raw text

    Returns:
        Tokens in their original order, duplicates included
    """
    return _TOKEN_PATTERN.findall(text.casefold())


def build_vocabulary(catalog: Catalog) -> Tuple[Tuple[str, ...], Tuple[str, ...]]:
    """
    Derive the vocabulary and label set of a catalog.

    Intents without patterns are skipped: they add neither tokens nor a
    label.

    Args:
        catalog: Intent catalog

    Returns:
        (vocabulary, labels), both sorted by code point
    """
    words = set()
    labels = set()
    for intent in catalog.intents:
        if not intent.patterns:
            continue
        labels.add(intent.tag)
        for pattern in intent.patterns:
            words.update(
                token for token in tokenize(pattern)
                if len(token) >= MIN_TOKEN_LENGTH
            )
    return tuple(sorted(words)), tuple(sorted(labels))


def encode(utterance: str, vocabulary: Sequence[str]) -> np.ndarray:
    """
    Encode an utterance as a presence vector over the vocabulary.

    Args:
        utterance: Text to encode
        vocabulary: Sorted vocabulary the model was trained with

    Returns:
        float32 vector of 0/1 values, one position per vocabulary word
    """
    index = {word: position for position, word in enumerate(vocabulary)}
    bag = np.zeros(len(vocabulary), dtype=np.float32)
    for token in tokenize(utterance):
        position = index.get(token)
        if position is not None:
            bag[position] = 1.0
    return bag


def bag_of_words(utterances: Iterable[str], vocabulary: Sequence[str]) -> np.ndarray:
    """Stack the encodings of several utterances into a 2-D matrix."""
    rows = [encode(utterance, vocabulary) for utterance in utterances]
    if not rows:
        return np.zeros((0, len(vocabulary)), dtype=np.float32)
    return np.vstack(rows)
