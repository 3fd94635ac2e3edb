#!/usr/bin/env python3
"""
Title normalization and similarity scoring.
"""

import re
import unicodedata

from rapidfuzz.distance import Levenshtein

_PUNCTUATION_RE = re.compile(r'[^\w\s]')
_WHITESPACE_RE = re.compile(r'\s+')


def normalize_title(title: str) -> str:
    """
    Comparison key for a title.

    NFKC-normalized and case-folded, punctuation replaced by spaces and
    whitespace collapsed. Full-width characters fold to their ASCII forms.
    """
    if not title:
        return ""
    text = unicodedata.normalize('NFKC', title).casefold()
    text = _PUNCTUATION_RE.sub(' ', text)
    return _WHITESPACE_RE.sub(' ', text).strip()


def title_similarity(key1: str, key2: str) -> float:
    """
    Normalized Levenshtein similarity of two title keys, in [0, 1].

    Empty keys are never similar to anything, including each other.
    """
    if not key1 or not key2:
        return 0.0
    if key1 == key2:
        return 1.0
    return Levenshtein.normalized_similarity(key1, key2)
