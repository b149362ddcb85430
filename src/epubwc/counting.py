from __future__ import annotations

import unicodedata
from dataclasses import dataclass
from enum import Enum


class CountMode(str, Enum):
    WORDS = "words"
    CHARACTERS = "chars"

    @property
    def unit(self) -> str:
        return "words" if self is CountMode.WORDS else "characters"


class CharClass(Enum):
    IDEOGRAPH = "ideograph"
    WORD = "word"
    MARK = "mark"
    JOINER = "joiner"
    SEPARATOR = "separator"


@dataclass(frozen=True, slots=True)
class WordCount:
    cjk: int = 0
    other: int = 0

    @property
    def total(self) -> int:
        return self.cjk + self.other

    def __add__(self, other: object) -> "WordCount":
        if not isinstance(other, WordCount):
            return NotImplemented
        return WordCount(cjk=self.cjk + other.cjk, other=self.other + other.other)

    def __radd__(self, other: object) -> "WordCount":
        # Lets sum() start from the integer 0.
        if other == 0:
            return self
        return NotImplemented


# Characters that keep a word together when surrounded by word characters.
WORD_JOINERS = {"'", "’", "-", "‐", "_"}
# Only join when surrounded by digits: 3.14, 1,000.
NUMERIC_JOINERS = {".", ","}


def _is_cjk_char(ch: str) -> bool:
    code = ord(ch)
    return (
        0x4E00 <= code <= 0x9FFF  # CJK Unified Ideographs
        or 0x3400 <= code <= 0x4DBF  # Extension A
        or 0x20000 <= code <= 0x2A6DF  # Extension B
        or 0x2A700 <= code <= 0x2B73F  # Extension C
        or 0x2B740 <= code <= 0x2B81F  # Extension D
        or 0x2B820 <= code <= 0x2CEAF  # Extension E
        or 0x2CEB0 <= code <= 0x2EBEF  # Extension F
        or 0x30000 <= code <= 0x3134F  # Extension G
        or 0xF900 <= code <= 0xFAFF  # Compatibility Ideographs
        or 0x2F800 <= code <= 0x2FA1F  # Compatibility Supplement
        or ch in "々〆〇"
    )


def _is_kana_or_bopomofo(ch: str) -> bool:
    code = ord(ch)
    return (
        0x3041 <= code <= 0x309F  # Hiragana
        or 0x30A0 <= code <= 0x30FF  # Katakana
        or 0x31F0 <= code <= 0x31FF  # Katakana Phonetic Extensions
        or 0xFF66 <= code <= 0xFF9F  # Halfwidth Katakana
        or 0x3100 <= code <= 0x312F  # Bopomofo
        or 0x31A0 <= code <= 0x31BF  # Bopomofo Extended
    )


def classify(ch: str) -> CharClass:
    category = unicodedata.category(ch)
    if category[0] in "LN":
        if _is_cjk_char(ch) or _is_kana_or_bopomofo(ch):
            return CharClass.IDEOGRAPH
        return CharClass.WORD
    if category[0] == "M":
        return CharClass.MARK
    if ch in WORD_JOINERS or ch in NUMERIC_JOINERS:
        return CharClass.JOINER
    return CharClass.SEPARATOR


def count_words(text: str) -> WordCount:
    """Count ideographs individually and other words per run of word characters."""
    cjk = 0
    other = 0
    in_word = False
    prev = ""
    length = len(text)
    for idx, ch in enumerate(text):
        kind = classify(ch)
        if kind is CharClass.IDEOGRAPH:
            cjk += 1
            in_word = False
        elif kind is CharClass.WORD:
            if not in_word:
                other += 1
                in_word = True
        elif kind is CharClass.MARK:
            # Combining marks extend whatever precedes them.
            pass
        elif kind is CharClass.JOINER and in_word and idx + 1 < length:
            nxt = text[idx + 1]
            if classify(nxt) is not CharClass.WORD:
                in_word = False
            elif ch in NUMERIC_JOINERS and not (prev.isdigit() and nxt.isdigit()):
                in_word = False
        else:
            in_word = False
        if kind is not CharClass.MARK:
            prev = ch
    return WordCount(cjk=cjk, other=other)


def count_characters(text: str) -> WordCount:
    cjk = 0
    other = 0
    for ch in text:
        if ch.isspace():
            continue
        if classify(ch) is CharClass.IDEOGRAPH:
            cjk += 1
        else:
            other += 1
    return WordCount(cjk=cjk, other=other)


def count_text(text: str, mode: CountMode = CountMode.WORDS) -> WordCount:
    if mode is CountMode.CHARACTERS:
        return count_characters(text)
    return count_words(text)


__all__ = [
    "CountMode",
    "CharClass",
    "WordCount",
    "classify",
    "count_words",
    "count_characters",
    "count_text",
]
