"""
Message preprocessing. Re-runnable on clean text.
Unicode normalization, filler removal, number words before time units.
"""

import re
import unicodedata
from dataclasses import dataclass

FILLER_PATTERN = re.compile(r"\b(uh+|um+|hmm+|hm+|ah+|er+|eh+)\b[,.]?", re.IGNORECASE)

WORD_NUMS = {
    "two": "2", "three": "3", "four": "4", "five": "5", "six": "6", "seven": "7",
    "eight": "8", "nine": "9", "ten": "10", "eleven": "11", "twelve": "12",
    "fifteen": "15", "twenty": "20", "thirty": "30",
}
# "three weeks ago" -> "3 weeks ago"
NUMBER_WORD_PATTERN = re.compile(
    r"\b(" + "|".join(WORD_NUMS) + r")\s+(days?|weeks?|months?|years?)\b",
    re.IGNORECASE,
)


@dataclass
class PreprocessResult:
    text: str
    original: str


def remove_fillers(text: str) -> str:
    if not text:
        return ""
    return FILLER_PATTERN.sub(" ", text)


def normalize_number_words(text: str) -> str:
    if not text:
        return ""

    def repl(m: re.Match) -> str:
        return f"{WORD_NUMS[m.group(1).lower()]} {m.group(2)}"

    return NUMBER_WORD_PATTERN.sub(repl, text)


def preprocess(text: str | None) -> PreprocessResult:
    """NFKC -> fillers -> number words -> collapse whitespace. Idempotent."""
    original = text or ""
    if not original.strip():
        return PreprocessResult("", original)
    t = unicodedata.normalize("NFKC", original)
    t = remove_fillers(t)
    t = normalize_number_words(t)
    t = re.sub(r"\s+", " ", t).strip()
    return PreprocessResult(t, original)
