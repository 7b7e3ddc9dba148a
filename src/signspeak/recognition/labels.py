"""Sign vocabulary and label helpers."""

import re
from typing import List

DEFAULT_LABELS = (
    "hello",
    "yes",
    "no",
    "thank_you",
    "please",
    "help",
    "stop",
    "where",
    "bathroom",
    "ily",  # I love you
    "sorry",
    "good",
    "bad",
    "water",
    "hungry",
)

# Static fingerspelling letters (no motion required)
LETTERS = ("A", "B", "C", "D", "E", "I", "L", "O", "Y")

CATEGORY_PHRASE = "phrase"
CATEGORY_LETTER = "letter"
CATEGORY_UNKNOWN = "unknown"

NATURAL_TEXT = {
    "hello": "Hello",
    "yes": "Yes",
    "no": "No",
    "thank_you": "Thank you",
    "please": "Please",
    "help": "Help",
    "stop": "Stop",
    "where": "Where?",
    "bathroom": "Bathroom",
    "ily": "I love you",
    "sorry": "Sorry",
    "good": "Good",
    "bad": "Bad",
    "water": "Water",
    "hungry": "Hungry",
}

_VALID_LABEL = re.compile(r"^[A-Za-z0-9_]+$")


def to_natural_text(label: str) -> str:
    """Caption text for a label, e.g. "thank_you" -> "Thank you".

    Unknown labels get underscores replaced and each word capitalized.
    """
    if label in NATURAL_TEXT:
        return NATURAL_TEXT[label]
    return re.sub(r"\b\w", lambda m: m.group(0).upper(), label.replace("_", " "))


def label_category(label: str) -> str:
    if label in DEFAULT_LABELS:
        return CATEGORY_PHRASE
    if label in LETTERS:
        return CATEGORY_LETTER
    return CATEGORY_UNKNOWN


def is_valid_label(label: str) -> bool:
    """Non-empty, letters/digits/underscore only."""
    return bool(label) and _VALID_LABEL.match(label) is not None


def all_labels() -> List[str]:
    return list(DEFAULT_LABELS) + list(LETTERS)


def suggested_labels(query: str) -> List[str]:
    """Known labels containing ``query`` (case-insensitive)."""
    query = query.lower()
    return [label for label in all_labels() if query in label.lower()]
