"""
Fingerspelling Word Buffer
===========================

Collects stable letter predictions into a word. A letter arriving within
the debounce interval of the previous accepted letter is dropped, so one
held handshape does not repeat.
"""

import logging
import time
from typing import Callable, List, Optional

from signspeak.recognition.labels import LETTERS

logger = logging.getLogger(__name__)


def is_letter(label: str) -> bool:
    return label in LETTERS


def format_fingerspelled_word(word: str) -> str:
    """Capitalize the first letter, lowercase the rest."""
    return word[:1].upper() + word[1:].lower()


class FingerspellingBuffer:
    """Bounded letter buffer with per-letter debounce.

    Args:
        max_length: maximum number of letters held
        debounce_ms: minimum time between two accepted letters
        clock: time source in seconds
    """

    def __init__(self, max_length: int = 20, debounce_ms: float = 500,
                 clock: Callable[[], float] = time.time):
        self.max_length = max_length
        self.debounce_ms = debounce_ms
        self._clock = clock
        self._letters: List[str] = []
        self._last_letter_time = None

    def add_letter(self, letter: str) -> bool:
        """Append ``letter`` if valid, not debounced, and there is room."""
        if not is_letter(letter):
            return False

        now = self._clock()
        if (self._last_letter_time is not None
                and (now - self._last_letter_time) * 1000 < self.debounce_ms):
            return False
        self._last_letter_time = now

        if len(self._letters) >= self.max_length:
            return False
        self._letters.append(letter)
        return True

    @property
    def word(self) -> str:
        return "".join(self._letters)

    @property
    def letters(self) -> List[str]:
        return list(self._letters)

    def backspace(self) -> None:
        if self._letters:
            self._letters.pop()

    def clear(self) -> None:
        self._letters = []
        self._last_letter_time = None

    def is_empty(self) -> bool:
        return not self._letters

    def __len__(self) -> int:
        return len(self._letters)


class FingerspellingMode:
    """On/off fingerspelling session feeding stable predictions to a buffer.

    Example:
        >>> mode = FingerspellingMode(on_word_complete=print)
        >>> mode.activate()
        >>> mode.process_prediction("A")
        >>> mode.confirm_word()
        A
        'A'
    """

    def __init__(self, on_word_complete: Optional[Callable[[str], None]] = None,
                 buffer: FingerspellingBuffer = None):
        self.buffer = buffer or FingerspellingBuffer()
        self.on_word_complete = on_word_complete
        self._active = False

    @property
    def is_active(self) -> bool:
        return self._active

    def activate(self) -> None:
        self._active = True
        self.buffer.clear()

    def deactivate(self) -> None:
        self._active = False
        self.buffer.clear()

    def toggle(self) -> bool:
        if self._active:
            self.deactivate()
        else:
            self.activate()
        return self._active

    def process_prediction(self, label: str) -> bool:
        """Offer a stable label; only letters are buffered, only while active."""
        if not self._active or not is_letter(label):
            return False
        return self.buffer.add_letter(label)

    def confirm_word(self) -> Optional[str]:
        """Commit the buffered word, notify the callback, and clear."""
        if not self._active or self.buffer.is_empty():
            return None

        word = self.buffer.word
        self.buffer.clear()
        logger.info("Fingerspelled word: %s", word)
        if self.on_word_complete is not None:
            self.on_word_complete(word)
        return word

    @property
    def current_word(self) -> str:
        return self.buffer.word

    def backspace(self) -> None:
        self.buffer.backspace()

    def clear_buffer(self) -> None:
        self.buffer.clear()
