"""
Display Surface
===============
Contract for the panel that shows the misspelled word, its labelled
candidates and a status line, and reads the user's answer.

Keystrokes are returned as one-character strings. Control keys keep their
control character ('\\x12' for C-r). A key event that is not a character
raises AmbiguousInputError.
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

__version__ = "1.0.0"

# Printable names of non-printing keys
KEY_NAMES = {
    ' ': 'SPC',
    '\r': 'RET',
    '\n': 'RET',
    '\x03': 'C-c',
    '\x12': 'C-r',
    '\x1b': 'ESC',
}

GUESS_HEADING = "Affix rules generate and capitalize this word as shown below:"


def key_name(key: str) -> str:
    """Readable name of a keystroke."""
    if key in KEY_NAMES:
        return KEY_NAMES[key]
    if len(key) == 1 and ord(key) < 32:
        return 'C-' + chr(ord(key) + 96)
    return key


def format_choices(
    candidates: Sequence[str],
    labels: Sequence[str],
    guesses: Sequence[str] = (),
    width: int = 80
) -> List[str]:
    """
    Lay out labelled candidates as "(label) word" cells packed into lines no
    wider than width. Candidates without a label are left out. Guesses
    follow, unlabelled, under their own heading.
    """
    lines: List[str] = []
    current = ''
    for label, candidate in zip(labels, candidates):
        cell = f"({label}) {candidate}"
        if current and len(current) + 2 + len(cell) > width:
            lines.append(current)
            current = cell
        else:
            current = f"{current}  {cell}" if current else cell
    if current:
        lines.append(current)

    if guesses:
        lines.append(GUESS_HEADING)
        current = ''
        for guess in guesses:
            if current and len(current) + 1 + len(guess) > width:
                lines.append(current)
                current = guess
            else:
                current = f"{current} {guess}" if current else guess
        if current:
            lines.append(current)
    return lines


class Display(ABC):
    """Interactive surface used by a correction session."""

    @abstractmethod
    def render_choices(
        self,
        word: str,
        candidates: Sequence[str],
        labels: Sequence[str],
        guesses: Sequence[str] = ()
    ):
        """Show the misspelled word with its labelled candidates."""

    @abstractmethod
    def message(self, text: str):
        """Show text on the status line."""

    @abstractmethod
    def show_help(self, text: str):
        """Show the command help until the next key."""

    @abstractmethod
    def read_key(self) -> str:
        """Block for one keystroke."""

    @abstractmethod
    def read_line(self, prompt: str, initial: str = '') -> Optional[str]:
        """Block for a line of text. None when the user cancels."""

    @abstractmethod
    def confirm(self, prompt: str) -> bool:
        """Ask a yes/no question."""

    @abstractmethod
    def bell(self):
        pass

    def clear_choices(self):
        """Remove the choice panel."""
