#!/usr/bin/env python3
"""
Document Editing Surface v1.0.0
===============================
Position model over a text buffer used by the scanner and the session.

Features:
- Backward/forward word motion and word-at-point lookup
- Bounded regexp search in both directions
- Viewport tracking (the range scanning may walk back through)
- Highlight of the word under correction
- Per-document accepted words ("LocalWords:" comment lines)

Usage:
    from document import TextDocument

    doc = TextDocument.from_file('paper.tex')
    start = doc.backward_word(doc.point)
    word, span = doc.word_at(start)
"""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from markup_grammar import MarkupGrammar, grammar_for_path

__version__ = "1.0.0"

# Letters with internal apostrophes ("don't", "l'homme")
WORD_PATTERN = re.compile(r"[^\W\d_]+(?:['’][^\W\d_]+)*")

# Width of a LocalWords comment line before a new one is started
LOCAL_WORDS_LINE_WIDTH = 70


@dataclass(frozen=True)
class Span:
    """Extent of exactly one token."""
    start: int
    end: int

    def __post_init__(self):
        if self.start > self.end:
            raise ValueError(f"Span start {self.start} is after end {self.end}")

    def __len__(self) -> int:
        return self.end - self.start

    def __contains__(self, pos: int) -> bool:
        return self.start <= pos < self.end


class EditingSurface(ABC):
    """
    The document/editing surface consumed by the correction machinery.

    Positions are integer character offsets. Hosts embedding the corrector
    implement this interface; TextDocument is the in-memory version used by
    the command line tool and the tests.
    """

    @property
    @abstractmethod
    def text(self) -> str:
        """Full text of the document."""

    @property
    @abstractmethod
    def point(self) -> int:
        """Cursor position."""

    @point.setter
    @abstractmethod
    def point(self, pos: int):
        pass

    @abstractmethod
    def backward_word(self, pos: int) -> Optional[int]:
        """Start of the word at or before pos, or None at the top."""

    @abstractmethod
    def forward_word(self, pos: int) -> Optional[int]:
        """End of the next word after pos, or None at the bottom."""

    @abstractmethod
    def word_at(self, pos: int) -> Optional[Tuple[str, Span]]:
        """The word containing or starting at pos."""

    @abstractmethod
    def search_backward(self, pattern, pos: int, bound: int = 0) -> Optional['re.Match']:
        """Last match of pattern lying within [bound, pos)."""

    @abstractmethod
    def search_forward(self, pattern, pos: int, bound: Optional[int] = None) -> Optional['re.Match']:
        """First match of pattern lying within [pos, bound)."""

    @abstractmethod
    def viewport_start(self) -> int:
        """First visible position."""

    @abstractmethod
    def is_visible(self, pos: int) -> bool:
        """Whether pos lies inside the viewport."""

    @abstractmethod
    def line_beginning(self, pos: int) -> int:
        """Position of the start of the line containing pos."""

    @abstractmethod
    def highlight(self, span: Span):
        """Mark span as the word under correction."""

    @abstractmethod
    def clear_highlight(self):
        pass

    @abstractmethod
    def replace(self, span: Span, replacement: str):
        """Substitute the text in span."""

    @abstractmethod
    def recursive_edit(self, pos: int):
        """Hand control to the host at pos until it resumes."""

    def char_before(self, pos: int) -> str:
        """Character immediately before pos, or '' at the top."""
        if pos <= 0:
            return ''
        return self.text[pos - 1]

    def local_words(self) -> List[str]:
        """Words accepted for this document only."""
        return []

    def add_local_word(self, word: str):
        """Record word as accepted for this document only."""
        raise NotImplementedError


class TextDocument(EditingSurface):
    """
    In-memory editing surface backed by a string.

    The viewport defaults to the whole document. Hosts with a window call
    set_viewport() or scroll_to() to narrow it.
    """

    def __init__(
        self,
        text: str,
        point: Optional[int] = None,
        path: Optional[Path] = None,
        grammar: Optional[MarkupGrammar] = None,
        recursive_edit_hook: Optional[Callable[['TextDocument', int], None]] = None
    ):
        self._text = text
        self._point = len(text) if point is None else self._clamp(point)
        self.path = Path(path) if path else None
        self.grammar = grammar or grammar_for_path(self.path)
        self.recursive_edit_hook = recursive_edit_hook
        self.highlighted: Optional[Span] = None
        self.modified = False
        self._viewport: Tuple[int, int] = (0, len(text))

    @classmethod
    def from_file(cls, path, point: Optional[int] = None, **kwargs) -> 'TextDocument':
        """Load a document from disk (UTF-8)."""
        path = Path(path)
        with open(path, 'r', encoding='utf-8') as f:
            text = f.read()
        return cls(text, point=point, path=path, **kwargs)

    def save(self, path: Optional[Path] = None) -> Path:
        """Write the document back to disk."""
        target = Path(path) if path else self.path
        if target is None:
            raise ValueError("Document has no path to save to")
        with open(target, 'w', encoding='utf-8') as f:
            f.write(self._text)
        self.modified = False
        return target

    @property
    def document_id(self) -> str:
        """Identifier used to scope local corrections."""
        return str(self.path.resolve()) if self.path else '<buffer>'

    # ------------------------------------------------------------------
    # Text and point
    # ------------------------------------------------------------------

    @property
    def text(self) -> str:
        return self._text

    def set_text(self, text: str):
        """Replace the whole buffer (after an external edit)."""
        if text != self._text:
            self._text = text
            self.modified = True
        self._point = self._clamp(self._point)
        self._viewport = (self._clamp(self._viewport[0]), self._clamp(self._viewport[1]))

    @property
    def point(self) -> int:
        return self._point

    @point.setter
    def point(self, pos: int):
        self._point = self._clamp(pos)

    def _clamp(self, pos: int) -> int:
        return max(0, min(pos, len(self._text)))

    def position_of(self, line: int, column: int = 0) -> int:
        """Offset of a 1-based line and 0-based column."""
        if line < 1:
            raise ValueError(f"Line numbers start at 1, got {line}")
        offset = 0
        for _ in range(line - 1):
            newline = self._text.find('\n', offset)
            if newline < 0:
                return len(self._text)
            offset = newline + 1
        line_end = self._text.find('\n', offset)
        if line_end < 0:
            line_end = len(self._text)
        return min(offset + column, line_end)

    def line_number(self, pos: int) -> int:
        """1-based line number of pos."""
        return self._text.count('\n', 0, self._clamp(pos)) + 1

    # ------------------------------------------------------------------
    # Motion and search
    # ------------------------------------------------------------------

    def line_beginning(self, pos: int) -> int:
        return self._text.rfind('\n', 0, self._clamp(pos)) + 1

    def line_end(self, pos: int) -> int:
        end = self._text.find('\n', self._clamp(pos))
        return len(self._text) if end < 0 else end

    def backward_word(self, pos: int) -> Optional[int]:
        pos = self._clamp(pos)
        line_start = self.line_beginning(pos)
        while True:
            last = None
            for m in WORD_PATTERN.finditer(self._text, line_start, pos):
                last = m
            if last is not None:
                return last.start()
            if line_start == 0:
                return None
            pos = line_start - 1
            line_start = self.line_beginning(pos)

    def forward_word(self, pos: int) -> Optional[int]:
        m = WORD_PATTERN.search(self._text, self._clamp(pos))
        return m.end() if m else None

    def word_at(self, pos: int) -> Optional[Tuple[str, Span]]:
        pos = self._clamp(pos)
        for m in WORD_PATTERN.finditer(self._text, self.line_beginning(pos), self.line_end(pos)):
            if m.start() <= pos <= m.end():
                return m.group(), Span(m.start(), m.end())
            if m.start() > pos:
                break
        return None

    def search_backward(self, pattern, pos: int, bound: int = 0) -> Optional['re.Match']:
        if isinstance(pattern, str):
            pattern = re.compile(pattern)
        last = None
        for m in pattern.finditer(self._text, self._clamp(bound), self._clamp(pos)):
            last = m
        return last

    def search_forward(self, pattern, pos: int, bound: Optional[int] = None) -> Optional['re.Match']:
        if isinstance(pattern, str):
            pattern = re.compile(pattern)
        end = len(self._text) if bound is None else self._clamp(bound)
        return pattern.search(self._text, self._clamp(pos), end)

    # ------------------------------------------------------------------
    # Viewport and highlight
    # ------------------------------------------------------------------

    def viewport_start(self) -> int:
        return self._viewport[0]

    def viewport_end(self) -> int:
        return self._viewport[1]

    def set_viewport(self, start: int, end: int):
        start, end = self._clamp(start), self._clamp(end)
        if start > end:
            raise ValueError(f"Viewport start {start} is after end {end}")
        self._viewport = (start, end)

    def scroll_to(self, pos: int, lines: int):
        """Show `lines` lines ending with the line that contains pos."""
        end = self.line_end(pos)
        start = self.line_beginning(pos)
        for _ in range(max(lines, 1) - 1):
            if start == 0:
                break
            start = self.line_beginning(start - 1)
        self._viewport = (start, end)

    def is_visible(self, pos: int) -> bool:
        return self._viewport[0] <= pos <= self._viewport[1]

    def highlight(self, span: Span):
        self.highlighted = span

    def clear_highlight(self):
        self.highlighted = None

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------

    def replace(self, span: Span, replacement: str):
        if span.end > len(self._text):
            raise ValueError(f"Span {span} is outside the document")
        self._text = self._text[:span.start] + replacement + self._text[span.end:]
        delta = len(replacement) - len(span)
        if self._point >= span.end:
            self._point += delta
        elif self._point > span.start:
            self._point = span.start + len(replacement)
        start, end = self._viewport
        if end >= span.end:
            end += delta
        self._viewport = (min(start, len(self._text)), max(min(end, len(self._text)), 0))
        self.modified = True

    def recursive_edit(self, pos: int):
        self._point = self._clamp(pos)
        if self.recursive_edit_hook is not None:
            self.recursive_edit_hook(self, pos)

    # ------------------------------------------------------------------
    # Per-document accepted words
    # ------------------------------------------------------------------

    def local_words(self) -> List[str]:
        pattern = self.grammar.local_words_pattern()
        if pattern is None:
            return []
        words: List[str] = []
        for m in pattern.finditer(self._text):
            for word in m.group(1).split():
                if word not in words:
                    words.append(word)
        return words

    def add_local_word(self, word: str):
        """
        Append word to the last LocalWords comment line, starting a new line
        at the end of the document when there is none or it is full.
        """
        pattern = self.grammar.local_words_pattern()
        if pattern is None:
            raise ValueError(f"Grammar '{self.grammar.name}' has no comment syntax for local words")
        if word in self.local_words():
            return

        last = None
        for m in pattern.finditer(self._text):
            last = m
        if last is not None and len(last.group(0)) + len(word) + 1 <= LOCAL_WORDS_LINE_WIDTH:
            insert_at = last.end()
            self._text = self._text[:insert_at] + ' ' + word + self._text[insert_at:]
            if self._point >= insert_at:
                self._point += len(word) + 1
        else:
            prefix = '' if not self._text or self._text.endswith('\n') else '\n'
            self._text += f"{prefix}{self.grammar.comment_start} {self.grammar.local_words_marker} {word}\n"
        self.modified = True
