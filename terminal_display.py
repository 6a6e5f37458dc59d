"""
Terminal Display
================
curses implementation of the display surface.

Layout, top to bottom:
- the document lines around the word under correction, word highlighted
- the choice panel (misspelled word, labelled candidates, guesses)
- one status line used for messages and line input

The terminal runs in raw mode so C-c arrives as a keystroke.
"""

import curses
from typing import List, Optional, Sequence

from config_logging import AmbiguousInputError, get_logger
from display import Display, format_choices
from document import TextDocument

__version__ = "1.0.0"

_logger = get_logger('terminal_display')

CANCEL_KEYS = ('\x07', '\x1b')  # C-g, ESC
BACKSPACE_KEYS = ('\x08', '\x7f')


class TerminalDisplay(Display):
    """Display surface drawn with curses."""

    def __init__(self, stdscr, document: Optional[TextDocument] = None):
        self.stdscr = stdscr
        self.document = document
        self._choice_lines: List[str] = []
        self._word = ''
        self._status = ''

        curses.raw()
        curses.noecho()
        self.stdscr.keypad(True)
        try:
            curses.curs_set(0)
        except curses.error:
            pass
        if curses.has_colors():
            curses.start_color()
            curses.use_default_colors()
            curses.init_pair(1, curses.COLOR_CYAN, -1)      # Labels
            curses.init_pair(2, curses.COLOR_RED, -1)       # Misspelled word

    # ------------------------------------------------------------------
    # Drawing
    # ------------------------------------------------------------------

    def _size(self):
        return self.stdscr.getmaxyx()

    def _addstr(self, y: int, x: int, text: str, attr: int = 0):
        height, width = self._size()
        if 0 <= y < height and x < width:
            try:
                self.stdscr.addstr(y, x, text[:max(width - x - 1, 0)], attr)
            except curses.error:
                pass

    def _color(self, pair: int) -> int:
        return curses.color_pair(pair) if curses.has_colors() else 0

    def _draw_document(self, rows: int):
        doc = self.document
        if doc is None or rows <= 0:
            return
        span = doc.highlighted
        focus = span.start if span else doc.point
        focus_line = doc.line_number(focus)
        first = max(1, focus_line - rows // 2)
        lines = doc.text.split('\n')

        for row in range(rows):
            number = first + row
            if number > len(lines):
                break
            line_start = doc.position_of(number)
            line = lines[number - 1]
            if span and line_start <= span.start <= line_start + len(line):
                col = span.start - line_start
                end = min(col + len(span), len(line))
                self._addstr(row, 0, line[:col])
                self._addstr(row, col, line[col:end], curses.A_REVERSE)
                self._addstr(row, end, line[end:])
            else:
                self._addstr(row, 0, line)

    def redraw(self):
        self.stdscr.erase()
        height, width = self._size()
        panel_rows = len(self._choice_lines) + 2 if self._word else 0
        doc_rows = height - 1 - panel_rows
        self._draw_document(doc_rows)

        if self._word:
            y = max(doc_rows, 0)
            self._addstr(y, 0, '-' * (width - 1))
            self._addstr(y + 1, 0, self._word, self._color(2) | curses.A_BOLD)
            for i, line in enumerate(self._choice_lines):
                self._addstr(y + 2 + i, 0, line, self._color(1))

        self._addstr(height - 1, 0, self._status)
        self.stdscr.refresh()

    # ------------------------------------------------------------------
    # Display contract
    # ------------------------------------------------------------------

    def render_choices(self, word, candidates, labels, guesses=()):
        _, width = self._size()
        self._word = word
        self._choice_lines = format_choices(candidates, labels, guesses, width=width - 1)
        if not candidates and not guesses:
            self._choice_lines = ["(no candidates)"]
        self.redraw()

    def clear_choices(self):
        self._word = ''
        self._choice_lines = []
        self.redraw()

    def message(self, text: str):
        self._status = text
        self.redraw()

    def show_help(self, text: str):
        self.stdscr.erase()
        for y, line in enumerate(text.splitlines()):
            self._addstr(y, 0, line)
        height, _ = self._size()
        self._addstr(height - 1, 0, "-- press any key --")
        self.stdscr.refresh()
        self._get_char()
        self.redraw()

    def _get_char(self) -> str:
        """Next character, redrawing on resize."""
        while True:
            ch = self.stdscr.get_wch()
            if isinstance(ch, str):
                return ch
            if ch == curses.KEY_RESIZE:
                self.redraw()
                continue
            if ch == curses.KEY_ENTER:
                return '\r'
            if ch == curses.KEY_BACKSPACE:
                return '\x7f'
            _logger.debug("Non-character key event", event=ch)
            raise AmbiguousInputError(event=ch)

    def read_key(self) -> str:
        return self._get_char()

    def read_line(self, prompt: str, initial: str = '') -> Optional[str]:
        buffer = list(initial)
        height, _ = self._size()
        try:
            curses.curs_set(1)
        except curses.error:
            pass
        try:
            while True:
                self._status = prompt + ''.join(buffer)
                self.redraw()
                self.stdscr.move(height - 1, min(len(self._status), self._size()[1] - 1))
                try:
                    ch = self._get_char()
                except AmbiguousInputError:
                    self.bell()
                    continue
                if ch in ('\r', '\n'):
                    return ''.join(buffer)
                if ch in CANCEL_KEYS:
                    return None
                if ch in BACKSPACE_KEYS:
                    if buffer:
                        buffer.pop()
                elif ch == '\x15':  # C-u
                    buffer.clear()
                elif ch.isprintable():
                    buffer.append(ch)
                else:
                    self.bell()
        finally:
            self._status = ''
            try:
                curses.curs_set(0)
            except curses.error:
                pass

    def confirm(self, prompt: str) -> bool:
        while True:
            self.message(f"{prompt} (y or n) ")
            ch = self._get_char()
            if ch in ('y', 'Y'):
                self.message('')
                return True
            if ch in ('n', 'N') or ch in CANCEL_KEYS:
                self.message('')
                return False
            self.bell()

    def bell(self):
        curses.beep()
