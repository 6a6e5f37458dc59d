"""
Context Classifier
==================
Decides whether a word position may be offered for correction.

A position is rejected when it lies:
- inside a math region
- inside a comment (comment-aware grammars only)
- inside a skipped argument of the nearest rule-table command on its line
- right after a markup introducer character

Only the current line is searched for the enclosing command, so arguments
that span lines are not recognised.
"""

from bisect import bisect_right
from typing import List, Optional, Tuple

from document import EditingSurface
from markup_grammar import MarkupGrammar, math_regions

__version__ = "1.0.0"

REASON_MATH = "math"
REASON_COMMENT = "comment"
REASON_ARGUMENT = "argument"
REASON_INTRODUCER = "introducer"


class ContextClassifier:
    """Eligibility predicate over positions of an editing surface."""

    def __init__(
        self,
        surface: EditingSurface,
        grammar: MarkupGrammar,
        comment_aware: Optional[bool] = None
    ):
        self.surface = surface
        self.grammar = grammar
        self.comment_aware = grammar.comment_aware if comment_aware is None else comment_aware

        # Math regions depend only on the text; recomputed when it changes
        self._regions_text: Optional[str] = None
        self._region_starts: List[int] = []
        self._regions: List[Tuple[int, int]] = []

    def is_eligible(self, pos: int) -> bool:
        return self.rejection_reason(pos) is None

    def rejection_reason(self, pos: int) -> Optional[str]:
        """Name of the first rule that rejects pos, or None."""
        if self.in_math(pos):
            return REASON_MATH
        if self.comment_aware and self.in_comment(pos):
            return REASON_COMMENT
        if self.in_command_argument(pos):
            return REASON_ARGUMENT
        if self.after_introducer(pos):
            return REASON_INTRODUCER
        return None

    # ------------------------------------------------------------------
    # Rules
    # ------------------------------------------------------------------

    def in_math(self, pos: int) -> bool:
        self._refresh_regions()
        i = bisect_right(self._region_starts, pos) - 1
        if i < 0:
            return False
        start, end = self._regions[i]
        return start <= pos < end

    def in_comment(self, pos: int) -> bool:
        starter = self.grammar.comment_start
        if not starter:
            return False
        text = self.surface.text
        escape = self.grammar.escape_char
        i = self.surface.line_beginning(pos)
        while i < pos:
            if escape and text[i] == escape:
                i += 2
                continue
            if text.startswith(starter, i):
                return True
            i += 1
        return False

    def in_command_argument(self, pos: int) -> bool:
        pattern = self.grammar.command_pattern
        if pattern is None:
            return False
        line_start = self.surface.line_beginning(pos)
        match = self.surface.search_backward(pattern, pos, line_start)
        if match is None:
            return False
        rule = self.grammar.argument_rule(match.group(1))
        return rule.covers(self.surface.text, match.end(), pos, self.grammar)

    def after_introducer(self, pos: int) -> bool:
        return self.surface.char_before(pos) in self.grammar.introducer_chars

    def _refresh_regions(self):
        text = self.surface.text
        if text is not self._regions_text:
            self._regions = math_regions(text, self.grammar)
            self._region_starts = [start for start, _ in self._regions]
            self._regions_text = text
