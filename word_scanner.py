"""
Word Scanner
============
Walks backward from a position looking for the nearest eligible misspelling.

Positions rejected by the context classifier are never sent to the engine.
The scan stops at the viewport start or the top of the document.
"""

from dataclasses import dataclass, field
from typing import Iterator, List, Optional

from config_logging import get_logger
from context_classifier import ContextClassifier
from document import EditingSurface, Span
from spell_engines.base import CheckStatus, DictionaryEngine

__version__ = "1.0.0"

_logger = get_logger('word_scanner')


@dataclass
class Misspelling:
    """A word the engine did not recognise, with its replacements."""
    word: str
    span: Span
    candidates: List[str] = field(default_factory=list)
    guesses: List[str] = field(default_factory=list)


class WordScanner:
    """Lazy backward scan over the words of an editing surface."""

    def __init__(
        self,
        surface: EditingSurface,
        engine: DictionaryEngine,
        classifier: ContextClassifier
    ):
        self.surface = surface
        self.engine = engine
        self.classifier = classifier

    def find_next_misspelling(self, from_pos: int, viewport_start: int) -> Optional[Misspelling]:
        """Nearest misspelling starting before from_pos and not before viewport_start."""
        pos = from_pos
        while True:
            start = self.surface.backward_word(pos)
            if start is None or start < viewport_start:
                return None
            pos = start

            reason = self.classifier.rejection_reason(start)
            if reason is not None:
                _logger.debug("Skipped word", position=start, reason=reason)
                continue

            found = self.surface.word_at(start)
            if found is None:
                continue
            word, span = found

            result = self.engine.check_word(word)
            if result.status is CheckStatus.MISSPELLED:
                _logger.debug("Misspelling found", word=word, start=span.start,
                              candidates=len(result.candidates))
                return Misspelling(word, span, list(result.candidates), list(result.guesses))

    def iter_misspellings(self, from_pos: int, viewport_start: int) -> Iterator[Misspelling]:
        """Every misspelling back to viewport_start, nearest first."""
        pos = from_pos
        while True:
            misspelling = self.find_next_misspelling(pos, viewport_start)
            if misspelling is None:
                return
            yield misspelling
            pos = misspelling.span.start
