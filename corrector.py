"""
Spell Corrector
===============
Top-level driver: correct the nearest eligible misspelling before point.

One invocation:
1. starts a fresh correlation id and session context
2. sends the document's LocalWords to the engine as session words
3. scans back for the nearest eligible misspelling
4. runs the correction session on it
5. applies a replacement and memorizes it unless memorization was disabled
6. flushes the personal dictionary when it was modified

Usage:
    corrector = SpellCorrector(doc, engine, display, store)
    report = corrector.correct_previous_word(use_local_scope=False)
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional

from config_logging import (
    AppConfig, NoEligibleWordError, StructuredLogger, get_config, get_logger,
)
from context_classifier import ContextClassifier
from correction_session import (
    CorrectionOutcome, CorrectionSession, RecursiveEditGuard, SessionContext, SessionState,
)
from display import Display
from document import Span, TextDocument
from memory_store import MemoryStore, Scope
from spell_engines.base import DictionaryEngine, InsertScope
from word_scanner import Misspelling, WordScanner

__version__ = "1.0.0"

_logger = get_logger('corrector')


@dataclass
class CorrectionReport:
    """What one invocation did."""
    correlation_id: str
    misspelling: Misspelling
    outcome: CorrectionOutcome
    memorized: bool = False
    overwritten: bool = False
    previous_expansion: Optional[str] = None
    messages: List[str] = field(default_factory=list)

    @property
    def state(self) -> SessionState:
        return self.outcome.state

    @property
    def replacement(self) -> Optional[str]:
        return self.outcome.replacement

    @property
    def query_replace(self) -> bool:
        return self.outcome.query_replace

    @property
    def aborted(self) -> bool:
        return self.outcome.state is SessionState.ABORTED

    def to_dict(self) -> Dict[str, Any]:
        return {
            'correlation_id': self.correlation_id,
            'word': self.misspelling.word,
            'start': self.misspelling.span.start,
            'state': self.outcome.state.value,
            'replacement': self.outcome.replacement,
            'query_replace': self.outcome.query_replace,
            'memorized': self.memorized,
            'overwritten': self.overwritten,
        }


def memorized_message(trigger: str, expansion: str, scope: Scope) -> str:
    return '"%s" now expands to "%s" %sally' % (trigger.lower(), expansion.lower(), scope.value)


class SpellCorrector:
    """Correct misspellings of one document, memorizing each replacement."""

    def __init__(
        self,
        document: TextDocument,
        engine: DictionaryEngine,
        display: Display,
        store: MemoryStore,
        config: Optional[AppConfig] = None,
        logger: Optional[StructuredLogger] = None
    ):
        self.document = document
        self.engine = engine
        self.display = display
        self.store = store
        self.config = config or get_config()
        self.logger = logger or _logger

        self.classifier = ContextClassifier(document, document.grammar,
                                            comment_aware=self.config.comment_aware)
        self.scanner = WordScanner(document, engine, self.classifier)
        self.guard = RecursiveEditGuard()
        self.last_context: Optional[SessionContext] = None

    def new_context(self) -> SessionContext:
        return SessionContext(
            query_replace_choices=self.config.always_query_replace,
            origin=self.document.point,
            guard=self.guard,
        )

    def load_local_words(self) -> int:
        words = self.document.local_words()
        for word in words:
            self.engine.insert_word(word, InsertScope.SESSION)
        return len(words)

    def correct_previous_word(
        self,
        use_local_scope: bool = False,
        from_pos: Optional[int] = None,
        include_word_at_point: bool = True
    ) -> CorrectionReport:
        """
        Correct the nearest eligible misspelling before from_pos (point by
        default). A word starting exactly at from_pos is included unless
        include_word_at_point is off.

        Raises NoEligibleWordError when the scan reaches the viewport start.
        """
        correlation_id = StructuredLogger.new_correlation_id()
        context = self.new_context()
        self.last_context = context
        start_pos = self.document.point if from_pos is None else from_pos
        if include_word_at_point:
            start_pos = self._word_end_at(start_pos)

        self.load_local_words()
        misspelling = self.scanner.find_next_misspelling(start_pos, self.document.viewport_start())
        if misspelling is None:
            self.logger.info("No eligible misspelling", from_pos=start_pos)
            raise NoEligibleWordError(from_pos=start_pos)

        with self.logger.log_operation('correct_previous_word', word=misspelling.word,
                                       start=misspelling.span.start, local=use_local_scope):
            session = CorrectionSession(self.document, self.engine, self.display, context,
                                        logger=self.logger)
            outcome = session.run(misspelling)
            # A recursive edit may have moved the word
            misspelling.span = session.span

            report = CorrectionReport(correlation_id, misspelling, outcome)
            self._apply(report, context, use_local_scope)

            if context.dictionary_modified:
                self.engine.flush_personal_dictionary()
                context.dictionary_modified = False

        for message in report.messages:
            self.display.message(message)
        return report

    def _word_end_at(self, pos: int) -> int:
        found = self.document.word_at(pos)
        if found is not None and found[1].start == pos:
            return found[1].end
        return pos

    def _apply(self, report: CorrectionReport, context: SessionContext, use_local_scope: bool):
        outcome = report.outcome
        span = report.misspelling.span

        if outcome.state is SessionState.ABORTED:
            self.document.point = outcome.resume_at
            return
        if outcome.state is not SessionState.REPLACED or not outcome.replacement:
            return

        self.document.replace(span, outcome.replacement)
        self.document.point = span.start + len(outcome.replacement)

        if not context.memorize:
            self.logger.debug("Memorization disabled", word=report.misspelling.word)
            return

        scope = Scope.LOCAL if use_local_scope else Scope.GLOBAL
        document_id = self.document.document_id if use_local_scope else None
        trigger = report.misspelling.word
        previous = self.store.lookup(trigger, scope, document_id)
        report.overwritten = self.store.record(trigger, outcome.replacement, scope, document_id)
        report.memorized = trigger.lower() != outcome.replacement.lower()
        if report.memorized:
            report.previous_expansion = previous
            message = memorized_message(trigger, outcome.replacement, scope)
            if report.overwritten:
                message += f' (was "{previous}")'
            report.messages.append(message)

    # ------------------------------------------------------------------
    # Multi-word helpers
    # ------------------------------------------------------------------

    def correct_all(self, use_local_scope: bool = False, from_pos: Optional[int] = None
                    ) -> Iterator[CorrectionReport]:
        """
        Keep correcting backward until nothing is left or a session aborts.

        The viewport is widened to the top of the document.
        """
        self.document.set_viewport(0, len(self.document.text))
        pos = self.document.point if from_pos is None else from_pos
        first = True
        while True:
            try:
                report = self.correct_previous_word(use_local_scope, from_pos=pos,
                                                     include_word_at_point=first)
            except NoEligibleWordError:
                return
            yield report
            if report.aborted:
                return
            first = False
            pos = report.misspelling.span.start

    def query_replace_occurrences(self, original: str, replacement: str,
                                  from_pos: Optional[int] = None) -> int:
        """
        Ask about each later occurrence of original and replace the accepted
        ones. Returns the number replaced.

        Keys: y/SPC replace, n/DEL skip, ! replace all the rest, q/RET stop.
        """
        pattern = re.compile(r'(?<![^\W\d_])' + re.escape(original) + r'(?![^\W\d_])')
        pos = self.document.point if from_pos is None else from_pos
        replace_rest = False
        count = 0

        while True:
            match = self.document.search_forward(pattern, pos)
            if match is None:
                break
            span = Span(match.start(), match.end())
            if not replace_rest:
                self.document.highlight(span)
                self.display.message(f'Query replacing "{original}" with "{replacement}" (y/n/!/q)')
                key = self.display.read_key()
                self.document.clear_highlight()
                if key in ('q', '\r', '\n', '\x1b'):
                    break
                if key in ('n', '\x7f'):
                    pos = span.end
                    continue
                if key == '!':
                    replace_rest = True
                elif key not in ('y', ' '):
                    self.display.bell()
                    continue
            self.document.replace(span, replacement)
            pos = span.start + len(replacement)
            count += 1

        self.display.message(f"Replaced {count} occurrence{'s' if count != 1 else ''}")
        self.logger.info("Query replace finished", original=original, replacement=replacement,
                         count=count)
        return count
