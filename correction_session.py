"""
Correction Session
==================
Interactive command loop for one misspelled word.

The session renders the word with its labelled candidates, reads single
keystroke commands and runs until the word is replaced, skipped or the
session is aborted. Dictionary mutations go to the engine; flags that must
outlive the loop (memorization, dirty dictionary, dirty buffer) live in a
SessionContext owned by the caller.

Candidate labels run from '0' to '~', skipping every printable command key.
"""

import re
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

from config_logging import (
    AmbiguousInputError, RecursiveEditConflictError, StructuredLogger, get_logger,
)
from display import Display, key_name
from document import EditingSurface, Span
from spell_engines.base import DictionaryEngine, InsertCase, InsertScope
from word_scanner import Misspelling

__version__ = "1.0.0"

_logger = get_logger('correction_session')


class Action(Enum):
    ACCEPT_ONCE = "accept_once"
    ACCEPT_INSERT_DICT = "accept_insert_dict"
    ACCEPT_INSERT_LOWER = "accept_insert_lower"
    ACCEPT_SESSION = "accept_session"
    ACCEPT_BUFFER = "accept_buffer"
    REPLACE = "replace"
    QUERY_REPLACE = "query_replace"
    HELP = "help"
    SKIP = "skip"
    QUIT_SAVE_POSITION = "quit_save_position"
    QUIT_DISCARD_POSITION = "quit_discard_position"
    KILL_ENGINE = "kill_engine"
    LOOKUP_PATTERN = "lookup_pattern"
    RAW_INSERT = "raw_insert"
    RECURSIVE_EDIT = "recursive_edit"
    TOGGLE_MEMORIZATION = "toggle_memorization"
    SELECT_CANDIDATE = "select_candidate"
    UNRECOGNIZED = "unrecognized"


COMMAND_KEYS: Dict[str, Action] = {
    ' ': Action.ACCEPT_ONCE,
    'i': Action.ACCEPT_INSERT_DICT,
    'u': Action.ACCEPT_INSERT_LOWER,
    'a': Action.ACCEPT_SESSION,
    'A': Action.ACCEPT_BUFFER,
    'r': Action.REPLACE,
    'R': Action.QUERY_REPLACE,
    '?': Action.HELP,
    '\r': Action.SKIP,
    '\n': Action.SKIP,
    'x': Action.QUIT_SAVE_POSITION,
    'X': Action.QUIT_DISCARD_POSITION,
    'q': Action.KILL_ENGINE,
    'l': Action.LOOKUP_PATTERN,
    'm': Action.RAW_INSERT,
    '\x12': Action.RECURSIVE_EDIT,       # C-r
    '\x03': Action.TOGGLE_MEMORIZATION,  # C-c
}

LABEL_FIRST = '0'
LABEL_LAST = '~'

LABEL_ALPHABET = ''.join(
    chr(code) for code in range(ord(LABEL_FIRST), ord(LABEL_LAST) + 1)
    if chr(code) not in COMMAND_KEYS
)

# How far past the old span a word is looked for after a recursive edit
RELOCATE_WINDOW = 200

HELP_TEXT = """\
Correction commands:

DIGIT  Replace the word with the candidate labelled DIGIT
SPC    Accept the word this time only
RET    Skip the word
i      Accept the word and insert it in the personal dictionary
u      Like i, but insert the word in lower case
a      Accept the word for the rest of this session
A      Like a, and record it in the document's LocalWords
r      Replace the word with typed text
R      Replace the word with typed text, then query-replace the rest
l      Look up words matching a pattern (* is a wildcard)
m      Insert typed text in the personal dictionary
x      Stop and put the cursor back where it was
X      Stop and leave the cursor at this word
q      Stop and kill the spell checker process
C-r    Recursive edit; resume correcting when it returns
C-c    Do not memorize the correction made in this session
?      Show this help
"""


def choice_labels(count: int) -> List[str]:
    """Labels for the first count candidates. Excess candidates get none."""
    return list(LABEL_ALPHABET[:count])


def parse_key(key: str, candidate_count: int) -> Tuple[Action, Optional[int]]:
    """
    Map a keystroke to an action.

    Command keys win over labels; a label only selects when a candidate
    with that index exists.
    """
    if key in COMMAND_KEYS:
        return COMMAND_KEYS[key], None
    index = LABEL_ALPHABET.find(key) if len(key) == 1 else -1
    if 0 <= index < candidate_count:
        return Action.SELECT_CANDIDATE, index
    return Action.UNRECOGNIZED, None


class SessionState(Enum):
    PROMPTING = "prompting"
    REPLACED = "replaced"
    SKIPPED = "skipped"
    ABORTED = "aborted"


@dataclass
class CorrectionOutcome:
    """How a session ended."""
    state: SessionState
    replacement: Optional[str] = None
    query_replace: bool = False
    resume_at: Optional[int] = None

    @classmethod
    def skipped(cls) -> 'CorrectionOutcome':
        return cls(SessionState.SKIPPED)

    @classmethod
    def replaced(cls, replacement: str, query_replace: bool = False) -> 'CorrectionOutcome':
        return cls(SessionState.REPLACED, replacement=replacement, query_replace=query_replace)

    @classmethod
    def aborted(cls, resume_at: int) -> 'CorrectionOutcome':
        return cls(SessionState.ABORTED, resume_at=resume_at)


class RecursiveEditGuard:
    """Allows at most one pending recursive edit."""

    def __init__(self):
        self.pending = False

    @contextmanager
    def hold(self):
        if self.pending:
            raise RecursiveEditConflictError()
        self.pending = True
        try:
            yield
        finally:
            self.pending = False


@dataclass
class SessionContext:
    """State shared between the session and the invocation that runs it."""
    memorize: bool = True
    query_replace_choices: bool = False
    dictionary_modified: bool = False
    buffer_modified: bool = False
    origin: Optional[int] = None
    guard: RecursiveEditGuard = field(default_factory=RecursiveEditGuard)


class CorrectionSession:
    """
    State machine for one misspelling.

    Usage:
        session = CorrectionSession(doc, engine, display, SessionContext(origin=doc.point))
        outcome = session.run(misspelling)
    """

    def __init__(
        self,
        surface: EditingSurface,
        engine: DictionaryEngine,
        display: Display,
        context: SessionContext,
        logger: Optional[StructuredLogger] = None
    ):
        self.surface = surface
        self.engine = engine
        self.display = display
        self.context = context
        self.logger = logger or _logger

        self.state = SessionState.PROMPTING
        self.word = ''
        self.span: Optional[Span] = None
        self.candidates: List[str] = []
        self.guesses: List[str] = []
        self.labels: List[str] = []

    def run(self, misspelling: Misspelling) -> CorrectionOutcome:
        """Prompt until the word is replaced, skipped or the session aborts."""
        self.state = SessionState.PROMPTING
        self.word = misspelling.word
        self.span = misspelling.span
        self.candidates = list(misspelling.candidates)
        self.guesses = list(misspelling.guesses)
        self.labels = choice_labels(len(self.candidates))

        self.surface.highlight(self.span)
        self.render()
        try:
            while True:
                try:
                    key = self.display.read_key()
                except AmbiguousInputError as e:
                    self.logger.info("Aborted on non-character input", word=self.word,
                                     event=e.details.get('event'))
                    return self._finish(self._quit(self.span.start))

                action, index = parse_key(key, len(self.candidates))
                self.logger.debug("Session action", word=self.word, key=key_name(key),
                                  action=action.value, index=index)
                outcome = self.handle(action, index)
                if outcome is not None:
                    return self._finish(outcome)
        finally:
            self.surface.clear_highlight()
            self.display.clear_choices()

    def render(self):
        self.display.render_choices(self.word, self.candidates, self.labels, self.guesses)

    def _finish(self, outcome: CorrectionOutcome) -> CorrectionOutcome:
        self.state = outcome.state
        return outcome

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def handle(self, action: Action, index: Optional[int] = None) -> Optional[CorrectionOutcome]:
        """Run one action. Returns the outcome, or None to keep prompting."""
        if action is Action.ACCEPT_ONCE or action is Action.SKIP:
            return CorrectionOutcome.skipped()

        if action is Action.ACCEPT_INSERT_DICT or action is Action.ACCEPT_INSERT_LOWER:
            case = InsertCase.LOWERCASE if action is Action.ACCEPT_INSERT_LOWER else InsertCase.AS_TYPED
            self.engine.insert_word(self.word, InsertScope.PERSONAL, case)
            self.context.dictionary_modified = True
            return CorrectionOutcome.skipped()

        if action is Action.ACCEPT_SESSION or action is Action.ACCEPT_BUFFER:
            self.engine.insert_word(self.word, InsertScope.SESSION)
            if action is Action.ACCEPT_BUFFER:
                self._accept_in_buffer()
            return CorrectionOutcome.skipped()

        if action is Action.REPLACE or action is Action.QUERY_REPLACE:
            prompt = "Query-replacement for " if action is Action.QUERY_REPLACE else "Replacement for "
            text = self.display.read_line(f'{prompt}"{self.word}": ', self.word)
            if not text:
                self.render()
                return None
            return CorrectionOutcome.replaced(text, query_replace=action is Action.QUERY_REPLACE)

        if action is Action.HELP:
            self.display.show_help(HELP_TEXT)
            self.render()
            return None

        if action is Action.SELECT_CANDIDATE:
            if index is None or not 0 <= index < len(self.candidates):
                self.display.bell()
                return None
            return CorrectionOutcome.replaced(
                self.candidates[index], query_replace=self.context.query_replace_choices
            )

        if action is Action.LOOKUP_PATTERN:
            self._lookup()
            return None

        if action is Action.RAW_INSERT:
            text = self.display.read_line("Insert: ", self.word)
            if not text:
                self.render()
                return None
            self.engine.insert_word(text, InsertScope.PERSONAL)
            self.context.dictionary_modified = True
            return CorrectionOutcome.skipped()

        if action is Action.RECURSIVE_EDIT:
            return self._recursive_edit()

        if action is Action.TOGGLE_MEMORIZATION:
            self.context.memorize = False
            self.display.message("Memorization of this correction disabled")
            return None

        if action is Action.QUIT_SAVE_POSITION:
            resume = self.context.origin if self.context.origin is not None else self.span.end
            self.logger.info("Session quit", word=self.word, resume_at=resume)
            return self._quit(resume)

        if action is Action.QUIT_DISCARD_POSITION:
            self.logger.info("Session quit at word", word=self.word, resume_at=self.span.start)
            return self._quit(self.span.start)

        if action is Action.KILL_ENGINE:
            if not self.display.confirm("Really kill the spell checker process?"):
                self.render()
                return None
            resume = self.context.origin if self.context.origin is not None else self.span.start
            outcome = self._quit(resume)
            self.engine.terminate()
            self.logger.info("Engine killed", word=self.word, resume_at=resume)
            return outcome

        self.display.bell()
        return None

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _quit(self, resume_at: int) -> CorrectionOutcome:
        self.engine.flush_personal_dictionary()
        self.context.dictionary_modified = False
        return CorrectionOutcome.aborted(resume_at)

    def _accept_in_buffer(self):
        try:
            self.surface.add_local_word(self.word)
        except (NotImplementedError, ValueError) as e:
            self.logger.warning("Cannot record local word", word=self.word, error=str(e))
            self.display.message(f'"{self.word}" accepted for this session only')
            return
        self.context.buffer_modified = True

    def _lookup(self):
        pattern = self.display.read_line("Lookup string ('*' is wildcard): ")
        if not pattern:
            self.render()
            return
        try:
            matches = self.engine.lookup_pattern(pattern)
        except ValueError as e:
            self.display.message(str(e))
            self.display.bell()
            return
        if not matches:
            self.display.message(f"No words match {pattern}")
            self.render()
            return
        self.candidates = matches
        self.guesses = []
        self.labels = choice_labels(len(matches))
        self.render()

    def _recursive_edit(self) -> Optional[CorrectionOutcome]:
        try:
            with self.context.guard.hold():
                self.surface.clear_highlight()
                self.display.clear_choices()
                self.surface.recursive_edit(self.span.start)
        except RecursiveEditConflictError as e:
            self.logger.warning("Recursive edit refused", word=self.word)
            self.display.message(e.message)
            self.display.bell()
            return None

        span = self._relocate()
        if span is None:
            self.logger.debug("Word gone after recursive edit", word=self.word)
            return CorrectionOutcome.skipped()
        self.span = span
        self.surface.highlight(span)
        self.render()
        return None

    def _relocate(self) -> Optional[Span]:
        """The occurrence of the word nearest its old start, if still present."""
        pattern = re.compile(r'(?<![^\W\d_])' + re.escape(self.word) + r'(?![^\W\d_])')
        text_length = len(self.surface.text)
        window_start = self.surface.line_beginning(min(self.span.start, text_length))
        bound = min(self.span.end + RELOCATE_WINDOW, text_length)

        best: Optional[Span] = None
        pos = window_start
        while True:
            match = self.surface.search_forward(pattern, pos, bound)
            if match is None:
                break
            found = Span(match.start(), match.end())
            if best is None or abs(found.start - self.span.start) < abs(best.start - self.span.start):
                best = found
            pos = match.end()
        return best
