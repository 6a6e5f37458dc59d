"""
Dictionary Engine Base Classes
==============================
Contract every spell-checking engine implements.

An engine answers word checks with a CheckResult, accepts insertions into
the personal or session dictionary, looks words up by wildcard pattern, and
persists pending personal insertions on flush.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from config_logging import EngineUnavailableError

from .wordlist import load_word_file, lookup_words, system_word_file

__version__ = "1.0.0"

# Most candidates returned by a pattern lookup
LOOKUP_LIMIT = 60


class CheckStatus(Enum):
    CORRECT = "correct"
    MISSPELLED = "misspelled"
    NOT_A_WORD = "not_a_word"


class InsertScope(Enum):
    PERSONAL = "personal"
    SESSION = "session"


class InsertCase(Enum):
    AS_TYPED = "as_typed"
    LOWERCASE = "lowercase"


@dataclass
class CheckResult:
    """Answer to a single word check."""
    status: CheckStatus
    candidates: List[str] = field(default_factory=list)
    guesses: List[str] = field(default_factory=list)

    @property
    def is_misspelled(self) -> bool:
        return self.status is CheckStatus.MISSPELLED

    @classmethod
    def correct(cls) -> 'CheckResult':
        return cls(CheckStatus.CORRECT)

    @classmethod
    def not_a_word(cls) -> 'CheckResult':
        return cls(CheckStatus.NOT_A_WORD)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'status': self.status.value,
            'candidates': list(self.candidates),
            'guesses': list(self.guesses),
        }


def looks_like_word(word: str) -> bool:
    """A token is checked only if it contains a letter."""
    return any(ch.isalpha() for ch in word)


class DictionaryEngine(ABC):
    """
    Abstract base class for dictionary engines.

    Subclasses set _available/_error while loading and implement the
    _check/_insert hooks. The public methods enforce the running state.
    """

    ENGINE_NAME: str = "engine"
    ENGINE_VERSION: str = "1.0.0"

    def __init__(self, word_list: Optional[Iterable[str]] = None):
        self._available = False
        self._error: Optional[str] = None
        self._running = False
        self._session_words = set()
        self._pending_personal: List[str] = []
        self._lookup_words: Optional[List[str]] = list(word_list) if word_list is not None else None

    @property
    def is_available(self) -> bool:
        """Check if the engine loaded successfully."""
        return self._available

    @property
    def error(self) -> Optional[str]:
        """Get initialization error if any."""
        return self._error

    def is_running(self) -> bool:
        return self._available and self._running

    @property
    def pending_personal_words(self) -> List[str]:
        return list(self._pending_personal)

    def _require_running(self):
        if not self.is_running():
            raise EngineUnavailableError(
                self._error or f"{self.ENGINE_NAME} engine is not running",
                engine=self.ENGINE_NAME
            )

    # ------------------------------------------------------------------
    # Protocol
    # ------------------------------------------------------------------

    def check_word(self, word: str) -> CheckResult:
        """Check one word."""
        self._require_running()
        if not looks_like_word(word):
            return CheckResult.not_a_word()
        if word in self._session_words:
            return CheckResult.correct()
        return self._check(word)

    def insert_word(
        self,
        word: str,
        scope: InsertScope = InsertScope.PERSONAL,
        case: InsertCase = InsertCase.AS_TYPED
    ):
        """
        Accept word from now on.

        PERSONAL insertions take effect at once and are written to the
        personal dictionary on the next flush. SESSION insertions last for
        the life of the engine.
        """
        self._require_running()
        if case is InsertCase.LOWERCASE:
            word = word.lower()
        if scope is InsertScope.SESSION:
            self._session_words.add(word)
            self._insert_session(word)
        else:
            if word not in self._pending_personal:
                self._pending_personal.append(word)
            self._insert_personal(word, case)

    def lookup_pattern(self, pattern: str) -> List[str]:
        """Words matching a wildcard pattern."""
        self._require_running()
        return lookup_words(pattern, self._word_source(), limit=LOOKUP_LIMIT)

    def flush_personal_dictionary(self) -> int:
        """Persist pending personal insertions. Returns how many were written."""
        if not self._pending_personal or not self._available:
            return 0
        written = self._flush(list(self._pending_personal))
        self._pending_personal.clear()
        return written

    def terminate(self):
        """Stop the engine. Pending personal insertions are dropped."""
        self._running = False
        self._pending_personal.clear()

    @abstractmethod
    def get_status(self) -> Dict[str, Any]:
        """Get detailed status of the engine."""

    # ------------------------------------------------------------------
    # Hooks
    # ------------------------------------------------------------------

    @abstractmethod
    def _check(self, word: str) -> CheckResult:
        pass

    def _insert_personal(self, word: str, case: InsertCase):
        pass

    def _insert_session(self, word: str):
        pass

    @abstractmethod
    def _flush(self, words: List[str]) -> int:
        pass

    def _word_source(self) -> Iterable[str]:
        """Words searched by lookup_pattern."""
        if self._lookup_words is None:
            path = system_word_file()
            self._lookup_words = load_word_file(path) if path else []
        return self._lookup_words

    def _base_status(self) -> Dict[str, Any]:
        return {
            'engine': self.ENGINE_NAME,
            'available': self.is_available,
            'running': self.is_running(),
            'error': self._error,
            'session_words_count': len(self._session_words),
            'pending_personal_count': len(self._pending_personal),
        }
