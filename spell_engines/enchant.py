"""
PyEnchant Dictionary Engine
===========================
Checks words against an enchant dictionary (hunspell, aspell, nuspell
backends) with an optional personal word list.

Features:
- Personal word list via enchant.DictWithPWL
- Domain word files loaded as session words
- Personal insertions buffered until flush

Requires: pip install pyenchant
Note: macOS may need: brew install enchant
"""

from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from config_logging import get_logger

from .base import CheckResult, CheckStatus, DictionaryEngine, InsertCase
from .wordlist import load_word_file

__version__ = "1.0.0"

_logger = get_logger('spell_engines.enchant')


class EnchantEngine(DictionaryEngine):
    """Dictionary engine backed by pyenchant."""

    ENGINE_NAME = "enchant"
    ENGINE_VERSION = "1.0.0"

    # Suggestions offered per misspelling
    MAX_CANDIDATES = 20

    def __init__(
        self,
        language: str = 'en_US',
        personal_dict: Optional[Path] = None,
        domain_files: Optional[List[Path]] = None,
        word_list: Optional[Iterable[str]] = None
    ):
        """
        Initialize the enchant engine.

        Args:
            language: Dictionary tag (default: en_US)
            personal_dict: Path to the personal word list
            domain_files: Word files accepted for the whole session
            word_list: Words searched by pattern lookup
        """
        super().__init__(word_list=word_list)
        self.language = language
        self.personal_dict = Path(personal_dict) if personal_dict else None
        self.domain_files = [Path(p) for p in (domain_files or [])]

        self._enchant = None
        self._dict = None
        self._initialize()

    def _initialize(self):
        """Load PyEnchant and the dictionaries."""
        try:
            import enchant
            self._enchant = enchant

            if self.personal_dict:
                self.personal_dict.parent.mkdir(parents=True, exist_ok=True)
                self._dict = enchant.DictWithPWL(self.language, str(self.personal_dict))
            else:
                self._dict = enchant.Dict(self.language)

            for path in self.domain_files:
                for word in load_word_file(path):
                    self._session_words.add(word)
                    self._dict.add_to_session(word)

            self._available = True
            self._running = True
            _logger.info("Enchant engine ready", language=self.language,
                         personal_dict=self.personal_dict,
                         session_words=len(self._session_words))

        except ImportError as e:
            self._error = f"pyenchant not installed: {e}"
            self._available = False

        except Exception as e:
            self._error = f"Failed to initialize: {e}"
            self._available = False

    def _check(self, word: str) -> CheckResult:
        if self._dict.check(word):
            return CheckResult.correct()
        candidates = self._dict.suggest(word)[:self.MAX_CANDIDATES]
        return CheckResult(CheckStatus.MISSPELLED, candidates=candidates)

    def _insert_personal(self, word: str, case: InsertCase):
        self._dict.add_to_session(word)

    def _insert_session(self, word: str):
        self._dict.add_to_session(word)

    def _flush(self, words: List[str]) -> int:
        for word in words:
            self._dict.add(word)
        _logger.info("Flushed personal dictionary", count=len(words),
                     personal_dict=self.personal_dict)
        return len(words)

    def terminate(self):
        super().terminate()
        self._dict = None

    def get_status(self) -> Dict[str, Any]:
        """Get detailed status of the enchant engine."""
        status = self._base_status()
        status['language'] = self.language
        status['personal_dict'] = str(self.personal_dict) if self.personal_dict else None

        if self.is_available and self._enchant:
            try:
                status['available_languages'] = self._enchant.list_languages()
            except Exception:
                status['available_languages'] = []

        return status
