"""
SymSpell Dictionary Engine
==========================
Symmetric-delete spell checking with the frequency dictionary bundled with
symspellpy, or with an explicit word list.

Features:
- Edit distance candidates ranked by word frequency
- Casing of the checked word carried to the candidates
- Personal word file loaded at start and appended on flush

Requires: pip install symspellpy
"""

from importlib import resources
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from config_logging import get_logger

from .base import CheckResult, CheckStatus, DictionaryEngine, InsertCase
from .wordlist import append_words, load_word_file

__version__ = "1.0.0"

_logger = get_logger('spell_engines.symspell')

# Bundled with symspellpy
FREQUENCY_DICT = "frequency_dictionary_en_82_765.txt"

# Frequency given to personal and session words
USER_WORD_FREQUENCY = 1000000


def bundled_dictionary_path() -> Path:
    """Location of the frequency dictionary shipped with symspellpy."""
    return Path(str(resources.files("symspellpy") / FREQUENCY_DICT))


class SymSpellEngine(DictionaryEngine):
    """Dictionary engine backed by symspellpy."""

    ENGINE_NAME = "symspell"
    ENGINE_VERSION = "1.0.0"

    MAX_CANDIDATES = 20

    def __init__(
        self,
        max_edit_distance: int = 2,
        prefix_length: int = 7,
        words: Optional[Iterable[str]] = None,
        dictionary_path: Optional[Path] = None,
        personal_dict: Optional[Path] = None,
        word_list: Optional[Iterable[str]] = None
    ):
        """
        Initialize the SymSpell engine.

        Args:
            max_edit_distance: Maximum edit distance for candidates (1-3)
            prefix_length: Length of prefix to use for lookup
            words: Explicit dictionary words (replaces the bundled dictionary)
            dictionary_path: Frequency dictionary file ("term count" per line)
            personal_dict: Personal word file
            word_list: Words searched by pattern lookup
        """
        super().__init__(word_list=word_list)
        self.max_edit_distance = max_edit_distance
        self.prefix_length = prefix_length
        self.dictionary_path = Path(dictionary_path) if dictionary_path else None
        self.personal_dict = Path(personal_dict) if personal_dict else None

        self._sym_spell = None
        self._Verbosity = None
        self._personal_words = set()
        self._load_dictionaries(words)

    def _load_dictionaries(self, words: Optional[Iterable[str]]):
        """Load the frequency dictionary and the personal words."""
        try:
            from symspellpy import SymSpell, Verbosity
            self._Verbosity = Verbosity

            self._sym_spell = SymSpell(
                max_dictionary_edit_distance=self.max_edit_distance,
                prefix_length=self.prefix_length
            )

            if words is not None:
                for word in words:
                    self._sym_spell.create_dictionary_entry(word.lower(), 1)
            else:
                path = self.dictionary_path or bundled_dictionary_path()
                if not self._sym_spell.load_dictionary(str(path), term_index=0, count_index=1,
                                                       encoding='utf-8'):
                    raise FileNotFoundError(f"Dictionary not found: {path}")

            if self.personal_dict:
                for word in load_word_file(self.personal_dict):
                    self._add_entry(word)
                    self._personal_words.add(word.lower())

            self._available = True
            self._running = True
            _logger.info("SymSpell engine ready", dictionary_size=len(self._sym_spell.words),
                         personal_words=len(self._personal_words))

        except ImportError as e:
            self._error = f"symspellpy not installed: {e}"
            self._available = False

        except Exception as e:
            self._error = f"Failed to load dictionaries: {e}"
            self._available = False

    def _add_entry(self, word: str):
        self._sym_spell.create_dictionary_entry(word.lower(), USER_WORD_FREQUENCY)

    def _check(self, word: str) -> CheckResult:
        if word.lower() in self._sym_spell.words:
            return CheckResult.correct()

        suggestions = self._sym_spell.lookup(
            word,
            self._Verbosity.CLOSEST,
            max_edit_distance=self.max_edit_distance,
            transfer_casing=True
        )
        candidates = []
        for suggestion in suggestions:
            if suggestion.term not in candidates:
                candidates.append(suggestion.term)
        return CheckResult(CheckStatus.MISSPELLED, candidates=candidates[:self.MAX_CANDIDATES])

    def _insert_personal(self, word: str, case: InsertCase):
        self._add_entry(word)
        self._personal_words.add(word.lower())

    def _insert_session(self, word: str):
        self._add_entry(word)

    def _flush(self, words: List[str]) -> int:
        if not self.personal_dict:
            return 0
        written = append_words(self.personal_dict, words)
        _logger.info("Flushed personal dictionary", count=written,
                     personal_dict=self.personal_dict)
        return written

    def _word_source(self) -> Iterable[str]:
        if self._lookup_words is None:
            entries = sorted(self._sym_spell.words.items(), key=lambda item: item[1], reverse=True)
            self._lookup_words = [term for term, _ in entries]
        return self._lookup_words

    def get_status(self) -> Dict[str, Any]:
        """Get detailed status of the SymSpell engine."""
        status = self._base_status()
        status['max_edit_distance'] = self.max_edit_distance
        status['personal_words_count'] = len(self._personal_words)

        if self.is_available and self._sym_spell:
            status['dictionary_size'] = len(self._sym_spell.words)

        return status
