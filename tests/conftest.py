"""
Shared fixtures: a scripted display, an in-memory dictionary engine and an
isolated data directory.
"""

import os
import sys
import tempfile
from pathlib import Path

# Keep the real home directory out of the tests; modules read the config on import
os.environ['TEXSPELL_HOME'] = tempfile.mkdtemp(prefix='texspell-tests-')
os.environ['TEXSPELL_LOG_TO_FILE'] = 'false'

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import pytest

import config_logging
from config_logging import AmbiguousInputError, AppConfig
from display import Display
from document import TextDocument
from memory_store import MemoryStore, reset_store
from spell_engines import config as engine_config
from spell_engines.base import CheckResult, CheckStatus, DictionaryEngine


class FakeEngine(DictionaryEngine):
    """Dictionary engine over a fixed word set."""

    ENGINE_NAME = "fake"

    def __init__(self, known=(), suggestions=None, word_list=()):
        super().__init__(word_list=word_list)
        self.known = {w.lower() for w in known}
        self.suggestions = dict(suggestions or {})
        self.personal = []
        self.flushed = []
        self.checked = []
        self.flush_calls = 0
        self.terminated = False
        self._available = True
        self._running = True

    def _check(self, word):
        self.checked.append(word)
        if word.lower() in self.known or word in self.personal:
            return CheckResult.correct()
        return CheckResult(CheckStatus.MISSPELLED, candidates=list(self.suggestions.get(word, [])))

    def _insert_personal(self, word, case):
        self.personal.append(word)

    def _flush(self, words):
        self.flushed.extend(words)
        return len(words)

    def flush_personal_dictionary(self):
        self.flush_calls += 1
        return super().flush_personal_dictionary()

    def terminate(self):
        super().terminate()
        self.terminated = True

    def get_status(self):
        return self._base_status()


class ScriptedDisplay(Display):
    """
    Display that replays scripted input.

    keys may contain exception instances, which read_key raises.
    """

    def __init__(self, keys=(), lines=(), confirms=()):
        self.keys = list(keys)
        self.lines = list(lines)
        self.confirms = list(confirms)
        self.renders = []
        self.messages = []
        self.helps = 0
        self.bells = 0
        self.prompts = []
        self.cleared = 0

    def render_choices(self, word, candidates, labels, guesses=()):
        self.renders.append((word, list(candidates), list(labels), list(guesses)))

    def message(self, text):
        self.messages.append(text)

    def show_help(self, text):
        self.helps += 1

    def read_key(self):
        if not self.keys:
            raise AssertionError("Display ran out of scripted keys")
        key = self.keys.pop(0)
        if isinstance(key, Exception):
            raise key
        return key

    def read_line(self, prompt, initial=''):
        self.prompts.append((prompt, initial))
        if not self.lines:
            raise AssertionError("Display ran out of scripted lines")
        return self.lines.pop(0)

    def confirm(self, prompt):
        self.prompts.append((prompt, None))
        return self.confirms.pop(0) if self.confirms else False

    def bell(self):
        self.bells += 1

    def clear_choices(self):
        self.cleared += 1

    @property
    def last_candidates(self):
        return self.renders[-1][1] if self.renders else []


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Fresh data directory and configuration for every test."""
    monkeypatch.setenv('TEXSPELL_HOME', str(tmp_path / 'home'))
    config_logging.reset_config()
    engine_config.reset_config()
    reset_store()
    yield tmp_path / 'home'
    reset_store()
    config_logging.reset_config()


@pytest.fixture
def app_config(tmp_path) -> AppConfig:
    return AppConfig(data_dir=tmp_path / 'data', log_to_file=False)


@pytest.fixture
def store(tmp_path):
    memory = MemoryStore(tmp_path / 'corrections.db')
    yield memory
    memory.close()


@pytest.fixture
def ambiguous_event():
    return AmbiguousInputError(event='focus-in')


@pytest.fixture
def make_document():
    """Build a TextDocument with point at the marker '|' (removed)."""
    def factory(text, path=None, **kwargs):
        point = text.find('|')
        if point >= 0:
            text = text[:point] + text[point + 1:]
        else:
            point = len(text)
        return TextDocument(text, point=point, path=path, **kwargs)
    return factory
