"""
Tests for the Hunspell Pipe Engine
==================================
Response parsing and the pipe protocol against a scripted child process.
"""

import pytest

from config_logging import EngineUnavailableError
from spell_engines import create_engine
from spell_engines.base import CheckStatus, InsertCase, InsertScope
from spell_engines.hunspell import HunspellPipeEngine, parse_response

BANNER = "@(#) International Ispell Version 3.2.06 (but really Hunspell 1.7.2)\n"


class FakeStdin:
    def __init__(self, process):
        self.process = process
        self.closed = False
        self._buffer = ''

    def write(self, data):
        if self.process.broken:
            raise BrokenPipeError(32, 'Broken pipe')
        self._buffer += data
        while '\n' in self._buffer:
            line, self._buffer = self._buffer.split('\n', 1)
            self.process.receive(line)

    def flush(self):
        pass

    def close(self):
        self.closed = True


class FakeStdout:
    def __init__(self, lines):
        self.lines = list(lines)

    def readline(self):
        return self.lines.pop(0) if self.lines else ''


class FakeHunspell:
    """Child process answering check requests from a response table."""

    def __init__(self, responses=None, banner=BANNER, silent=False):
        self.args = None
        self.responses = responses or {}
        self.silent = silent
        self.broken = False
        self.received = []
        self.stdin = FakeStdin(self)
        self.stdout = FakeStdout([banner] if banner else [])
        self.terminated = False
        self.killed = False

    def __call__(self, args, **kwargs):
        self.args = args
        self.kwargs = kwargs
        return self

    def receive(self, line):
        self.received.append(line)
        if line.startswith('^') and not self.silent:
            self.stdout.lines.extend(self.responses.get(line[1:], ['*\n']))
            self.stdout.lines.append('\n')

    def terminate(self):
        self.terminated = True

    def wait(self, timeout=None):
        return 0

    def kill(self):
        self.killed = True


@pytest.fixture
def fake_process(monkeypatch):
    process = FakeHunspell(responses={
        'Thiss': ['& Thiss 2 0: This, Thies, Theiss\n'],
        'wrod': ['? wrod 0 0: word\n'],
        'xyzzy': ['# xyzzy 0\n'],
    })
    monkeypatch.setattr('spell_engines.hunspell.subprocess.Popen', process)
    return process


class TestParseResponse:
    """Tests for parse_response()."""

    @pytest.mark.parametrize('line', ['*', '+ run', '-'])
    def test_correct_tags(self, line):
        assert parse_response(line).status is CheckStatus.CORRECT

    def test_near_misses_and_guesses(self):
        result = parse_response('& thiss 2 0: this, thus, thesis\n')
        assert result.is_misspelled
        assert result.candidates == ['this', 'thus']
        assert result.guesses == ['thesis']

    def test_guesses_only(self):
        result = parse_response('? wrod 0 5: word')
        assert result.candidates == []
        assert result.guesses == ['word']

    def test_no_suggestions(self):
        result = parse_response('# xyzzy 0')
        assert result.is_misspelled
        assert result.candidates == [] and result.guesses == []

    def test_blank_is_not_a_word(self):
        assert parse_response('\n').status is CheckStatus.NOT_A_WORD

    def test_unknown_line(self):
        with pytest.raises(ValueError):
            parse_response('garbage')


class TestHunspellPipeEngine:
    """Tests for HunspellPipeEngine over a scripted process."""

    def test_start_reads_banner(self, fake_process):
        engine = HunspellPipeEngine()
        assert engine.is_running()
        assert 'Hunspell' in engine.banner
        assert fake_process.args == ['hunspell', '-a', '-d', 'en_US', '-i', 'UTF-8']

    def test_command_with_personal_dictionary(self, fake_process, tmp_path):
        engine = HunspellPipeEngine(language='en_GB', personal_dict=tmp_path / 'words',
                                    extra_args=['-t'])
        assert fake_process.args[-3:] == ['-p', str(tmp_path / 'words'), '-t']

    def test_check_correct(self, fake_process):
        engine = HunspellPipeEngine()
        assert engine.check_word('the').status is CheckStatus.CORRECT
        assert fake_process.received == ['^the']

    def test_check_misspelled(self, fake_process):
        engine = HunspellPipeEngine()
        result = engine.check_word('Thiss')
        assert result.candidates == ['This', 'Thies']
        assert result.guesses == ['Theiss']

    def test_consecutive_checks_stay_in_step(self, fake_process):
        engine = HunspellPipeEngine()
        assert engine.check_word('wrod').guesses == ['word']
        assert engine.check_word('xyzzy').is_misspelled
        assert engine.check_word('ok').status is CheckStatus.CORRECT

    def test_non_word_not_sent(self, fake_process):
        engine = HunspellPipeEngine()
        assert engine.check_word('1234').status is CheckStatus.NOT_A_WORD
        assert fake_process.received == []

    def test_insert_requests(self, fake_process):
        engine = HunspellPipeEngine()
        engine.insert_word('Wrod')
        engine.insert_word('Wrod', case=InsertCase.LOWERCASE)
        engine.insert_word('thiss', scope=InsertScope.SESSION)
        assert fake_process.received == ['*Wrod', '&wrod', '@thiss']
        assert engine.pending_personal_words == ['Wrod', 'wrod']

    def test_flush_saves_dictionary(self, fake_process):
        engine = HunspellPipeEngine()
        engine.insert_word('Wrod')
        assert engine.flush_personal_dictionary() == 1
        assert fake_process.received[-1] == '#'
        assert engine.flush_personal_dictionary() == 0

    def test_terminate(self, fake_process):
        engine = HunspellPipeEngine()
        engine.terminate()
        assert fake_process.terminated
        assert fake_process.stdin.closed
        assert not engine.is_running()
        with pytest.raises(EngineUnavailableError):
            engine.check_word('word')

    def test_process_exit_during_check(self, fake_process):
        engine = HunspellPipeEngine()
        fake_process.silent = True
        with pytest.raises(EngineUnavailableError):
            engine.check_word('word')
        assert not engine.is_running()

    def test_broken_pipe(self, fake_process):
        engine = HunspellPipeEngine()
        fake_process.broken = True
        with pytest.raises(EngineUnavailableError):
            engine.check_word('word')

    def test_exit_during_startup(self, monkeypatch):
        monkeypatch.setattr('spell_engines.hunspell.subprocess.Popen', FakeHunspell(banner=None))
        engine = HunspellPipeEngine()
        assert not engine.is_available
        assert 'startup' in engine.error

    def test_missing_binary(self, monkeypatch):
        def missing(*args, **kwargs):
            raise FileNotFoundError('hunspell')

        monkeypatch.setattr('spell_engines.hunspell.subprocess.Popen', missing)
        with pytest.raises(EngineUnavailableError) as exc_info:
            create_engine('hunspell')
        assert exc_info.value.details['engine'] == 'hunspell'

    def test_status(self, fake_process):
        status = HunspellPipeEngine().get_status()
        assert status['engine'] == 'hunspell'
        assert status['running'] is True
        assert status['command'][0] == 'hunspell'
