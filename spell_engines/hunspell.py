"""
Hunspell Pipe Engine
====================
Talks to a long-lived `hunspell -a` child process over the ispell pipe
protocol.

Requests (one per line):
    ^word   check word
    *word   add word to the personal dictionary as typed
    &word   add word to the personal dictionary in lower case
    @word   accept word for the rest of the session
    #       save the personal dictionary

Responses to a check end with a blank line:
    *               correct
    + root          correct by affix rule
    -               correct as a compound
    & w n off: ...  misspelled, n near misses followed by guesses
    ? w 0 off: ...  misspelled, guesses only
    # w off         misspelled, no suggestions
    (blank only)    not a word

Requires: hunspell on PATH
"""

import subprocess
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from config_logging import EngineUnavailableError, get_logger

from .base import CheckResult, CheckStatus, DictionaryEngine, InsertCase

__version__ = "1.0.0"

_logger = get_logger('spell_engines.hunspell')

CORRECT_TAGS = ('*', '+', '-')


def parse_response(line: str) -> CheckResult:
    """Turn one result line of `hunspell -a` into a CheckResult."""
    line = line.rstrip('\n')
    if not line:
        return CheckResult.not_a_word()

    tag = line[0]
    if tag in CORRECT_TAGS:
        return CheckResult.correct()
    if tag == '#':
        return CheckResult(CheckStatus.MISSPELLED)
    if tag in ('&', '?'):
        head, _, tail = line.partition(':')
        fields = head.split()
        count = int(fields[2]) if len(fields) > 2 and fields[2].isdigit() else 0
        items = [item.strip() for item in tail.split(',') if item.strip()]
        return CheckResult(
            CheckStatus.MISSPELLED,
            candidates=items[:count],
            guesses=items[count:]
        )
    raise ValueError(f"Unexpected hunspell response: {line!r}")


class HunspellPipeEngine(DictionaryEngine):
    """Dictionary engine backed by a `hunspell -a` subprocess."""

    ENGINE_NAME = "hunspell"
    ENGINE_VERSION = "1.0.0"

    def __init__(
        self,
        language: str = 'en_US',
        personal_dict: Optional[Path] = None,
        command: str = 'hunspell',
        extra_args: Optional[List[str]] = None,
        word_list: Optional[Iterable[str]] = None
    ):
        """
        Start the hunspell process.

        Args:
            language: Dictionary name passed with -d
            personal_dict: Personal dictionary passed with -p
            command: Executable to run
            extra_args: Additional command line arguments
            word_list: Words searched by pattern lookup
        """
        super().__init__(word_list=word_list)
        self.language = language
        self.personal_dict = Path(personal_dict) if personal_dict else None
        self.command = command
        self.extra_args = list(extra_args or [])
        self.banner: Optional[str] = None

        self._process = None
        self._start()

    def build_command(self) -> List[str]:
        args = [self.command, '-a', '-d', self.language, '-i', 'UTF-8']
        if self.personal_dict:
            args += ['-p', str(self.personal_dict)]
        return args + self.extra_args

    def _start(self):
        args = self.build_command()
        try:
            self._process = subprocess.Popen(
                args,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.DEVNULL,
                text=True,
                encoding='utf-8',
                bufsize=1,
            )
        except FileNotFoundError:
            self._error = f"'{self.command}' command not found. Install Hunspell and ensure it is on your PATH."
            self._available = False
            return
        except OSError as e:
            self._error = f"Failed to start {self.command}: {e}"
            self._available = False
            return

        banner = self._process.stdout.readline()
        if not banner:
            self._error = f"{self.command} exited during startup"
            self._available = False
            return

        self.banner = banner.strip()
        self._available = True
        self._running = True
        _logger.info("Hunspell process started", command=args, banner=self.banner)

    # ------------------------------------------------------------------
    # Pipe I/O
    # ------------------------------------------------------------------

    def _send(self, line: str):
        self._require_running()
        try:
            self._process.stdin.write(line + '\n')
            self._process.stdin.flush()
        except (BrokenPipeError, OSError) as e:
            self._lost(f"Lost connection to {self.command}: {e}")

    def _read_line(self) -> str:
        line = self._process.stdout.readline()
        if line == '':
            self._lost(f"{self.command} closed its output")
        return line

    def _lost(self, message: str):
        self._running = False
        self._error = message
        _logger.error("Hunspell process lost", reason=message)
        raise EngineUnavailableError(message, engine=self.ENGINE_NAME)

    # ------------------------------------------------------------------
    # Hooks
    # ------------------------------------------------------------------

    def _check(self, word: str) -> CheckResult:
        self._send('^' + word)
        first = self._read_line()
        if first.strip() == '':
            return CheckResult.not_a_word()
        result = parse_response(first)
        # Drain up to the blank terminator
        while self._read_line().strip() != '':
            pass
        return result

    def _insert_personal(self, word: str, case: InsertCase):
        self._send(('&' if case is InsertCase.LOWERCASE else '*') + word)

    def _insert_session(self, word: str):
        self._send('@' + word)

    def _flush(self, words: List[str]) -> int:
        if not self.is_running():
            return 0
        self._send('#')
        _logger.info("Saved personal dictionary", count=len(words),
                     personal_dict=self.personal_dict)
        return len(words)

    def terminate(self):
        """Stop the hunspell process."""
        super().terminate()
        process, self._process = self._process, None
        if process is None:
            return
        try:
            process.stdin.close()
        except OSError:
            pass
        process.terminate()
        try:
            process.wait(timeout=2)
        except subprocess.TimeoutExpired:
            process.kill()
        _logger.info("Hunspell process terminated")

    def get_status(self) -> Dict[str, Any]:
        """Get detailed status of the hunspell engine."""
        status = self._base_status()
        status['language'] = self.language
        status['command'] = self.build_command()
        status['banner'] = self.banner
        return status
