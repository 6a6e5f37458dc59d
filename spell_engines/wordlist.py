"""
Word List Utilities
===================
Plain word files and wildcard lookup shared by every engine.

Word files hold one word per line. Blank lines and lines starting with '#'
are ignored.
"""

import re
from pathlib import Path
from typing import Iterable, List, Optional

__version__ = "1.0.0"

WILDCARD = '*'

# Searched in order when an engine has no word list of its own
SYSTEM_WORD_FILES = (
    Path('/usr/share/dict/words'),
    Path('/usr/dict/words'),
)


def compile_pattern(pattern: str) -> 're.Pattern':
    """
    Turn a lookup pattern into a case-insensitive regex.

    '*' matches any run of characters. A pattern without a wildcard is
    treated as a prefix.
    """
    pattern = pattern.strip()
    if not pattern:
        raise ValueError("Lookup pattern is empty")
    if WILDCARD not in pattern:
        pattern += WILDCARD
    regex = '.*'.join(re.escape(part) for part in pattern.split(WILDCARD))
    return re.compile(regex, re.IGNORECASE)


def lookup_words(pattern: str, words: Iterable[str], limit: Optional[int] = None) -> List[str]:
    """
    Return the words matching a wildcard pattern, in source order, without
    duplicates.

    Example: lookup_words('sep*ate', words) -> ['separate', ...]
    """
    regex = compile_pattern(pattern)
    matches: List[str] = []
    seen = set()
    for word in words:
        if word in seen or not regex.fullmatch(word):
            continue
        seen.add(word)
        matches.append(word)
        if limit is not None and len(matches) >= limit:
            break
    return matches


def load_word_file(path, lowercase: bool = False) -> List[str]:
    """Read a word file. A missing file yields an empty list."""
    path = Path(path)
    if not path.exists():
        return []
    words: List[str] = []
    with open(path, 'r', encoding='utf-8') as f:
        for line in f:
            word = line.strip()
            if word and not word.startswith('#'):
                words.append(word.lower() if lowercase else word)
    return words


def append_words(path, words: Iterable[str]) -> int:
    """Append words not already present to a word file. Returns the count written."""
    path = Path(path)
    existing = set(load_word_file(path))
    new_words = []
    for word in words:
        if word not in existing:
            existing.add(word)
            new_words.append(word)
    if not new_words:
        return 0
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'a', encoding='utf-8') as f:
        for word in new_words:
            f.write(word + '\n')
    return len(new_words)


def system_word_file() -> Optional[Path]:
    """First system word file that exists, if any."""
    for path in SYSTEM_WORD_FILES:
        if path.exists():
            return path
    return None
