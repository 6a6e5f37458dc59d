"""
Dictionary Engines for TexSpell
===============================
Candidate generation is delegated to an existing spell checker.

Engines:
- enchant: PyEnchant dictionaries with a personal word list
- hunspell: `hunspell -a` child process over the ispell pipe protocol
- symspell: symspellpy with its bundled frequency dictionary

Requires one of: pip install pyenchant | pip install symspellpy | hunspell
"""

from pathlib import Path
from typing import Any, Dict, Optional

from config_logging import EngineUnavailableError

from .base import (
    CheckResult, CheckStatus, DictionaryEngine, InsertCase, InsertScope,
)
from .config import ENGINE_NAMES, SpellingConfig, get_config
from .wordlist import load_word_file, lookup_words

__version__ = "1.0.0"

__all__ = [
    'CheckResult', 'CheckStatus', 'DictionaryEngine', 'InsertCase', 'InsertScope',
    'ENGINE_NAMES', 'create_engine', 'engine_from_config', 'get_status', 'lookup_words',
]


def _engine_class(name: str):
    if name == 'enchant':
        from .enchant import EnchantEngine
        return EnchantEngine
    if name == 'hunspell':
        from .hunspell import HunspellPipeEngine
        return HunspellPipeEngine
    if name == 'symspell':
        from .symspell import SymSpellEngine
        return SymSpellEngine
    raise ValueError(f"Unknown engine: {name}. Choose from {ENGINE_NAMES}")


def create_engine(name: str, **kwargs) -> DictionaryEngine:
    """
    Create and start an engine by name.

    Raises EngineUnavailableError when the engine's library or binary is
    missing or it fails to load.
    """
    engine = _engine_class(name)(**kwargs)
    if not engine.is_available:
        raise EngineUnavailableError(
            engine.error or f"{name} engine is not available", engine=name
        )
    return engine


def engine_from_config(config: Optional[SpellingConfig] = None) -> DictionaryEngine:
    """Create the configured engine."""
    config = config or get_config()
    errors = config.validate()
    if errors:
        raise ValueError("; ".join(errors))

    personal = Path(config.personal_dictionary).expanduser() if config.personal_dictionary else None
    kwargs: Dict[str, Any] = {'personal_dict': personal}
    if config.word_list:
        kwargs['word_list'] = load_word_file(Path(config.word_list).expanduser())

    if config.engine == 'enchant':
        kwargs.update(language=config.language,
                      domain_files=[Path(p).expanduser() for p in config.enchant.domain_files])
    elif config.engine == 'hunspell':
        kwargs.update(language=config.language,
                      command=config.hunspell.command,
                      extra_args=config.hunspell.extra_args)
    else:
        kwargs.update(max_edit_distance=config.symspell.max_edit_distance,
                      prefix_length=config.symspell.prefix_length,
                      dictionary_path=config.symspell.dictionary_path)

    return create_engine(config.engine, **kwargs)


def get_status() -> dict:
    """Availability of every engine without starting a process."""
    import shutil
    status: Dict[str, Any] = {}

    try:
        import enchant
        status['enchant'] = {'available': True, 'languages': enchant.list_languages()}
    except ImportError as e:
        status['enchant'] = {'available': False, 'error': f"pyenchant not installed: {e}"}
    except Exception as e:
        status['enchant'] = {'available': False, 'error': str(e)}

    command = get_config().hunspell.command
    binary = shutil.which(command)
    status['hunspell'] = {'available': binary is not None, 'path': binary}

    try:
        import symspellpy
        status['symspell'] = {'available': True,
                              'version': getattr(symspellpy, '__version__', None)}
    except ImportError as e:
        status['symspell'] = {'available': False, 'error': f"symspellpy not installed: {e}"}

    status['available'] = any(entry['available'] for entry in status.values())
    return status
