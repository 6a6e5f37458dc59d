"""
Spelling Engine Configuration
=============================
Centralized configuration for the dictionary engines.

Configuration can be set via:
1. Config file (texspell_engines.json in the data directory)
2. Environment variables (TEXSPELL_ENGINE_NAME=hunspell)
3. Direct API calls (config.set('hunspell.command', '/opt/bin/hunspell'))

Environment variables override the file.
"""

import json
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from config_logging import get_config as get_app_config, get_logger

__version__ = "1.0.0"

_logger = get_logger('spell_engines.config')

CONFIG_FILENAME = "texspell_engines.json"

ENGINE_NAMES = ('enchant', 'hunspell', 'symspell')


def default_config_file() -> Path:
    return Path(get_app_config().data_dir) / CONFIG_FILENAME


@dataclass
class EnchantConfig:
    """PyEnchant configuration."""
    domain_files: list = field(default_factory=list)


@dataclass
class HunspellConfig:
    """Hunspell pipe configuration."""
    command: str = "hunspell"
    extra_args: list = field(default_factory=list)


@dataclass
class SymSpellConfig:
    """SymSpell configuration."""
    max_edit_distance: int = 2
    prefix_length: int = 7
    dictionary_path: Optional[str] = None


@dataclass
class SpellingConfig:
    """Master engine configuration."""
    engine: str = "enchant"
    language: str = "en_US"
    personal_dictionary: Optional[str] = None
    word_list: Optional[str] = None  # Words searched by pattern lookup
    enchant: EnchantConfig = field(default_factory=EnchantConfig)
    hunspell: HunspellConfig = field(default_factory=HunspellConfig)
    symspell: SymSpellConfig = field(default_factory=SymSpellConfig)

    def validate(self) -> List[str]:
        errors = []
        if self.engine not in ENGINE_NAMES:
            errors.append(f"engine must be one of {ENGINE_NAMES}")
        if not 1 <= self.symspell.max_edit_distance <= 3:
            errors.append("symspell.max_edit_distance must be between 1 and 3")
        if self.symspell.prefix_length <= self.symspell.max_edit_distance:
            errors.append("symspell.prefix_length must exceed max_edit_distance")
        return errors

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


SECTIONS = ('enchant', 'hunspell', 'symspell')

# Global configuration instance
_config: Optional[SpellingConfig] = None


def get_config() -> SpellingConfig:
    """Get the global engine configuration."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def load_config(path: Optional[Path] = None) -> SpellingConfig:
    """Load configuration from file and environment."""
    config = SpellingConfig()
    path = Path(path) if path else default_config_file()

    if path.exists():
        try:
            with open(path, 'r', encoding='utf-8') as f:
                file_config = json.load(f)
            _apply_dict_to_config(config, file_config)
        except (json.JSONDecodeError, OSError) as e:
            _logger.warning(f"Could not load engine config file: {e}", path=path)

    _apply_env_to_config(config)
    return config


def _apply_dict_to_config(config: SpellingConfig, data: Dict[str, Any]):
    """Apply dictionary values to config object."""
    for name, value in data.items():
        if name in SECTIONS and isinstance(value, dict):
            section = getattr(config, name)
            for key, item in value.items():
                if hasattr(section, key):
                    setattr(section, key, item)
        elif hasattr(config, name) and name not in SECTIONS:
            setattr(config, name, value)


def _split_list(value: str) -> list:
    return [item for item in value.split(os.pathsep) if item]


def _apply_env_to_config(config: SpellingConfig):
    """Apply environment variables to config."""
    env_mappings = {
        'TEXSPELL_ENGINE_NAME': (None, 'engine', str),
        'TEXSPELL_ENGINE_LANGUAGE': (None, 'language', str),
        'TEXSPELL_ENGINE_PERSONAL_DICT': (None, 'personal_dictionary', str),
        'TEXSPELL_ENGINE_WORD_LIST': (None, 'word_list', str),
        'TEXSPELL_ENGINE_DOMAIN_FILES': ('enchant', 'domain_files', _split_list),
        'TEXSPELL_ENGINE_HUNSPELL_COMMAND': ('hunspell', 'command', str),
        'TEXSPELL_ENGINE_MAX_EDIT_DISTANCE': ('symspell', 'max_edit_distance', int),
        'TEXSPELL_ENGINE_SYMSPELL_DICTIONARY': ('symspell', 'dictionary_path', str),
    }

    for env_var, (section, key, converter) in env_mappings.items():
        value = os.environ.get(env_var)
        if value is not None:
            try:
                target = getattr(config, section) if section else config
                setattr(target, key, converter(value))
            except (ValueError, AttributeError) as e:
                _logger.warning(f"Invalid env var {env_var}={value}: {e}")


def get(key: str, default: Any = None) -> Any:
    """
    Get a configuration value by dot-notation key.

    Example: get('symspell.max_edit_distance') -> 2
    """
    obj = get_config()
    for part in key.split('.'):
        if hasattr(obj, part):
            obj = getattr(obj, part)
        else:
            return default
    return obj


def set(key: str, value: Any):
    """
    Set a configuration value by dot-notation key.

    Example: set('engine', 'hunspell') or set('hunspell.command', 'hunspell-1.7')
    """
    config = get_config()
    parts = key.split('.')

    if len(parts) == 1:
        if not hasattr(config, key) or key in SECTIONS:
            raise ValueError(f"Unknown config key: {key}")
        setattr(config, key, value)
        return

    section_name, attr_name = parts[0], parts[1]
    if section_name not in SECTIONS:
        raise ValueError(f"Unknown config section: {section_name}")
    section = getattr(config, section_name)
    if not hasattr(section, attr_name):
        raise ValueError(f"Unknown config key: {attr_name}")
    setattr(section, attr_name, value)


def save_config(path: Optional[Path] = None) -> Path:
    """Save current configuration to file."""
    path = Path(path) if path else default_config_file()
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(get_config().to_dict(), f, indent=2)
    return path


def reset_config():
    """Reset configuration to defaults."""
    global _config
    _config = SpellingConfig()
