#!/usr/bin/env python3
"""
TexSpell Configuration & Logging Module
=======================================
Centralized configuration, structured logging, and the error taxonomy.

Version: reads from version.json
"""

import os
import sys
import json
import logging
import uuid
import time
import functools
from datetime import datetime, timezone
from typing import Optional, Dict, Any, Callable
from pathlib import Path
from dataclasses import dataclass, field
from contextlib import contextmanager
import threading

# =============================================================================
# CONFIGURATION CONSTANTS
# =============================================================================
DEFAULT_VIEWPORT_LINES = 40         # Lines scanned back from point
LOG_FILE_MAX_BYTES = 2 * 1024 * 1024  # 2MB max per log file
LOG_BACKUP_COUNT = 3                # Number of log backup files to keep
VALID_LOG_FORMATS = ('json', 'text')

# =============================================================================
# VERSION - Read from version.json (Single Source of Truth)
# =============================================================================
def _load_version():
    """Load version from version.json file."""
    try:
        version_file = Path(__file__).parent / 'version.json'
        if version_file.exists():
            with open(version_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
                return data.get('version', '1.0.0')
    except (OSError, ValueError):
        pass
    return '1.0.0'  # Fallback version

__version__ = _load_version()
VERSION = __version__
APP_NAME = "TexSpell"


def _default_data_dir() -> Path:
    return Path(os.environ.get('TEXSPELL_HOME', Path.home() / '.texspell'))


def _parse_bool(value: str) -> bool:
    return value.lower() in ('true', '1', 'yes', 'on')


def _parse_optional_bool(value: Optional[str]) -> Optional[bool]:
    return None if value is None else _parse_bool(value)


# =============================================================================
# ENVIRONMENT CONFIGURATION
# =============================================================================

@dataclass
class AppConfig:
    """Application configuration."""

    # Paths
    data_dir: Path = field(default_factory=_default_data_dir)
    memory_db: Optional[Path] = None   # Defaults to data_dir / corrections.db
    log_dir: Optional[Path] = None     # Defaults to data_dir / logs

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"  # Options: json, text
    log_to_file: bool = True
    log_to_console: bool = False  # curses owns the terminal

    # Correction behaviour
    comment_aware: Optional[bool] = None  # None follows the document mode
    always_query_replace: bool = False
    viewport_lines: int = DEFAULT_VIEWPORT_LINES

    def __post_init__(self):
        """Fill derived paths and make sure directories exist."""
        self.data_dir = Path(self.data_dir)
        if self.memory_db is None:
            self.memory_db = self.data_dir / 'corrections.db'
        if self.log_dir is None:
            self.log_dir = self.data_dir / 'logs'
        self.data_dir.mkdir(parents=True, exist_ok=True)
        if self.log_to_file:
            Path(self.log_dir).mkdir(parents=True, exist_ok=True)

    @classmethod
    def from_env(cls) -> 'AppConfig':
        """Load configuration from environment variables."""
        memory_db = os.environ.get('TEXSPELL_MEMORY_DB')
        log_dir = os.environ.get('TEXSPELL_LOG_DIR')
        return cls(
            data_dir=_default_data_dir(),
            memory_db=Path(memory_db) if memory_db else None,
            log_dir=Path(log_dir) if log_dir else None,
            log_level=os.environ.get('TEXSPELL_LOG_LEVEL', 'INFO'),
            log_format=os.environ.get('TEXSPELL_LOG_FORMAT', 'json'),
            log_to_file=_parse_bool(os.environ.get('TEXSPELL_LOG_TO_FILE', 'true')),
            log_to_console=_parse_bool(os.environ.get('TEXSPELL_LOG_TO_CONSOLE', 'false')),
            comment_aware=_parse_optional_bool(os.environ.get('TEXSPELL_COMMENT_AWARE')),
            always_query_replace=_parse_bool(os.environ.get('TEXSPELL_QUERY_REPLACE', 'false')),
            viewport_lines=int(os.environ.get('TEXSPELL_VIEWPORT_LINES', str(DEFAULT_VIEWPORT_LINES))),
        )

    def validate(self) -> tuple:
        """Validate configuration and return (is_valid, errors)."""
        errors = []

        if self.log_format not in VALID_LOG_FORMATS:
            errors.append(f"Invalid log_format: {self.log_format}. Must be one of {VALID_LOG_FORMATS}")

        if not isinstance(getattr(logging, self.log_level.upper(), None), int):
            errors.append(f"Invalid log_level: {self.log_level}")

        if self.viewport_lines < 1:
            errors.append("viewport_lines must be at least 1")

        return (len(errors) == 0, errors)


# Global config instance
_config: Optional[AppConfig] = None

def get_config() -> AppConfig:
    """Get or create the global configuration."""
    global _config
    if _config is None:
        _config = AppConfig.from_env()
    return _config


def reset_config():
    """Reset the global configuration (for testing)."""
    global _config
    _config = None


# =============================================================================
# STRUCTURED LOGGING
# =============================================================================

class StructuredLogger:
    """Structured JSON logger with correlation IDs."""

    _local = threading.local()

    def __init__(self, name: str, config: Optional[AppConfig] = None):
        self.name = name
        self.config = config or get_config()
        self._setup_logger()

    def _setup_logger(self):
        """Configure the underlying Python logger."""
        self.logger = logging.getLogger(self.name)
        self.logger.setLevel(getattr(logging, self.config.log_level.upper(), logging.INFO))
        self.logger.handlers.clear()

        if self.config.log_format == 'json':
            formatter = JsonFormatter()
        else:
            formatter = logging.Formatter(
                '%(asctime)s [%(levelname)s] %(name)s - %(message)s'
            )

        if self.config.log_to_console:
            console_handler = logging.StreamHandler(sys.stderr)
            console_handler.setFormatter(formatter)
            self.logger.addHandler(console_handler)

        # Rotating file handler keeps the log directory bounded
        if self.config.log_to_file:
            from logging.handlers import RotatingFileHandler
            log_file = Path(self.config.log_dir) / f"{APP_NAME.lower()}.log"
            file_handler = RotatingFileHandler(
                log_file,
                maxBytes=LOG_FILE_MAX_BYTES,
                backupCount=LOG_BACKUP_COUNT,
                encoding='utf-8'
            )
            file_handler.setFormatter(formatter)
            self.logger.addHandler(file_handler)

        if not self.logger.handlers:
            self.logger.addHandler(logging.NullHandler())

    @classmethod
    def set_correlation_id(cls, correlation_id: str):
        """Set correlation ID for current thread."""
        cls._local.correlation_id = correlation_id

    @classmethod
    def get_correlation_id(cls) -> str:
        """Get correlation ID for current thread."""
        return getattr(cls._local, 'correlation_id', None) or str(uuid.uuid4())[:8]

    @classmethod
    def new_correlation_id(cls) -> str:
        """Generate and set a new correlation ID."""
        correlation_id = str(uuid.uuid4())[:12]
        cls.set_correlation_id(correlation_id)
        return correlation_id

    def _build_log_record(self, level: str, message: str, **kwargs) -> Dict[str, Any]:
        """Build a structured log record."""
        return {
            'timestamp': datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
            'level': level,
            'logger': self.name,
            'correlation_id': self.get_correlation_id(),
            'message': message,
            **kwargs
        }

    def _render(self, level: str, message: str, **kwargs) -> str:
        if self.config.log_format == 'json':
            return json.dumps(self._build_log_record(level, message, **kwargs), default=str)
        return message

    def debug(self, message: str, **kwargs):
        """Log debug message."""
        if self.logger.isEnabledFor(logging.DEBUG):
            self.logger.debug(self._render('DEBUG', message, **kwargs))

    def info(self, message: str, **kwargs):
        """Log info message."""
        self.logger.info(self._render('INFO', message, **kwargs))

    def warning(self, message: str, **kwargs):
        """Log warning message."""
        self.logger.warning(self._render('WARNING', message, **kwargs))

    def error(self, message: str, exc_info: bool = False, **kwargs):
        """Log error message with optional exception info."""
        if exc_info:
            import traceback
            kwargs['traceback'] = traceback.format_exc()
        self.logger.error(self._render('ERROR', message, **kwargs))

    def exception(self, message: str, **kwargs):
        """Log exception with full traceback."""
        self.error(message, exc_info=True, **kwargs)

    @contextmanager
    def log_operation(self, operation: str, **context):
        """Context manager for logging operation start/end with timing."""
        start_time = time.time()
        self.debug(f"{operation} started", operation=operation, status='started', **context)
        try:
            yield
            duration_ms = (time.time() - start_time) * 1000
            self.info(f"{operation} completed", operation=operation, status='completed',
                      duration_ms=round(duration_ms, 2), **context)
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            self.error(f"{operation} failed: {e}", operation=operation, status='failed',
                       duration_ms=round(duration_ms, 2), exc_info=True, **context)
            raise


class JsonFormatter(logging.Formatter):
    """JSON log formatter for records that were not pre-rendered."""

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        if message.startswith('{'):
            return message

        log_data = {
            'timestamp': datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
            'level': record.levelname,
            'logger': record.name,
            'message': message,
        }

        if record.exc_info:
            log_data['traceback'] = self.formatException(record.exc_info)

        return json.dumps(log_data)


# Factory function for getting loggers
def get_logger(name: str) -> StructuredLogger:
    """Get a structured logger instance."""
    return StructuredLogger(name, get_config())


# =============================================================================
# ERROR HANDLING UTILITIES
# =============================================================================

class TexSpellError(Exception):
    """Base exception for TexSpell."""

    def __init__(self, message: str, code: str = "UNKNOWN_ERROR",
                 details: Optional[Dict] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a serializable dict."""
        return {
            'success': False,
            'error': {
                'code': self.code,
                'message': self.message,
                'details': self.details
            }
        }


class ValidationError(TexSpellError):
    """Input validation error."""
    def __init__(self, message: str, field: Optional[str] = None, **kwargs):
        super().__init__(message, code="VALIDATION_ERROR",
                         details={'field': field, **kwargs})


class ConfigurationError(TexSpellError):
    """Invalid configuration."""
    def __init__(self, message: str, errors: Optional[list] = None):
        super().__init__(message, code="CONFIG_ERROR", details={'errors': errors or []})


class FileError(TexSpellError):
    """File handling error."""
    def __init__(self, message: str, path: Optional[str] = None, **kwargs):
        super().__init__(message, code="FILE_ERROR",
                         details={'path': path, **kwargs})


class NoEligibleWordError(TexSpellError):
    """The scan reached the viewport start without finding a misspelling."""
    def __init__(self, message: str = "No typo at or before point", **kwargs):
        super().__init__(message, code="NO_ELIGIBLE_WORD", details=kwargs)


class EngineUnavailableError(TexSpellError):
    """The dictionary engine is not running, crashed, or is not installed."""
    def __init__(self, message: str, engine: Optional[str] = None, **kwargs):
        super().__init__(message, code="ENGINE_UNAVAILABLE",
                         details={'engine': engine, **kwargs})


class AmbiguousInputError(TexSpellError):
    """A non-character event arrived while a keystroke was expected."""
    def __init__(self, message: str = "Non-character input event", event: Any = None):
        super().__init__(message, code="AMBIGUOUS_INPUT", details={'event': repr(event)})


class RecursiveEditConflictError(TexSpellError):
    """A second recursive edit was requested while one is pending."""
    def __init__(self, message: str = "Only one recursive edit session supported"):
        super().__init__(message, code="RECURSIVE_EDIT_CONFLICT")


class MemoryStoreError(TexSpellError):
    """Correction memory backing store failure."""
    def __init__(self, message: str, operation: Optional[str] = None):
        super().__init__(message, code="MEMORY_STORE_ERROR", details={'operation': operation})


def handle_errors(logger: Optional[StructuredLogger] = None):
    """Decorator converting OS-level failures into TexSpell errors."""
    def decorator(func: Callable):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            _logger = logger or get_logger(func.__module__)
            try:
                return func(*args, **kwargs)
            except TexSpellError:
                raise  # Re-raise our custom errors
            except FileNotFoundError as e:
                _logger.error(f"File not found: {e}")
                raise FileError(f"File not found: {e.filename}", path=e.filename)
            except PermissionError as e:
                _logger.error(f"Permission denied: {e}")
                raise FileError(f"Permission denied: {e.filename}", path=e.filename)
            except UnicodeDecodeError as e:
                _logger.error(f"Cannot decode file: {e}")
                raise FileError(f"Cannot decode file as UTF-8: {e.reason}")
            except ValueError as e:
                _logger.error(f"Validation error: {e}")
                raise ValidationError(str(e))
        return wrapper
    return decorator
