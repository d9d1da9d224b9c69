"""
Header Chain Logging System
===========================

A unified, thread-safe logging utility for the header chain verifier. This
module integrates with the standard Python `logging` library and the `rich`
library to provide structured, safe, and visually distinct logging outputs.

Usage:
    >>> from headerchain.logger import get_logger
    >>> logger = get_logger(__name__)
    >>> logger.info("Imported header #42")
"""

import logging
import logging.handlers
import re
import sys
import threading
import time
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.highlighter import RegexHighlighter
from rich.logging import RichHandler
from rich.theme import Theme

from .constants import (
    LOG_LEVEL,
    LOG_FORMAT,
    LOG_DATE_FORMAT,
    LOG_MAX_FILE_SIZE,
    LOG_BACKUP_COUNT,
    LOG_CONSOLE_HIGHLIGHTING,
    LOG_FILE_OUTPUT,
)


# Define log file location relative to the project root
PROJECT_ROOT = Path(__file__).parent.parent
LOG_DIR = PROJECT_ROOT / "logs"
LOG_FILE_PATH = LOG_DIR / "headerchain.log"

# Every module logger hangs below this one
PACKAGE_LOGGER = "headerchain"


class LogManager:
    """
    Manages logging configuration via the Singleton pattern.

    This class ensures that the logging subsystem is initialized at most once.
    It handles the setup of 'Rich' console and rotating file handlers for
    persistent storage. Nothing is configured until the host calls
    `configure()`, and only the `headerchain` logger is touched: handlers the
    host installed elsewhere are left alone.

    Attributes:
        _instance (LogManager): The singleton instance.
        _lock (threading.Lock): Thread lock for atomic initialization.
    """

    _instance: Optional["LogManager"] = None
    _lock: threading.Lock = threading.Lock()


    def __new__(cls) -> "LogManager":
        """Creates or returns the existing singleton instance."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
                    cls._instance._initialized = False
        return cls._instance


    def __init__(self) -> None:
        """Initializes the LogManager instance."""
        if self._initialized:
            return
        self._configured = False
        self._handlers: List[logging.Handler] = []
        self._initialized = True


    @staticmethod
    def validate_log_format(log_format: str) -> str:
        """
        Validates the syntax of a logging format string.

        This checks that every format specifier is preceded by '%' and formats
        a dummy record to catch runtime errors.

        Args:
            log_format (str): The logging format string (e.g., "%(asctime)s - %(message)s").

        Returns:
            str: The validated format string, or the default `LOG_FORMAT` if validation fails.
        """
        try:
            if not log_format:
                return str(LOG_FORMAT.default())

            log_format = str(log_format)

            format_specifier_pattern = r"\([a-zA-Z_][a-zA-Z0-9_]*\)[a-zA-Z]"
            paren_pattern = re.compile(format_specifier_pattern)

            for match in paren_pattern.finditer(log_format):
                start_pos = match.start()
                if start_pos == 0 or log_format[start_pos - 1] != "%":
                    raise ValueError("Malformed format specifier.")

            formatter = logging.Formatter(fmt=log_format)
            record = logging.LogRecord(
                name="test", level=logging.INFO, pathname="", lineno=0,
                msg="test", args=(), exc_info=None,
            )
            formatted_output = formatter.format(record)

            if re.search(format_specifier_pattern, formatted_output):
                raise ValueError("Format specifiers not properly processed.")

            return log_format
        except (ValueError, KeyError, TypeError) as e:
            # Fallback to default format on validation failure to ensure logging continuity
            df = str(LOG_DATE_FORMAT.default())
            print(
                f"{time.strftime(df)} - headerchain.logger - Validation Error: {e}. Using default.",
                file=sys.stderr,
            )
            return str(LOG_FORMAT.default())


    @staticmethod
    def validate_date_format(date_format: str) -> str:
        """
        Validates the syntax of a date format string against standard strftime directives.

        Args:
            date_format (str): The date format string (e.g., "%Y-%m-%d").

        Returns:
            str: The validated date format string, or default if validation fails.
        """
        if not date_format:
            return str(LOG_DATE_FORMAT.default())

        date_format = str(date_format)

        date_format_pattern = re.compile(
            rf"^(?=.*%(?!%)(?:[EO])?(?:[-_0^#])*(?:[A-DF-HIM-NPR-VW-Za-hj-lm-npr-uw-z]))"
            rf"(?:%%|%(?:[EO])?(?:[-_0^#])*(?:[A-DF-HIM-NPR-VW-Za-hj-lm-npr-uw-z])|[0-9 \t:\-\/\.,TZ+])+$"
        )

        if not date_format_pattern.match(date_format):
            print(
                f"{time.strftime(str(LOG_DATE_FORMAT.default()))} - headerchain.logger - "
                f"Invalid date format. Using default.",
                file=sys.stderr,
            )
            return str(LOG_DATE_FORMAT.default())

        return date_format


    def configure(
        self,
        log_level: Optional[str] = None,
        log_file: Optional[Path] = None,
        console_output: bool = True,
        file_output: Optional[bool] = None,
    ) -> None:
        """
        Configures the `headerchain` logger with console and file handlers.

        Records stop propagating to the root logger while our own handlers
        are installed. Call `reset()` to hand them back to the host.

        Args:
            log_level (Optional[str]): Logging level (DEBUG, INFO, etc.). Defaults to env var.
            log_file (Optional[Path]): Absolute path to log file. Defaults to `logs/headerchain.log`.
            console_output (bool): Enable console logging. Defaults to True.
            file_output (Optional[bool]): Enable rotating file logging. Defaults to `LOG_FILE_OUTPUT`.
        """
        with self._lock:
            if self._configured:
                return

            level_str = log_level or LOG_LEVEL
            numeric_level = getattr(logging, str(level_str).upper(), logging.INFO)

            package_logger = logging.getLogger(PACKAGE_LOGGER)
            package_logger.setLevel(numeric_level)

            log_format = self.validate_log_format(LOG_FORMAT)
            date_format = self.validate_date_format(LOG_DATE_FORMAT)

            # Uses UTC for consistency across replicas in different timezones
            file_formatter = TerminalSafeFormatter(fmt=log_format, datefmt=date_format + " UTC")
            file_formatter.converter = time.gmtime

            if console_output:
                if LOG_CONSOLE_HIGHLIGHTING:
                    headerchain_theme = Theme(
                        {
                            "headerchain.hash":            "cyan",
                            "headerchain.header_number":   "bold cyan",
                            "headerchain.set_id":          "bold magenta",
                            "headerchain.weight":          "bold yellow",
                            "headerchain.level_critical":  "bold red reverse",
                            "headerchain.level_debug":     "bold dim",
                            "headerchain.level_error":     "bold red",
                            "headerchain.level_info":      "bold green",
                            "headerchain.level_warning":   "bold yellow",
                            "headerchain.logger_name":     "magenta",
                            "headerchain.rejected":        "bold red",
                            "headerchain.finalized":       "bold green",
                            "headerchain.timestamp":       "bold cyan",
                        }
                    )

                    console = Console(theme=headerchain_theme, highlight=False, stderr=True)

                    rich_handler = RichHandler(
                        console=console,
                        highlighter=HeaderChainLogHighlighter(),
                        keywords=[],
                        rich_tracebacks=True,
                        omit_repeated_times=False,
                        show_path=False,
                        show_time=False,
                        show_level=False,
                        markup=False,
                    )
                    rich_handler.setLevel(numeric_level)
                    rich_handler.setFormatter(file_formatter)
                    self._handlers.append(rich_handler)
                else:
                    console_handler = logging.StreamHandler(sys.stderr)
                    console_handler.setLevel(numeric_level)
                    console_handler.setFormatter(file_formatter)
                    self._handlers.append(console_handler)

            if file_output is None:
                file_output = bool(LOG_FILE_OUTPUT)

            if file_output:
                log_file_path = log_file or LOG_FILE_PATH
                log_file_path.parent.mkdir(parents=True, exist_ok=True)

                file_handler = logging.handlers.RotatingFileHandler(
                    filename=str(log_file_path),
                    maxBytes=LOG_MAX_FILE_SIZE,
                    backupCount=LOG_BACKUP_COUNT,
                    encoding="utf-8",
                )

                file_handler.setLevel(numeric_level)
                file_handler.setFormatter(file_formatter)
                self._handlers.append(file_handler)

            for handler in self._handlers:
                package_logger.addHandler(handler)
            package_logger.propagate = not self._handlers
            self._configured = True


    def reset(self) -> None:
        """Removes the handlers installed by `configure()` and restores propagation."""
        with self._lock:
            package_logger = logging.getLogger(PACKAGE_LOGGER)
            for handler in self._handlers:
                package_logger.removeHandler(handler)
                handler.close()
            self._handlers = []
            package_logger.setLevel(logging.NOTSET)
            package_logger.propagate = True
            self._configured = False


    def get_logger(self, name: str) -> logging.Logger:
        """
        Retrieves a logger instance for a specific module.

        Args:
            name (str): The name of the logger (typically `__name__`).

        Returns:
            logging.Logger: A standard Python logger.
        """
        return logging.getLogger(name)


    @property
    def handlers(self) -> List[logging.Handler]:
        """Handlers installed by `configure()`."""
        return list(self._handlers)


    @property
    def is_configured(self) -> bool:
        """Returns True if the logging system has been successfully configured."""
        return self._configured


class TerminalSafeFormatter(logging.Formatter):
    """
    A formatter class that sanitizes log output.

    Header digests and relayer-supplied fields end up in log lines, so ANSI
    escape sequences and non-printable control characters are stripped.
    """

    _ansi_escape_re = re.compile(
        r"\x1b\[[0-?]*[ -/]*[@-~]"
        r"|\x1b[@-Z\\-_]"
    )
    # Control chars (0x00-0x1F) excluding Tab and Newline
    _control_chars_re = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")
    _carriage_return_re = re.compile(r"\r")


    @classmethod
    def sanitize(cls, text: str) -> str:
        """
        Removes potentially dangerous characters from the provided text.

        Args:
            text (str): The raw log message.

        Returns:
            str: The sanitized message safe for terminal output.
        """
        if not text:
            return text
        text = cls._ansi_escape_re.sub("", text)
        text = cls._carriage_return_re.sub("", text)
        text = cls._control_chars_re.sub("", text)
        return text


    def format(self, record: logging.LogRecord) -> str:
        return self.sanitize(super().format(record))


class HeaderChainLogHighlighter(RegexHighlighter):
    """
    Custom Rich Highlighter for verifier logs.

    Colors header hashes, header numbers, authority set ids and vote weights.
    """

    base_style = "headerchain."
    highlights = [
        r"(?P<hash>\b0x[0-9a-fA-F]{8,}\b)",
        r"(?P<header_number>#\d+)",
        r"(?P<set_id>\bset_id=\d+)",
        r"(?P<weight>\bweight=\d+/\d+)",
        r"(?P<level_critical>\bCRITICAL\b)",
        r"(?P<level_debug>\bDEBUG\b)",
        r"(?P<level_error>\bERROR\b)",
        r"(?P<level_info>\bINFO\b)",
        r"(?P<level_warning>\bWARNING\b)",
        r"\-\s+\w+\s+-\s+(?P<logger_name>[\w.]+)(?=\s-\s)",
        r"(?P<rejected>\b(Rejected|rejected)\b)",
        r"(?P<finalized>\b(Finalized|finalized)\b)",
        r"(?P<timestamp>^(.*?)UTC)",
    ]


_manager = LogManager()

def get_logger(name: str) -> logging.Logger:
    """
    Public accessor of the logging system.
    Delegates to the Singleton LogManager. Records go nowhere of our own
    making until the host calls `LogManager().configure()`.

    Args:
        name (str): The name of the module requesting the logger.

    Returns:
        logging.Logger: The logger instance.
    """
    return _manager.get_logger(name)

# Library default: silent unless the host configures logging
logging.getLogger(PACKAGE_LOGGER).addHandler(logging.NullHandler())
