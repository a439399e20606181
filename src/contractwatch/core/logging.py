"""
Logging infrastructure for ContractWatch.

Provides:
- Structured JSON logging for file output
- Rich console output for terminal
- Contextual logging with run/mode context
"""

from __future__ import annotations

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any, Union

import orjson
from rich.markup import escape

if TYPE_CHECKING:
    from rich.console import Console


# Loggers accepted by components that take an injected logger
LoggerLike = Union[logging.Logger, logging.LoggerAdapter]


def json_dumps(obj: Any) -> str:
    return orjson.dumps(obj, default=str).decode("utf-8")


# Extra attributes copied from log records into JSON lines
CONTEXT_FIELDS = ("run_id", "mode", "url", "contract_id", "step")


# =============================================================================
# JSON Formatter for File Logging
# =============================================================================


class JSONFormatter(logging.Formatter):
    """Format log records as JSON lines."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key in CONTEXT_FIELDS:
            if hasattr(record, key):
                log_data[key] = getattr(record, key)

        return json_dumps(log_data)


# =============================================================================
# Rich Console Handler
# =============================================================================


class RichConsoleHandler(logging.Handler):
    """Handler that outputs to Rich console with formatting."""

    LEVEL_STYLES = {
        logging.DEBUG: "dim",
        logging.INFO: "default",
        logging.WARNING: "yellow",
        logging.ERROR: "red",
        logging.CRITICAL: "bold red",
    }

    def __init__(self, console: "Console | None" = None, level: int = logging.INFO):
        super().__init__(level)
        if console is None:
            from rich.console import Console
            console = Console(stderr=True)
        self.console = console

    def emit(self, record: logging.LogRecord) -> None:
        try:
            message = self.format(record)
            style = self.LEVEL_STYLES.get(record.levelno, "default")

            prefix = ""
            if hasattr(record, "mode"):
                prefix = f"[cyan]{escape(f'[{record.mode}]')}[/cyan] "

            # Portal text may contain square brackets
            self.console.print(f"{prefix}[{style}]{escape(message)}[/{style}]")

            if record.exc_info:
                self.console.print_exception()

        except Exception:
            self.handleError(record)


# =============================================================================
# Logger Configuration
# =============================================================================


def setup_logging(
    level: str = "INFO",
    log_file: Path | str | None = None,
    json_format: bool = True,
    rich_console: bool = True,
) -> logging.Logger:
    """Set up logging for ContractWatch.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        log_file: Path to log file (optional)
        json_format: Use JSON format for file logs
        rich_console: Use Rich for console output

    Returns:
        Root logger for contractwatch
    """
    logger = logging.getLogger("contractwatch")
    logger.setLevel(getattr(logging, level.upper()))
    logger.handlers.clear()

    if rich_console:
        console_handler: logging.Handler = RichConsoleHandler()
        console_handler.setFormatter(logging.Formatter("%(message)s"))
    else:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(
            logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
        )
    console_handler.setLevel(getattr(logging, level.upper()))
    logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)  # Capture all levels to file

        if json_format:
            file_handler.setFormatter(JSONFormatter())
        else:
            file_handler.setFormatter(
                logging.Formatter(
                    "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                    datefmt="%Y-%m-%d %H:%M:%S",
                )
            )

        logger.addHandler(file_handler)

    return logger


def get_logger(name: str | None = None) -> logging.Logger:
    """Get a logger instance.

    Args:
        name: Logger name (will be prefixed with 'contractwatch.')

    Returns:
        Logger instance
    """
    if name:
        return logging.getLogger(f"contractwatch.{name}")
    return logging.getLogger("contractwatch")


# =============================================================================
# Contextual Logging Adapter
# =============================================================================


class ContextualLogger(logging.LoggerAdapter):
    """Logger adapter that adds run context to log records."""

    def __init__(
        self,
        logger: logging.Logger,
        mode: str | None = None,
        run_id: str | None = None,
    ):
        super().__init__(logger, {})
        self.mode = mode
        self.run_id = run_id

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        extra = kwargs.get("extra", {})

        if self.mode:
            extra["mode"] = self.mode
        if self.run_id:
            extra["run_id"] = self.run_id

        kwargs["extra"] = extra
        return msg, kwargs

    def getChild(self, suffix: str) -> "ContextualLogger":
        """Child logger carrying the same run context."""
        return ContextualLogger(
            self.logger.getChild(suffix),
            mode=self.mode,
            run_id=self.run_id,
        )


def get_contextual_logger(
    name: str | None = None,
    mode: str | None = None,
    run_id: str | None = None,
) -> ContextualLogger:
    """Get a contextual logger with mode/run context.

    Args:
        name: Logger name
        mode: Browser mode ("visible" or "headless") for context
        run_id: Run identifier for context

    Returns:
        ContextualLogger instance
    """
    return ContextualLogger(get_logger(name), mode=mode, run_id=run_id)
