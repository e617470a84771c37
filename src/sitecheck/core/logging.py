"""
Logging for sitecheck.

Console output goes through Rich with the issue number in front of
every line; an optional file handler writes JSON lines (orjson) so a
run can be grepped or loaded afterwards. Per-site context travels on
the log record via ``SiteLogger``.
"""

from __future__ import annotations

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any, MutableMapping

import orjson
from rich.text import Text

if TYPE_CHECKING:
    from rich.console import Console


ROOT_LOGGER = "sitecheck"

# Record attributes copied into JSON lines when present
CONTEXT_FIELDS = ("target", "url", "attempt", "status_code")

LEVEL_STYLES = {
    logging.DEBUG: "dim",
    logging.INFO: "none",
    logging.WARNING: "yellow",
    logging.ERROR: "red",
    logging.CRITICAL: "bold red",
}

# Client libraries that log every request at INFO
NOISY_LOGGERS = ("httpx", "httpcore")

PLAIN_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def json_dumps(obj: Any) -> str:
    """Serialize to a JSON string; unknown types fall back to ``str``."""
    return orjson.dumps(obj, default=str).decode("utf-8")


class JSONFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "time": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(
            (key, getattr(record, key)) for key in CONTEXT_FIELDS if hasattr(record, key)
        )
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json_dumps(entry)


class RichConsoleHandler(logging.Handler):
    """Prints records to a Rich console, prefixed with ``#<target>``."""

    def __init__(self, console: "Console | None" = None, level: int = logging.NOTSET):
        super().__init__(level)
        if console is None:
            from rich.console import Console

            console = Console(stderr=True)
        self.console = console

    def render(self, record: logging.LogRecord) -> Text:
        # Text, not markup: messages carry URLs, selectors and [labels]
        line = Text()
        target = getattr(record, "target", None)
        if target is not None:
            line.append(f"#{target} ", style="cyan")
        line.append(self.format(record), style=LEVEL_STYLES.get(record.levelno, "none"))
        return line

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.console.print(self.render(record))
            if record.exc_info:
                self.console.print_exception()
        except Exception:
            self.handleError(record)


def _resolve_level(level: str | int) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.strip().upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown log level: {level!r}")
    return resolved


def setup_logging(
    level: str | int = "INFO",
    log_file: Path | str | None = None,
    json_format: bool = True,
    rich_console: bool = True,
    console: "Console | None" = None,
) -> logging.Logger:
    """Configure the ``sitecheck`` logger.

    Calling it again replaces the handlers installed by the previous call.

    Args:
        level: Console level name or number
        log_file: Also log everything (DEBUG and up) to this file
        json_format: JSON lines in the log file instead of plain text
        rich_console: Rich console output instead of a plain stream
        console: Rich console to print to (default: stderr)

    Returns:
        The ``sitecheck`` logger

    Raises:
        ValueError: If ``level`` is not a known level name
    """
    console_level = _resolve_level(level)

    logger = logging.getLogger(ROOT_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if rich_console:
        console_handler: logging.Handler = RichConsoleHandler(console)
        console_handler.setFormatter(logging.Formatter("%(message)s"))
    else:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(logging.Formatter(PLAIN_FORMAT))
    console_handler.setLevel(console_level)
    logger.addHandler(console_handler)

    logger_level = console_level
    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            JSONFormatter() if json_format else logging.Formatter(PLAIN_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
        )
        logger.addHandler(file_handler)
        logger_level = logging.DEBUG

    logger.setLevel(logger_level)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return logger


def get_logger(name: str | None = None) -> logging.Logger:
    """``sitecheck`` or the ``sitecheck.<name>`` child logger."""
    return logging.getLogger(f"{ROOT_LOGGER}.{name}" if name else ROOT_LOGGER)


class SiteLogger(logging.LoggerAdapter):
    """Adapter stamping every record with the site being checked.

    Per-call ``extra`` (e.g. ``attempt``) is merged over the bound context.
    """

    def __init__(self, logger: logging.Logger, **context: Any):
        super().__init__(logger, {key: value for key, value in context.items() if value is not None})

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs

    def bind(self, **context: Any) -> "SiteLogger":
        """A new adapter with extra context on top of this one."""
        return SiteLogger(self.logger, **{**self.extra, **context})


def get_site_logger(
    name: str | None = None,
    target: str | int | None = None,
    url: str | None = None,
) -> SiteLogger:
    """Logger for one target; ``target`` and ``url`` land on every record."""
    return SiteLogger(get_logger(name), target=target, url=url)
