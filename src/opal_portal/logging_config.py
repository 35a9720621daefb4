"""
Console + optional log-file setup for the CLI.

The log file is zipped into debug bundles, so every handler masks the login password, CSRF token and session
cookie values before a record is written.
"""

import logging
import os
import re
from pathlib import Path
from typing import Optional


CONSOLE_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"
FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s:%(lineno)d - %(message)s"

# httpx logs every request at INFO (query strings included); httpcore logs raw headers at DEBUG.
QUIET_LOGGERS = ("httpx", "httpcore")

_SECRET_RE = re.compile(r"\b(h_password|CSRFToken|JSESSIONID)=([^;&\s'\"]+)", re.IGNORECASE)


class RedactSecretsFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        msg = record.getMessage()
        redacted = _SECRET_RE.sub(r"\1=***", msg)
        if redacted != msg:
            record.msg = redacted
            record.args = None
        return True


def _level(name: Optional[str]) -> int:
    level = logging.getLevelName((name or "INFO").upper())
    return level if isinstance(level, int) else logging.INFO


def configure_logging(level: str = "INFO", file_path: Optional[str] = None) -> None:
    console = logging.StreamHandler()
    console.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    handlers: list[logging.Handler] = [console]

    if file_path:
        path = Path(file_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        to_file = logging.FileHandler(path, encoding="utf-8")
        to_file.setFormatter(logging.Formatter(FILE_FORMAT))
        handlers.append(to_file)

    redact = RedactSecretsFilter()
    for handler in handlers:
        handler.addFilter(redact)

    # force: the CLI calls this again once the config file is loaded
    logging.basicConfig(level=_level(level), handlers=handlers, force=True)

    quiet = _level(os.getenv("NOISY_LOG_LEVEL", "WARNING"))
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(quiet)
