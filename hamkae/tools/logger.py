# hamkae/tools/logger.py
import os
import sys
from datetime import datetime
from typing import Optional

LEVELS = {"DEBUG": 0, "INFO": 1, "WARNING": 2, "ERROR": 3}

# Log file shared by every logger that was not given its own path.
_DEFAULT_LOGFILE: Optional[str] = None
_LOGGERS = {}


def should_log(level: str) -> bool:
    """Check if we should log at the given level based on HAMKAE_LOG_LEVEL env var."""
    current_level = os.environ.get("HAMKAE_LOG_LEVEL", "INFO").upper()
    return LEVELS.get(level, 1) >= LEVELS.get(current_level, 1)


def _touch(path: str) -> None:
    folder = os.path.dirname(path)
    if folder:
        os.makedirs(folder, exist_ok=True)
    with open(path, "a", encoding="utf-8") as f:
        f.write("")


class ClientLogger:
    """
    Simple client logger:
    - prints to stdout (WARNING and ERROR go to stderr)
    - optionally appends to a logfile (e.g., logs/hamkae.log)
    - lines below HAMKAE_LOG_LEVEL are dropped
    """

    def __init__(self, name: str, logfile_path: Optional[str] = None):
        self.name = name
        self.logfile_path = logfile_path

        if self.logfile_path:
            # Touch early so it exists even if we crash later
            _touch(self.logfile_path)

    def log(self, msg: str, level: str = "INFO") -> None:
        level = level.upper()
        if not should_log(level):
            return
        ts = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        line = f"[{ts}] {level:<7} {self.name}: {msg}"
        stream = sys.stderr if LEVELS.get(level, 1) >= LEVELS["WARNING"] else sys.stdout
        print(line, file=stream)
        path = self.logfile_path or _DEFAULT_LOGFILE
        if path:
            with open(path, "a", encoding="utf-8") as f:
                f.write(line + "\n")

    def debug(self, msg: str) -> None:
        self.log(msg, "DEBUG")

    def info(self, msg: str) -> None:
        self.log(msg, "INFO")

    def warning(self, msg: str) -> None:
        self.log(msg, "WARNING")

    def error(self, msg: str) -> None:
        self.log(msg, "ERROR")


def make_logger(name: str, logfile: str | None = None) -> ClientLogger:
    return ClientLogger(name=name, logfile_path=logfile)


def get_logger(name: str) -> ClientLogger:
    """Module-level logger, shared per name. Writes to the configured default logfile."""
    if name not in _LOGGERS:
        _LOGGERS[name] = make_logger(name)
    return _LOGGERS[name]


def configure_logging(level: str | None = None, logfile: str | None = None) -> None:
    global _DEFAULT_LOGFILE
    if level:
        os.environ["HAMKAE_LOG_LEVEL"] = level.upper()
    _DEFAULT_LOGFILE = logfile or None
    if _DEFAULT_LOGFILE:
        _touch(_DEFAULT_LOGFILE)


def mask_token(token: str | None, keep: int = 20) -> str:
    if not token:
        return "<none>"
    return token[:keep] + "..." if len(token) > keep else token
