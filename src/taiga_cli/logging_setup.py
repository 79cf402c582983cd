# src/taiga_cli/logging_setup.py

from __future__ import annotations

import logging
import sys
from pathlib import Path

LOG_FILE_NAME = "taiga.log"

_QUIET_LIBRARIES = ("httpx", "httpcore")


class _ConsoleNoiseFilter(logging.Filter):
    """
    stdout carries command output, so stderr only gets:
    - taiga_cli records at the configured level
    - anything else (py.warnings, libraries) at ERROR or above
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if record.name == "taiga_cli" or record.name.startswith("taiga_cli."):
            return True
        return record.levelno >= logging.ERROR


def resolve_level(level: int | str, default: int = logging.WARNING) -> int:
    """Accept 10 / "debug" / "DEBUG"; unknown names fall back to `default`."""
    if isinstance(level, int):
        return level
    value = logging.getLevelName(str(level).strip().upper())
    return value if isinstance(value, int) else default


def setup_logging(
    *,
    log_dir: str | Path | None = None,
    console_level: int | str = logging.WARNING,
    file_level: int | str = logging.DEBUG,
) -> None:
    """
    Install the process-wide handlers: filtered stderr plus, when log_dir is
    given and writable, a full log in <log_dir>/taiga.log.

    Safe to call more than once; previous root handlers are replaced.
    """
    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for handler in list(root.handlers):
        root.removeHandler(handler)

    formatter = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(resolve_level(console_level))
    console.setFormatter(formatter)
    console.addFilter(_ConsoleNoiseFilter())
    root.addHandler(console)

    if log_dir is not None:
        path = Path(log_dir)
        try:
            path.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(str(path / LOG_FILE_NAME), encoding="utf-8")
        except OSError as e:
            logging.getLogger(__name__).warning("File logging disabled (%s): %s", path, e)
        else:
            file_handler.setLevel(resolve_level(file_level, logging.DEBUG))
            file_handler.setFormatter(formatter)
            root.addHandler(file_handler)

    logging.captureWarnings(True)

    # Request lines are logged at INFO by httpx; our own records already name each call.
    for name in _QUIET_LIBRARIES:
        logging.getLogger(name).setLevel(logging.WARNING)
