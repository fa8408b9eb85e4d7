"""Logging setup — rich console handler + plain file log."""

from __future__ import annotations

import logging
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

from tasknest.config import LOG_FILE


class _ThirdPartyFilter(logging.Filter):
    """Keep tasknest logs; let uvicorn/httpx through only at WARNING+."""

    def filter(self, record: logging.LogRecord) -> bool:
        if record.name == "tasknest" or record.name.startswith("tasknest."):
            return True
        return record.levelno >= logging.WARNING


def setup_logging(verbose: bool = False, log_file: Path | None = LOG_FILE) -> None:
    """Configure root logging once, before the first command runs."""
    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in list(root.handlers):
        root.removeHandler(h)

    console_handler = RichHandler(
        console=Console(stderr=True),
        level=logging.DEBUG if verbose else logging.INFO,
        show_path=False,
        markup=False,
    )
    console_handler.addFilter(_ThirdPartyFilter())
    root.addHandler(console_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(str(log_file), encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter(
                fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        file_handler.addFilter(_ThirdPartyFilter())
        root.addHandler(file_handler)

    logging.captureWarnings(True)
