"""
📄 log_utils.py

Purpose:
    Logging setup for the command line.

Key Features:
    - setup_logging(): rich console handler on the root logger, plus an
      optional timestamped log file.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

FILE_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


def setup_logging(
    level: str = "WARNING",
    log_dir: Path | None = None,
    console: Console | None = None,
) -> logging.Logger:
    root = logging.getLogger()
    root.setLevel(level.upper())

    # Re-running the CLI in one process must not stack handlers
    for handler in list(root.handlers):
        if getattr(handler, "_ocfl_export", False):
            root.removeHandler(handler)
            handler.close()

    rich_handler = RichHandler(console=console or Console(stderr=True), show_path=False)
    rich_handler.setFormatter(logging.Formatter("%(message)s"))
    rich_handler._ocfl_export = True
    root.addHandler(rich_handler)

    if log_dir:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        ts = time.strftime("%Y-%m-%d_%H%M%S")
        fh = logging.FileHandler(log_dir / f"ocfl_export_{ts}.log", encoding="utf-8")
        fh.setFormatter(logging.Formatter(FILE_FORMAT))
        fh._ocfl_export = True
        root.addHandler(fh)

    return logging.getLogger("ocfl_export")
