from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional, Union

PACKAGE_LOGGER = "todo_tracker"

_FORMAT = logging.Formatter(
    fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)


def setup_logging(level: Union[int, str] = logging.INFO, log_file: Optional[Union[str, Path]] = None) -> logging.Logger:
    """
    Configure the ``todo_tracker`` logger hierarchy:
    - Console handler on stderr
    - Optional file handler when ``log_file`` is given

    Safe to call more than once: handlers installed by an earlier call are
    replaced, handlers owned by others (root, test harnesses) are left alone.
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logger.setLevel(level)

    for h in list(logger.handlers):
        if getattr(h, "_todo_tracker", False):
            logger.removeHandler(h)
            h.close()

    ch = logging.StreamHandler(sys.stderr)
    ch.setFormatter(_FORMAT)
    ch._todo_tracker = True  # type: ignore[attr-defined]
    logger.addHandler(ch)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(str(path), encoding="utf-8")
        fh.setFormatter(_FORMAT)
        fh._todo_tracker = True  # type: ignore[attr-defined]
        logger.addHandler(fh)

    return logger
