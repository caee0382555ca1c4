"""Debug logging setup: a file in the session directory, optionally stderr too."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

LOG_FORMAT = '%(asctime)s %(levelname)s %(name)s %(message)s'


def setup_file_logging(output_dir: Path) -> Path:
    """Configure file-based debug logging into the output directory."""
    log_path = output_dir / 'pw_debug.log'
    handler = logging.FileHandler(log_path, encoding='utf-8')
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root = logging.getLogger('pw')
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)
    logging.getLogger('pw.cli').info('Debug logging started → %s', log_path)
    return log_path


def setup_console_logging(level: int = logging.DEBUG) -> None:
    """Mirror the ``pw`` loggers onto stderr (``--verbose``)."""
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter('%(levelname)s %(name)s: %(message)s'))
    root = logging.getLogger('pw')
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)
