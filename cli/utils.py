"""Utility functions for CLI output."""

import re
import sys
from typing import Optional, TextIO

from cli.constants import GREEN, RESET

_CHUNK_PROGRESS = re.compile(r'^\s*Uploaded chunk (\d+)/(\d+)$')


class ConsoleReporter:
    """
    Prints progress lines, redrawing chunk progress in place.

    Consecutive "Uploaded chunk n/m" messages share one terminal line with a
    percentage; any other message ends that line first.
    """

    def __init__(self, stream: Optional[TextIO] = None):
        self.stream = stream or sys.stdout
        self._in_progress = False

    def __call__(self, message: str) -> None:
        match = _CHUNK_PROGRESS.match(message)
        if match:
            done, total = int(match.group(1)), int(match.group(2))
            percent = (done / total) * 100 if total else 100.0
            self.stream.write(f"\r  Uploading chunks: {done}/{total} ({GREEN}{percent:.1f}%{RESET})")
            self.stream.flush()
            self._in_progress = True
            return

        if self._in_progress:
            self.stream.write('\n')
            self._in_progress = False
        self.stream.write(message + '\n')
        self.stream.flush()
