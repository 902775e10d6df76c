"""Leveled debug output shared by the pipeline stages.

Verbosity follows the CLI's repeated ``-v`` flag:

1. pipeline stages (tokens, function table, instruction count)
2. compiler backpatches, calls and returns, declarations
3. a trace line for every executed instruction

Nothing is opened when the level is zero. With a path the messages go to
that file (``debug.txt`` by default), otherwise to stderr so they never mix
with program output.
"""

from __future__ import annotations

import sys
from typing import Optional, TextIO


class DebugLog:
    def __init__(self, level: int = 0, path: Optional[str] = 'debug.txt'):
        self.level = level
        self.debug_fp: Optional[TextIO] = None
        self._owns_fp = False
        if level > 0:
            if path:
                self.debug_fp = open(path, 'w', encoding='utf-8')
                self._owns_fp = True
            else:
                self.debug_fp = sys.stderr

    def enabled(self, level: int) -> bool:
        return self.level >= level

    def debug(self, level: int, msg: str):
        if self.level >= level and self.debug_fp:
            self.debug_fp.write(msg + '\n')
            self.debug_fp.flush()

    def close(self):
        if self._owns_fp and self.debug_fp:
            self.debug_fp.close()
        self.debug_fp = None
        self._owns_fp = False

    def __enter__(self) -> 'DebugLog':
        return self

    def __exit__(self, *exc):
        self.close()
        return False


NULL_LOG = DebugLog(0)
