#!/usr/bin/env python3
"""
Terminal state and progress display

The cursor is hidden while progress lines are redrawn in place. hidden_cursor()
scopes that change and restores the cursor on every exit path, including
Ctrl-C and SIGTERM.
"""

import signal
import sys
import threading
import time
from contextlib import contextmanager
from typing import Iterator, Optional, TextIO

CURSOR_HIDE = "\x1b[?25l"
CURSOR_SHOW = "\x1b[?25h"

def _raise_interrupt(signum, frame):
    raise KeyboardInterrupt

@contextmanager
def hidden_cursor(stream: Optional[TextIO] = None) -> Iterator[None]:
    """Hide the cursor for the duration of the block"""
    stream = stream or sys.stderr
    if not stream.isatty():
        yield
        return

    # SIGTERM is turned into KeyboardInterrupt so the finally block runs
    previous = None
    in_main_thread = threading.current_thread() is threading.main_thread()
    if in_main_thread:
        previous = signal.signal(signal.SIGTERM, _raise_interrupt)

    stream.write(CURSOR_HIDE)
    stream.flush()
    try:
        yield
    finally:
        stream.write(CURSOR_SHOW)
        stream.flush()
        if in_main_thread:
            signal.signal(signal.SIGTERM, previous if previous is not None else signal.SIG_DFL)

class ProgressTracker:
    """Redraw a 'Processed N files out of M' line on one terminal row"""

    def __init__(self, stream: Optional[TextIO] = None, enabled: Optional[bool] = None,
                 interval: float = 0.1):
        self.stream = stream or sys.stderr
        self.enabled = self.stream.isatty() if enabled is None else enabled
        self.interval = interval
        self.last_update = 0.0
        self.active = False

    def update(self, phase: str, done: int, total: int) -> None:
        """Update progress display"""
        if not self.enabled:
            return

        now = time.time()
        if done < total and now - self.last_update < self.interval:
            return

        self.stream.write(f"\r{phase}: processed {done:,} files out of {total:,}")
        self.stream.flush()
        self.last_update = now
        self.active = True

        if done == total:
            self.finish()

    def finish(self) -> None:
        """End the current progress line"""
        if self.active:
            self.stream.write("\n")
            self.stream.flush()
            self.active = False
