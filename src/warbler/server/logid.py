"""Correlation ids for internal errors.

An id is the process start time and a per-process counter, both in base
36: ``lq2x9c3k-1f``. It is sent to the client as ``X-Log-Id`` and written
to the error log, so a user report can be matched to its traceback.
"""

import threading
import time

_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"


def base36(n: int) -> str:
    if n == 0:
        return "0"
    digits: list[str] = []
    while n:
        n, rem = divmod(n, 36)
        digits.append(_DIGITS[rem])
    return "".join(reversed(digits))


_PREFIX = base36(int(time.time() * 1000))
_lock = threading.Lock()
_counter = 0


def next_log_id() -> str:
    """Return a new id, unique within this process."""
    global _counter
    with _lock:
        _counter += 1
        n = _counter
    return f"{_PREFIX}-{base36(n)}"
