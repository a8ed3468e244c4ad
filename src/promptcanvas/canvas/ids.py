"""Unique tile id generation.

Ids look like ``img_1718000000000_k3j9x0a1b``: a millisecond timestamp
followed by nine random base-36 characters.  The timestamp component is
strictly increasing within the process (it is bumped by one when the clock
has not advanced or stepped backwards), so two ids from the same process
never collide.  Uniqueness across processes is not required.
"""

import secrets
import string
import threading
import time

_ALPHABET = string.digits + string.ascii_lowercase
_SUFFIX_LENGTH = 9

_lock = threading.Lock()
_last_millis = 0


def _random_suffix() -> str:
    return "".join(secrets.choice(_ALPHABET) for _ in range(_SUFFIX_LENGTH))


def generate_unique_id() -> str:
    """Return a tile id never returned before in this process."""
    global _last_millis

    with _lock:
        millis = time.time_ns() // 1_000_000
        if millis <= _last_millis:
            millis = _last_millis + 1
        _last_millis = millis

    return f"img_{millis}_{_random_suffix()}"
