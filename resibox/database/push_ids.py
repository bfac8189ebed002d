"""Firebase-style push key generation.

Keys are 20 characters: 8 characters of millisecond timestamp followed by
12 random characters, drawn from an alphabet whose ASCII order matches its
value order. Sorting keys lexicographically therefore sorts them by creation
time, and keys minted in the same millisecond increment the random suffix.
"""

import random
import threading
import time
from typing import List, Optional

PUSH_CHARS = "-0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ_abcdefghijklmnopqrstuvwxyz"


class PushKeyGenerator:
    """Thread-safe generator of chronologically ordered keys."""

    def __init__(self, clock=None, rng: Optional[random.Random] = None) -> None:
        self._clock = clock or (lambda: int(time.time() * 1000))
        self._rng = rng or random.SystemRandom()
        self._lock = threading.Lock()
        self._last_ms = -1
        self._last_rand: List[int] = [0] * 12

    def next_key(self) -> str:
        with self._lock:
            now = self._clock()
            duplicate = now == self._last_ms
            self._last_ms = now

            stamp = []
            for _ in range(8):
                stamp.append(PUSH_CHARS[now % 64])
                now //= 64
            stamp.reverse()

            if not duplicate:
                self._last_rand = [self._rng.randrange(64) for _ in range(12)]
            else:
                i = 11
                while i >= 0 and self._last_rand[i] == 63:
                    self._last_rand[i] = 0
                    i -= 1
                if i >= 0:
                    self._last_rand[i] += 1

            return "".join(stamp) + "".join(PUSH_CHARS[n] for n in self._last_rand)


_default_generator = PushKeyGenerator()


def generate_push_key() -> str:
    """Return a new key from the process-wide generator."""
    return _default_generator.next_key()
