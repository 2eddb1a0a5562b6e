"""
Compiled-program cache.

A `ProgramCache` maps ``(device key, kernel signature)`` to a compiled
program. It is an ordinary object owned by whoever creates it (by default
each `Device` owns one), so several devices may share a cache and tests can
reset it explicitly.
"""

from __future__ import annotations

import threading
from typing import Any, Callable, Dict, Hashable, Optional, Tuple


class ProgramCache:
    """Thread-safe compile-once store of programs."""

    def __init__(self) -> None:
        self._programs: Dict[Tuple[Hashable, tuple], Any] = {}
        self._lock = threading.Lock()

    def get_or_compile(
        self, device_key: Hashable, signature: tuple, compile_fn: Callable[[], Any]
    ) -> Any:
        """
        Return the program cached for ``(device_key, signature)``, compiling it
        with `compile_fn` on a miss. A ``None`` result is not cached.
        """
        key = (device_key, signature)
        with self._lock:
            program = self._programs.get(key)
            if program is None:
                program = compile_fn()
                if program is not None:
                    self._programs[key] = program
            return program

    def num_programs(self, device_key: Optional[Hashable] = None) -> int:
        with self._lock:
            if device_key is None:
                return len(self._programs)
            return sum(1 for dk, _ in self._programs if dk == device_key)

    def reset(self) -> None:
        """Drop every cached program."""
        with self._lock:
            self._programs.clear()

    def __len__(self) -> int:
        return self.num_programs()
