"""Rumble pattern playback."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Iterable

from gcadapter.adapter import ALL_OFF, AdapterSession
from gcadapter.config import RumbleConfig
from gcadapter.packet import PORT_COUNT

logger = logging.getLogger(__name__)

ALL_PORTS: tuple[int, ...] = tuple(range(1, PORT_COUNT + 1))

# Default patterns if not specified in config
DEFAULT_PATTERNS: dict[str, list[tuple[bool, int]]] = {
    "short": [(True, 100)],
    "long": [(True, 300)],
    "double": [(True, 80), (False, 80), (True, 80)],
    "error": [(True, 500)],
}


class RumbleManager:
    """Plays named on/off rumble patterns on adapter ports (1-4).

    Patterns are loaded from config (RumbleConfig.patterns).
    Falls back to DEFAULT_PATTERNS for missing entries.
    """

    def __init__(self, session: AdapterSession, config: RumbleConfig) -> None:
        self._session = session
        self._config = config
        self._patterns: dict[str, list[tuple[bool, int]]] = {
            **DEFAULT_PATTERNS,
            **config.patterns,
        }
        self._lock = threading.Lock()

    @property
    def pattern_names(self) -> list[str]:
        return sorted(self._patterns)

    def play(self, pattern_name: str, ports: Iterable[int] = ALL_PORTS) -> None:
        """Play a named rumble pattern on the given ports, then stop."""
        if not self._config.enabled:
            return

        pattern = self._patterns.get(pattern_name)
        if pattern is None:
            logger.warning("Unknown rumble pattern: %r", pattern_name)
            return

        targets = set(ports)
        for port in targets:
            if port not in ALL_PORTS:
                raise ValueError(f"Port must be 1-{PORT_COUNT}, got {port}.")

        with self._lock:
            try:
                for on, duration_ms in pattern:
                    self._session.set_rumble([on and port in targets for port in ALL_PORTS])
                    if duration_ms > 0:
                        time.sleep(duration_ms / 1000)
            finally:
                self._session.set_rumble(ALL_OFF)

    def stop(self) -> None:
        """Stop rumble on every port."""
        with self._lock:
            self._session.set_rumble(ALL_OFF)
