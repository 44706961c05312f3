"""Session-scoped elevation secret cache and command whitelist."""

import threading
import time
from typing import Callable, Iterable, Optional, Set

from ..constants import CREDENTIAL_TTL_SECONDS, ELEVATION_FAILURE_PHRASES
from ..utils.logging import logger

# Characters of earlier output a phrase can straddle into a new chunk
FAILURE_PHRASE_OVERLAP = max(len(phrase) for phrase in ELEVATION_FAILURE_PHRASES) - 1


class CredentialCache:
    """Time-boxed, in-memory cache of a single elevation secret.

    The secret is valid while ``now - issued_at < ttl``. Any component that
    sees an elevation failure may clear it, regardless of the TTL.
    """

    def __init__(self, ttl: float = CREDENTIAL_TTL_SECONDS,
                 clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self._clock = clock
        self._lock = threading.Lock()
        self._secret: Optional[str] = None
        self._issued_at: Optional[float] = None

    def get(self) -> Optional[str]:
        """Return the cached secret, or None if absent or expired."""
        with self._lock:
            if self._secret is None or self._issued_at is None:
                return None
            if self._clock() - self._issued_at < self.ttl:
                return self._secret
            # Expired entries are dropped on read
            self._secret = None
            self._issued_at = None
        logger.debug("Cached elevation secret expired")
        return None

    def set(self, secret: str) -> None:
        """Store a secret with a fresh timestamp, replacing any previous one."""
        with self._lock:
            self._secret = secret
            self._issued_at = self._clock()
        logger.debug("Elevation secret cached")

    def clear(self) -> None:
        """Forget the cached secret."""
        with self._lock:
            had_secret = self._secret is not None
            self._secret = None
            self._issued_at = None
        if had_secret:
            logger.debug("Elevation secret cleared")

    def is_valid(self) -> bool:
        """Whether a non-expired secret is cached."""
        return self.get() is not None

    def invalidate_on_failure(self, text: str) -> bool:
        """Clear the secret if text contains an elevation failure phrase.

        Returns:
            True if a failure phrase was found
        """
        if contains_elevation_failure(text):
            if self.is_valid():
                logger.warning("Elevation failure detected in output; cached secret discarded.")
            self.clear()
            return True
        return False


def contains_elevation_failure(text: str) -> bool:
    """Whether text contains a recognized elevation-failure phrase."""
    return any(phrase in text for phrase in ELEVATION_FAILURE_PHRASES)


class Whitelist:
    """Root commands the operator approved with "always allow" this session."""

    def __init__(self, commands: Iterable[str] = ()):
        self._lock = threading.Lock()
        self._commands: Set[str] = set(commands)

    def add(self, root_command: str) -> None:
        with self._lock:
            self._commands.add(root_command)

    def __contains__(self, root_command: object) -> bool:
        with self._lock:
            return root_command in self._commands

    def __len__(self) -> int:
        with self._lock:
            return len(self._commands)

    def snapshot(self) -> Set[str]:
        """Copy of the current whitelist."""
        with self._lock:
            return set(self._commands)
