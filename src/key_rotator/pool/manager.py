# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Credential pool manager.

Owns the ordered credentials, their exhaustion state and the rotation
cursor. Selection is round-robin: the cursor advances past every
credential handed out, whether or not the request using it succeeds,
so independent requests fan out across the pool.
"""

import logging
import threading
import time
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Callable, Collection, List, Optional, Sequence

from ..core.constants import DEFAULT_COOLDOWN_SECONDS, LIB_LOGGER_NAME
from ..core.errors import mask_credential
from ..core.types import CredentialSelection, CredentialState, CredentialStatus

if TYPE_CHECKING:
    from ..core.config import RotatorConfig

lib_logger = logging.getLogger(LIB_LOGGER_NAME)


class CredentialPool:
    """
    Round-robin credential pool with per-credential cooldowns.

    The credential list is fixed at construction. Selection and marking
    run under a lock so the cursor read-modify-write is atomic when the
    pool is shared between threads. Two concurrent callers may still be
    handed the same credential before either marks it exhausted; the
    upstream rejects both and each caller rotates on its own.

    Usage:
        pool = CredentialPool(config.api_keys)
        selection = pool.select()
        if selection is None:
            ...  # every credential is cooling down
        pool.mark_exhausted(selection.index)
    """

    def __init__(
        self,
        credentials: Sequence[str],
        default_cooldown: float = DEFAULT_COOLDOWN_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the pool.

        Args:
            credentials: Ordered, non-empty credential list
            default_cooldown: Seconds a credential is skipped after
                mark_exhausted() when no duration is given
            clock: Source of the current time in epoch seconds
        """
        if not credentials:
            raise ValueError("CredentialPool requires at least one credential.")
        self._credentials = tuple(credentials)
        self._states: List[CredentialState] = [
            CredentialState() for _ in self._credentials
        ]
        self._cursor = 0
        self._default_cooldown = default_cooldown
        self._clock = clock
        self._lock = threading.Lock()

    @classmethod
    def from_config(
        cls, config: "RotatorConfig", clock: Callable[[], float] = time.time
    ) -> "CredentialPool":
        """Build a pool from the configured keys and default cooldown."""
        return cls(
            config.api_keys, default_cooldown=config.cooldown_seconds, clock=clock
        )

    # =========================================================================
    # SELECTION
    # =========================================================================

    def select(
        self, exclude: Collection[int] = ()
    ) -> Optional[CredentialSelection]:
        """
        Select the next usable credential.

        Scans at most N positions from the cursor in cyclic order and
        returns the first one not cooling down, moving the cursor past it.

        Args:
            exclude: Pool positions to skip even when available, such as
                the ones the current request has already tried

        Returns:
            CredentialSelection, or None if every credential is cooling
            down or excluded (the cursor is left untouched)
        """
        with self._lock:
            now = self._clock()
            total = len(self._credentials)
            for offset in range(total):
                index = (self._cursor + offset) % total
                if index in exclude:
                    continue
                if self._states[index].is_available(now):
                    self._cursor = (index + 1) % total
                    credential = self._credentials[index]
                    lib_logger.debug(
                        f"Selected key index {index} "
                        f"({mask_credential(credential, style='full')}), "
                        f"next cursor {self._cursor}"
                    )
                    return CredentialSelection(credential=credential, index=index)
        return None

    def mark_exhausted(self, index: int, cooldown: Optional[float] = None) -> None:
        """
        Put a credential on cooldown.

        Overwrites any previous cooldown with now + cooldown.

        Args:
            index: Pool position of the credential
            cooldown: Seconds to skip it; defaults to the pool default
        """
        if index < 0 or index >= len(self._credentials):
            lib_logger.warning(f"Invalid key index {index} passed to mark_exhausted.")
            return

        duration = self._default_cooldown if cooldown is None else cooldown
        with self._lock:
            until = self._clock() + duration
            self._states[index] = CredentialState(exhausted_until=until)

        lib_logger.info(
            f"Key at index {index} marked as exhausted until "
            f"{datetime.fromtimestamp(until, tz=timezone.utc).isoformat()}"
        )

    # =========================================================================
    # READ ACCESSORS
    # =========================================================================

    @property
    def cursor(self) -> int:
        """Index the next scan starts from."""
        return self._cursor

    def count_total(self) -> int:
        return len(self._credentials)

    def count_available(self, now: Optional[float] = None) -> int:
        now = self._clock() if now is None else now
        return sum(1 for state in self._states if state.is_available(now))

    def count_exhausted(self, now: Optional[float] = None) -> int:
        now = self._clock() if now is None else now
        return self.count_total() - self.count_available(now)

    def get_state(self, index: int) -> CredentialState:
        """Return a copy of the state at a pool position."""
        return CredentialState(exhausted_until=self._states[index].exhausted_until)

    def get_all_states(self) -> List[CredentialState]:
        """Return copies of all states, in pool order."""
        return [self.get_state(i) for i in range(len(self._states))]

    def status_of(self, index: int, now: Optional[float] = None) -> CredentialStatus:
        now = self._clock() if now is None else now
        return self._states[index].status(now)

    def now(self) -> float:
        """Current time according to the pool clock."""
        return self._clock()
