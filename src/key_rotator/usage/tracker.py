# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Usage tracker for the status endpoints.

Listens to the forwarder's attempt records and keeps per-credential
counters plus a bounded log of recent calls. Nothing is persisted; the
numbers reset with the process.

Health and statistics payloads use epoch milliseconds and never contain
a credential, only its pool index.
"""

import logging
import threading
import time
from collections import deque
from dataclasses import asdict, dataclass
from typing import Any, Deque, Dict, List, Optional

from ..core.constants import (
    DEFAULT_RECENT_LOG_SIZE,
    LIB_LOGGER_NAME,
    RECENT_REQUESTS_WINDOW_MS,
)
from ..core.types import AttemptRecord
from ..pool.manager import CredentialPool

lib_logger = logging.getLogger(LIB_LOGGER_NAME)


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class KeyUsage:
    """Counters for one credential."""

    request_count: int = 0
    error_count: int = 0
    last_used: Optional[int] = None  # epoch ms


@dataclass
class LogEntry:
    """One upstream call, as shown in the recent-call log."""

    timestamp: int  # epoch ms
    key_index: int
    status: int  # 0 when no response was received
    endpoint: str
    response_time: float  # ms


class UsageTracker:
    """
    Records upstream attempts and summarizes pool health.

    Usage:
        tracker = UsageTracker(pool)
        forwarder.add_listener(tracker.record_attempt)
        tracker.health()
        tracker.statistics()
    """

    def __init__(
        self,
        pool: CredentialPool,
        recent_log_size: int = DEFAULT_RECENT_LOG_SIZE,
    ):
        self._pool = pool
        self._usage: List[KeyUsage] = [KeyUsage() for _ in range(pool.count_total())]
        self._recent: Deque[LogEntry] = deque(maxlen=max(1, recent_log_size))
        self._total_attempts = 0
        self._lock = threading.Lock()

    def record_attempt(self, record: AttemptRecord) -> None:
        """Attempt listener: update counters and append to the recent log."""
        timestamp = int(record.started_at * 1000) if record.started_at else _now_ms()
        with self._lock:
            self._total_attempts += 1
            usage = self._usage[record.key_index]
            usage.request_count += 1
            usage.last_used = timestamp
            if record.is_error:
                usage.error_count += 1
            self._recent.append(
                LogEntry(
                    timestamp=timestamp,
                    key_index=record.key_index,
                    status=record.status_code or 0,
                    endpoint=record.endpoint,
                    response_time=round(record.elapsed_ms, 2),
                )
            )

    # =========================================================================
    # SUMMARIES
    # =========================================================================

    def health(self) -> Dict[str, Any]:
        """
        Pool health summary.

        status is "healthy" with nothing exhausted, "unhealthy" with no
        credential available and "degraded" in between.
        """
        now = self._pool.now()
        total = self._pool.count_total()
        active = self._pool.count_available(now)
        exhausted = total - active

        if exhausted == 0:
            status = "healthy"
        elif active == 0:
            status = "unhealthy"
        else:
            status = "degraded"

        return {
            "status": status,
            "timestamp": _now_ms(),
            "total_keys": total,
            "active_keys": active,
            "exhausted_keys": exhausted,
        }

    def statistics(self) -> Dict[str, Any]:
        """
        Per-credential counters and the recent-call log.

        total_requests counts upstream attempts, so a request that rotated
        through two keys adds two.
        """
        now = self._pool.now()
        now_ms = _now_ms()
        states = self._pool.get_all_states()

        with self._lock:
            key_states = []
            for index, (usage, state) in enumerate(zip(self._usage, states)):
                exhausted_until = None
                if state.exhausted_until is not None:
                    exhausted_until = int(state.exhausted_until * 1000)
                key_states.append(
                    {
                        "index": index,
                        "is_active": state.is_available(now),
                        "request_count": usage.request_count,
                        "errors": usage.error_count,
                        "last_used": usage.last_used,
                        "exhausted_until": exhausted_until,
                        "cooldown_remaining": state.remaining_seconds(now),
                    }
                )
            recent_logs = [asdict(entry) for entry in self._recent]
            total_attempts = self._total_attempts

        cutoff = now_ms - RECENT_REQUESTS_WINDOW_MS
        return {
            "timestamp": now_ms,
            "total_requests": total_attempts,
            "recent_requests": sum(1 for e in recent_logs if e["timestamp"] >= cutoff),
            "key_states": key_states,
            "recent_logs": recent_logs,
        }

    def get_usage(self, index: int) -> KeyUsage:
        with self._lock:
            usage = self._usage[index]
            return KeyUsage(usage.request_count, usage.error_count, usage.last_used)
