# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Shared type definitions for the key rotator.

Dataclasses used across the pool, the forwarder, usage tracking and the
HTTP boundary. Nothing in here performs I/O except ProxyResponse, which
owns the upstream stream it was built from.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import (
    AsyncIterable,
    AsyncIterator,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    Union,
)

import httpx

from .constants import CORS_HEADERS


# =============================================================================
# ENUMS
# =============================================================================


class CredentialStatus(str, Enum):
    """Availability of a credential at a given instant."""

    FRESH = "fresh"  # Never marked exhausted
    COOLING_DOWN = "cooling_down"  # Exhausted, cooldown still running
    RECOVERED = "recovered"  # Was exhausted, cooldown has elapsed


class AttemptOutcome(str, Enum):
    """How a single upstream attempt ended."""

    PASS_THROUGH = "pass_through"  # Anything the caller should see as-is
    QUOTA = "quota"  # 401/403/429 - credential is spent
    TRANSPORT_ERROR = "transport_error"  # No response received


# =============================================================================
# CREDENTIAL STATE
# =============================================================================


@dataclass
class CredentialState:
    """
    Exhaustion state for one credential, addressed by pool position.

    The single optional field gives three cases: absent (fresh),
    in the future (cooling down) and in the past (recovered).
    """

    exhausted_until: Optional[float] = None

    def status(self, now: float) -> CredentialStatus:
        if self.exhausted_until is None:
            return CredentialStatus.FRESH
        if self.exhausted_until > now:
            return CredentialStatus.COOLING_DOWN
        return CredentialStatus.RECOVERED

    def is_available(self, now: float) -> bool:
        return self.status(now) is not CredentialStatus.COOLING_DOWN

    def remaining_seconds(self, now: float) -> float:
        """Seconds left in the cooldown, 0 when not cooling down."""
        if self.exhausted_until is None:
            return 0.0
        return max(0.0, self.exhausted_until - now)


@dataclass(frozen=True)
class CredentialSelection:
    """A credential handed out by the pool together with its position."""

    credential: str = field(repr=False)
    index: int


# =============================================================================
# REQUEST / RESPONSE
# =============================================================================

HeadersInput = Union[Mapping[str, str], Sequence[Tuple[str, str]], httpx.Headers]
BodyInput = Union[bytes, AsyncIterable[bytes], None]


@dataclass
class InboundRequest:
    """
    Platform-neutral view of a request arriving at the proxy.

    `path` is already stripped of any routing prefix and keeps the
    caller's percent-escapes. `query` is the raw
    query string without the leading '?'. `body` may be bytes or an async
    stream; the forwarder reads it at most once.
    """

    method: str
    path: str
    query: str = ""
    headers: HeadersInput = field(default_factory=dict)
    body: BodyInput = None

    def __post_init__(self) -> None:
        self.method = self.method.upper()
        if not isinstance(self.headers, httpx.Headers):
            self.headers = httpx.Headers(self.headers)


@dataclass
class AttemptRecord:
    """
    What happened on one upstream attempt.

    Emitted by the forwarder for usage tracking. Carries the credential
    index only, never the credential itself.
    """

    attempt: int
    key_index: int
    endpoint: str
    outcome: AttemptOutcome
    status_code: Optional[int] = None
    started_at: float = 0.0  # epoch seconds
    elapsed_ms: float = 0.0

    @property
    def is_error(self) -> bool:
        return self.status_code is None or self.status_code >= 400


@dataclass
class ProxyResponse:
    """
    Response returned to the boundary adapter.

    Either synthetic (content set, no upstream) or a pass-through of an
    upstream response whose body is still open and must be consumed with
    aiter_bytes()/aread() and released with aclose().
    """

    status_code: int
    reason_phrase: str = ""
    headers: httpx.Headers = field(default_factory=httpx.Headers)
    content: bytes = b""
    attempts: List[AttemptRecord] = field(default_factory=list)
    upstream: Optional[httpx.Response] = field(default=None, repr=False)
    _consumed: bool = field(default=False, init=False, repr=False)

    @classmethod
    def synthetic(cls, status_code: int, message: str) -> "ProxyResponse":
        headers = httpx.Headers({"content-type": "text/plain; charset=utf-8"})
        headers.update(CORS_HEADERS)
        return cls(
            status_code=status_code,
            reason_phrase=httpx.codes.get_reason_phrase(status_code),
            headers=headers,
            content=message.encode("utf-8"),
        )

    @property
    def is_synthetic(self) -> bool:
        return self.upstream is None

    @property
    def key_index(self) -> Optional[int]:
        """Index of the credential that produced this response, if any."""
        if self.is_synthetic or not self.attempts:
            return None
        return self.attempts[-1].key_index

    async def aiter_bytes(self) -> AsyncIterator[bytes]:
        if self.upstream is None or self._consumed:
            if self.content:
                yield self.content
            return
        self._consumed = True
        try:
            async for chunk in self.upstream.aiter_bytes():
                yield chunk
        finally:
            await self.upstream.aclose()

    async def aread(self) -> bytes:
        if self.upstream is not None and not self._consumed:
            self.content = b"".join([chunk async for chunk in self.aiter_bytes()])
        return self.content

    async def aclose(self) -> None:
        if self.upstream is not None:
            await self.upstream.aclose()
