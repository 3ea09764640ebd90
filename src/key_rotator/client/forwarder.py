# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Request forwarder.

Executes one inbound request as a bounded sequence of upstream attempts,
each with a different credential from the pool. The loop is an explicit
state machine:

    SELECTING  -> ask the pool for a credential (or finish with 429)
    CALLING    -> send the request upstream with that credential
    EVALUATING -> classify the result: rotate, or finish
    DONE       -> a ProxyResponse is ready

The number of attempts is bounded by the pool size, so no credential is
tried twice for the same request and the loop always terminates.
"""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Set, Tuple

import httpx

from ..core.config import RotatorConfig
from ..core.constants import (
    BODYLESS_METHODS,
    CREDENTIAL_QUERY_PARAM,
    LIB_LOGGER_NAME,
    MSG_ALL_EXHAUSTED,
    MSG_TRANSPORT_FAILED,
    MSG_UNREACHABLE,
)
from ..core.errors import classify_status, get_retry_after, should_rotate
from ..core.types import (
    AttemptOutcome,
    AttemptRecord,
    CredentialSelection,
    InboundRequest,
    ProxyResponse,
)
from ..pool.manager import CredentialPool
from .headers import build_response_headers, filter_request_headers

lib_logger = logging.getLogger(LIB_LOGGER_NAME)

AttemptListener = Callable[[AttemptRecord], None]


class ForwardPhase(str, Enum):
    """States of the forwarding state machine."""

    SELECTING = "selecting"
    CALLING = "calling"
    EVALUATING = "evaluating"
    DONE = "done"


@dataclass
class ForwardState:
    """
    State for one logical request moving through the state machine.
    """

    max_attempts: int
    phase: ForwardPhase = ForwardPhase.SELECTING
    attempt: int = 0
    selection: Optional[CredentialSelection] = None
    tried: Set[int] = field(default_factory=set)
    upstream: Optional[httpx.Response] = None
    transport_error: Optional[Exception] = None
    started_at: float = 0.0
    elapsed_ms: float = 0.0
    attempts: List[AttemptRecord] = field(default_factory=list)
    result: Optional[ProxyResponse] = None

    @property
    def attempts_remaining(self) -> int:
        return self.max_attempts - self.attempt

    def finish(self, response: ProxyResponse) -> None:
        response.attempts = self.attempts
        self.result = response
        self.phase = ForwardPhase.DONE


class RequestForwarder:
    """
    Forwards inbound requests upstream, rotating credentials on quota
    signals and transport failures.

    The pool is injected, so independent forwarders (and tests) can each
    own an isolated pool. An httpx.AsyncClient may be injected as well;
    otherwise one is created and closed by aclose().

    Usage:
        pool = CredentialPool.from_config(config)
        async with RequestForwarder(config, pool) as forwarder:
            response = await forwarder.forward(inbound)
    """

    def __init__(
        self,
        config: RotatorConfig,
        pool: CredentialPool,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize the forwarder.

        Args:
            config: Rotator configuration (upstream base URL, timeouts)
            pool: Credential pool shared by all requests of this forwarder
            client: Optional shared HTTP client. Redirects are never
                followed regardless of the client's own setting.
        """
        self._config = config
        self._pool = pool
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(config.upstream_timeout),
            follow_redirects=False,
        )
        self._listeners: List[AttemptListener] = []

    @property
    def pool(self) -> CredentialPool:
        return self._pool

    def add_listener(self, listener: AttemptListener) -> None:
        """Register a callback invoked with every AttemptRecord."""
        self._listeners.append(listener)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "RequestForwarder":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    # =========================================================================
    # FORWARDING
    # =========================================================================

    async def forward(self, request: InboundRequest) -> ProxyResponse:
        """
        Forward one inbound request.

        Args:
            request: The inbound request, path already stripped of any
                routing prefix

        Returns:
            The upstream response (pass-through), or a synthetic 429 when
            no credential was available, 502 when every attempt failed at
            the transport level, or 500 if the attempt budget runs out
            without a result.
        """
        target = self.build_target_url(request.path, request.query)
        headers = filter_request_headers(request.headers)
        body = await self._buffer_body(request)

        state = ForwardState(max_attempts=self._pool.count_total())
        try:
            while state.phase is not ForwardPhase.DONE:
                if state.phase is ForwardPhase.SELECTING:
                    self._select(state)
                elif state.phase is ForwardPhase.CALLING:
                    await self._call(state, request.method, target, headers, body)
                elif state.phase is ForwardPhase.EVALUATING:
                    await self._evaluate(state, request.path)
        except BaseException:
            # Cancelled or failed mid-attempt: release the in-flight response
            if state.upstream is not None:
                await state.upstream.aclose()
            raise

        return state.result

    def build_target_url(self, path: str, query: str = "") -> httpx.URL:
        """
        Join the upstream base address with the inbound path and query.

        The inbound scheme, host and port never reach this point; only the
        path and query string survive. Both are expected percent-encoded
        and existing escapes are kept as they are.
        """
        base = self._config.upstream_base_url.rstrip("/")
        if path and not path.startswith("/"):
            path = "/" + path
        url = base + path
        if query:
            url = f"{url}?{query}"
        return httpx.URL(url)

    # =========================================================================
    # STATE HANDLERS
    # =========================================================================

    def _select(self, state: ForwardState) -> None:
        if state.attempts_remaining <= 0:
            lib_logger.error("Attempt budget spent without a response.")
            state.finish(ProxyResponse.synthetic(500, MSG_UNREACHABLE))
            return

        # A zero cooldown leaves a spent key available; never reuse it here
        selection = self._pool.select(exclude=state.tried)
        if selection is None:
            lib_logger.error("All API keys are currently exhausted.")
            state.finish(ProxyResponse.synthetic(429, MSG_ALL_EXHAUSTED))
            return

        state.attempt += 1
        state.tried.add(selection.index)
        state.selection = selection
        state.upstream = None
        state.transport_error = None
        state.phase = ForwardPhase.CALLING

    async def _call(
        self,
        state: ForwardState,
        method: str,
        target: httpx.URL,
        headers: List[Tuple[str, str]],
        body: Optional[bytes],
    ) -> None:
        selection = state.selection
        url = target.copy_set_param(CREDENTIAL_QUERY_PARAM, selection.credential)

        lib_logger.info(
            f"Attempt {state.attempt}/{state.max_attempts}: Forwarding to "
            f"{target.host} using key index {selection.index}"
        )

        state.started_at = time.time()
        start = time.monotonic()
        try:
            upstream_request = self._client.build_request(
                method, url, headers=headers, content=body
            )
            state.upstream = await self._client.send(
                upstream_request, stream=True, follow_redirects=False
            )
        except httpx.RequestError as e:
            lib_logger.error(
                f"Transport error for key index {selection.index}: "
                f"{type(e).__name__}"
            )
            state.transport_error = e
        state.elapsed_ms = (time.monotonic() - start) * 1000.0
        state.phase = ForwardPhase.EVALUATING

    async def _evaluate(self, state: ForwardState, endpoint: str) -> None:
        selection = state.selection
        upstream = state.upstream

        if upstream is None:
            outcome = AttemptOutcome.TRANSPORT_ERROR
            status_code = None
        else:
            status_code = upstream.status_code
            outcome = classify_status(status_code)

        self._record(
            state,
            AttemptRecord(
                attempt=state.attempt,
                key_index=selection.index,
                endpoint=endpoint,
                outcome=outcome,
                status_code=status_code,
                started_at=state.started_at,
                elapsed_ms=state.elapsed_ms,
            ),
        )

        if not should_rotate(outcome, state.attempts_remaining):
            lib_logger.debug(
                f"Key index {selection.index} returned {status_code}; "
                f"returning to caller."
            )
            state.finish(
                ProxyResponse(
                    status_code=upstream.status_code,
                    reason_phrase=upstream.reason_phrase,
                    headers=build_response_headers(upstream.headers),
                    upstream=upstream,
                )
            )
            return

        cooldown = None
        if upstream is not None:
            if self._config.honor_retry_after:
                cooldown = get_retry_after(upstream.headers)
            lib_logger.warning(
                f"Key index {selection.index} returned status {status_code}. "
                f"Marking as exhausted and trying next key."
            )
            await upstream.aclose()
            state.upstream = None
        self._pool.mark_exhausted(selection.index, cooldown)

        if outcome is AttemptOutcome.TRANSPORT_ERROR and state.attempts_remaining <= 0:
            state.finish(ProxyResponse.synthetic(502, MSG_TRANSPORT_FAILED))
            return

        state.phase = ForwardPhase.SELECTING

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _record(self, state: ForwardState, record: AttemptRecord) -> None:
        state.attempts.append(record)
        for listener in self._listeners:
            listener(record)

    async def _buffer_body(self, request: InboundRequest) -> Optional[bytes]:
        """Read the inbound body once so every attempt resends the same bytes."""
        if request.method in BODYLESS_METHODS or request.body is None:
            return None
        if isinstance(request.body, (bytes, bytearray)):
            return bytes(request.body)
        chunks = [chunk async for chunk in request.body]
        return b"".join(chunks)


async def forward(
    request: InboundRequest,
    config: RotatorConfig,
    pool: CredentialPool,
    client: Optional[httpx.AsyncClient] = None,
) -> ProxyResponse:
    """
    Forward a single request without keeping a RequestForwarder around.

    The returned pass-through response stays usable after this call even
    when the HTTP client is created here, because its body is read
    before the client is closed.
    """
    if client is not None:
        return await RequestForwarder(config, pool, client).forward(request)

    async with RequestForwarder(config, pool) as forwarder:
        response = await forwarder.forward(request)
        await response.aread()
        return response
