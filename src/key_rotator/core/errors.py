# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Error handling for the key rotator.

Holds the exception types raised at startup and the status
classification that decides between rotating to the next credential
and handing the upstream response back to the caller.
"""

import time
from email.utils import parsedate_to_datetime
from typing import Mapping, Optional

from .constants import QUOTA_SIGNAL_STATUSES
from .types import AttemptOutcome


# =============================================================================
# EXCEPTIONS
# =============================================================================


class ConfigurationError(ValueError):
    """
    Raised when the rotator cannot be configured.

    Fatal at startup: the server must not begin accepting requests.
    """


# =============================================================================
# CLASSIFICATION
# =============================================================================


def classify_status(status_code: int) -> AttemptOutcome:
    """
    Classify an upstream status code.

    Only the status is inspected; response bodies are never parsed for
    structured error codes.

    Args:
        status_code: HTTP status returned by the upstream

    Returns:
        AttemptOutcome.QUOTA for 401/403/429, PASS_THROUGH otherwise
    """
    if status_code in QUOTA_SIGNAL_STATUSES:
        return AttemptOutcome.QUOTA
    return AttemptOutcome.PASS_THROUGH


def should_rotate(outcome: AttemptOutcome, attempts_remaining: int) -> bool:
    """
    Decide whether to give up on this credential and try another one.

    A quota signal on the final attempt is not rotated: it is returned
    to the caller verbatim.
    """
    if outcome is AttemptOutcome.PASS_THROUGH:
        return False
    if outcome is AttemptOutcome.TRANSPORT_ERROR:
        return True
    return attempts_remaining > 0


# =============================================================================
# UTILITIES
# =============================================================================


def mask_credential(credential: str, style: str = "partial") -> str:
    """
    Render a credential safe for logs.

    Args:
        credential: The secret to mask
        style: "partial" keeps the first and last four characters,
            "full" keeps only the last four

    Returns:
        Masked representation
    """
    if not credential:
        return "<empty>"
    if len(credential) <= 8:
        return "****"
    if style == "full":
        return f"...{credential[-4:]}"
    return f"{credential[:4]}...{credential[-4:]}"


def get_retry_after(
    headers: Mapping[str, str], now: Optional[float] = None
) -> Optional[float]:
    """
    Read a Retry-After header as a number of seconds.

    Accepts both delta-seconds and HTTP-date forms.

    Args:
        headers: Response headers (case-insensitive mapping)
        now: Reference time for HTTP-date values, defaults to time.time()

    Returns:
        Seconds to wait, or None if absent or unparseable
    """
    raw = headers.get("retry-after")
    if not raw:
        return None
    raw = raw.strip()

    try:
        seconds = float(raw)
    except ValueError:
        seconds = None

    if seconds is None:
        try:
            retry_at = parsedate_to_datetime(raw)
        except (TypeError, ValueError):
            return None
        if retry_at is None:
            return None
        seconds = retry_at.timestamp() - (time.time() if now is None else now)

    return max(0.0, seconds)
