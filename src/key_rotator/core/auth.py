# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""Access gate: shared-secret header check applied before forwarding."""

import hmac
from typing import Mapping, Optional

from .constants import ACCESS_TOKEN_HEADER


def is_authorized(
    headers: Mapping[str, str], configured_secret: Optional[str]
) -> bool:
    """
    Check the caller's access token against the configured secret.

    With no secret configured every request is authorized (open proxy).
    Otherwise the X-Access-Token header must match exactly.

    Args:
        headers: Inbound request headers. Lookup must be case-insensitive
            on the header name, as with httpx/starlette header objects.
        configured_secret: The shared secret, or None

    Returns:
        True if the request may proceed
    """
    if not configured_secret:
        return True

    provided = headers.get(ACCESS_TOKEN_HEADER)
    if provided is None:
        return False

    return hmac.compare_digest(
        provided.encode("utf-8"), configured_secret.encode("utf-8")
    )
