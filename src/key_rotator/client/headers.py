# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Header shaping for forwarded requests and returned responses.
"""

from typing import List, Tuple

import httpx

from ..core.constants import (
    CORS_HEADERS,
    HOP_BY_HOP_HEADERS,
    INBOUND_CREDENTIAL_HEADERS,
    REQUEST_FRAMING_HEADERS,
    RESPONSE_FRAMING_HEADERS,
)

_BLOCKED_REQUEST_HEADERS = (
    HOP_BY_HOP_HEADERS | INBOUND_CREDENTIAL_HEADERS | REQUEST_FRAMING_HEADERS
)
_BLOCKED_RESPONSE_HEADERS = HOP_BY_HOP_HEADERS | RESPONSE_FRAMING_HEADERS


def filter_request_headers(headers: httpx.Headers) -> List[Tuple[str, str]]:
    """
    Build the header list sent upstream.

    Drops hop-by-hop headers and the inbound transport's own credentials
    (cookie, authorization). Repeated headers are kept as separate items.
    """
    forwarded = [
        (name, value)
        for name, value in headers.multi_items()
        if name.lower() not in _BLOCKED_REQUEST_HEADERS
    ]
    content_type = headers.get("content-type")
    if content_type is not None and not any(
        name.lower() == "content-type" for name, _ in forwarded
    ):
        forwarded.append(("content-type", content_type))
    return forwarded


def build_response_headers(upstream_headers: httpx.Headers) -> httpx.Headers:
    """
    Build the headers returned to the caller for a pass-through response.

    Hop-by-hop and framing headers are removed and permissive CORS
    headers are added.
    """
    shaped = httpx.Headers(
        [
            (name, value)
            for name, value in upstream_headers.multi_items()
            if name.lower() not in _BLOCKED_RESPONSE_HEADERS
        ]
    )
    shaped.update(CORS_HEADERS)
    return shaped
