# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Client package for forwarding requests upstream.

Public API:
    RequestForwarder: Rotating request forwarder
    forward: One-shot helper around RequestForwarder

Components (for advanced usage):
    ForwardPhase, ForwardState: The forwarding state machine
    filter_request_headers, build_response_headers: Header shaping
"""

from .forwarder import RequestForwarder, ForwardPhase, ForwardState, forward
from .headers import filter_request_headers, build_response_headers

__all__ = [
    # Main public API
    "RequestForwarder",
    "forward",
    # Components
    "ForwardPhase",
    "ForwardState",
    "filter_request_headers",
    "build_response_headers",
]
