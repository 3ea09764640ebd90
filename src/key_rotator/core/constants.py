# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Constants and default values for the key rotator.

All tunable defaults live here so that the config loader, the pool and
the forwarder agree on them. Environment variable names are listed
alongside the values they override.
"""

# =============================================================================
# UPSTREAM
# =============================================================================

DEFAULT_UPSTREAM_BASE_URL = "https://generativelanguage.googleapis.com/v1beta2"

# Query parameter the upstream reads the API key from
CREDENTIAL_QUERY_PARAM = "key"

# Per-attempt upstream timeout (seconds)
DEFAULT_UPSTREAM_TIMEOUT = 120.0

# =============================================================================
# COOLDOWN & ROTATION
# =============================================================================

# How long a credential is skipped after a quota signal (1 hour)
DEFAULT_COOLDOWN_SECONDS = 60 * 60

# Upstream statuses that mean "this credential is spent", not "this request is bad"
QUOTA_SIGNAL_STATUSES = frozenset({401, 403, 429})

# =============================================================================
# HEADERS
# =============================================================================

ACCESS_TOKEN_HEADER = "X-Access-Token"

HOP_BY_HOP_HEADERS = frozenset(
    {
        "host",
        "connection",
        "keep-alive",
        "proxy-authenticate",
        "proxy-authorization",
        "te",
        "trailers",
        "transfer-encoding",
        "upgrade",
    }
)

# Belong to the inbound transport, never to the upstream
INBOUND_CREDENTIAL_HEADERS = frozenset({"cookie", "authorization"})

# Bodies are re-framed by the HTTP client or server, so incoming framing must not leak
REQUEST_FRAMING_HEADERS = frozenset({"content-length"})
RESPONSE_FRAMING_HEADERS = frozenset({"content-length", "content-encoding"})

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "*",
    "Access-Control-Allow-Headers": "*",
}

# Methods that never carry a request body
BODYLESS_METHODS = frozenset({"GET", "HEAD"})

# =============================================================================
# SYNTHETIC RESPONSES
# =============================================================================

MSG_ALL_EXHAUSTED = "All API keys are exhausted (quota exceeded)."
MSG_TRANSPORT_FAILED = "Upstream request failed after trying all available API keys."
MSG_UNREACHABLE = "Failed to process request after trying all available API keys."
MSG_UNAUTHORIZED = "Unauthorized"
MSG_INTERNAL_ERROR = "Internal Server Error"

# =============================================================================
# SERVER & USAGE TRACKING
# =============================================================================

DEFAULT_API_PREFIX = "/api"
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8000
DEFAULT_LOG_LEVEL = "INFO"

# Capacity of the recent-call log kept for the statistics endpoint
DEFAULT_RECENT_LOG_SIZE = 100

# Window used for the "recent requests" figure (milliseconds)
RECENT_REQUESTS_WINDOW_MS = 5 * 60 * 1000

# =============================================================================
# ENVIRONMENT VARIABLES
# =============================================================================

ENV_API_KEYS = "API_KEYS"
ENV_UPSTREAM_BASE_URL = "GEMINI_API_BASE_URL"
ENV_ACCESS_TOKEN = "ACCESS_TOKEN"
ENV_COOLDOWN_SECONDS = "KEY_COOLDOWN_SECONDS"
ENV_UPSTREAM_TIMEOUT = "UPSTREAM_TIMEOUT_SECONDS"
ENV_HONOR_RETRY_AFTER = "HONOR_RETRY_AFTER"
ENV_API_PREFIX = "API_PREFIX"
ENV_HOST = "HOST"
ENV_PORT = "PORT"
ENV_LOG_LEVEL = "LOG_LEVEL"
ENV_RECENT_LOG_SIZE = "RECENT_LOG_SIZE"

# Logging
LIB_LOGGER_NAME = "key_rotator"
