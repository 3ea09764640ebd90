# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Core package for the key rotator.

Provides shared infrastructure used by the pool, the forwarder and the
HTTP boundary:
- types: Shared dataclasses and enums
- errors: Exceptions and upstream status classification
- config: RotatorConfig and the environment ConfigLoader
- auth: The access gate predicate
- constants: Default values and magic numbers
"""

from .types import (
    CredentialStatus,
    AttemptOutcome,
    CredentialState,
    CredentialSelection,
    InboundRequest,
    AttemptRecord,
    ProxyResponse,
)

from .errors import (
    ConfigurationError,
    classify_status,
    should_rotate,
    mask_credential,
    get_retry_after,
)

from .config import (
    RotatorConfig,
    ServerSettings,
    ConfigLoader,
    parse_api_keys,
    normalize_prefix,
)

from .auth import is_authorized

__all__ = [
    # Types
    "CredentialStatus",
    "AttemptOutcome",
    "CredentialState",
    "CredentialSelection",
    "InboundRequest",
    "AttemptRecord",
    "ProxyResponse",
    # Errors
    "ConfigurationError",
    "classify_status",
    "should_rotate",
    "mask_credential",
    "get_retry_after",
    # Config
    "RotatorConfig",
    "ServerSettings",
    "ConfigLoader",
    "parse_api_keys",
    "normalize_prefix",
    # Auth
    "is_authorized",
]
