# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Key rotator: an HTTP proxy that spreads upstream calls across a pool of
API keys, rotating away from keys that hit their quota.

Public API:
    RotatorConfig, ConfigLoader: Configuration
    CredentialPool: Round-robin pool with cooldowns
    RequestForwarder, forward: Rotating request forwarding
    is_authorized: Access gate
    UsageTracker: Counters behind the status endpoints
    create_app: FastAPI application
"""

from .core import (
    RotatorConfig,
    ServerSettings,
    ConfigLoader,
    ConfigurationError,
    CredentialState,
    CredentialStatus,
    CredentialSelection,
    InboundRequest,
    ProxyResponse,
    AttemptRecord,
    AttemptOutcome,
    is_authorized,
    mask_credential,
)
from .pool import CredentialPool
from .client import RequestForwarder, forward
from .usage import UsageTracker
from .server import create_app, create_app_from_env

__version__ = "1.0.0"

__all__ = [
    "RotatorConfig",
    "ServerSettings",
    "ConfigLoader",
    "ConfigurationError",
    "CredentialState",
    "CredentialStatus",
    "CredentialSelection",
    "InboundRequest",
    "ProxyResponse",
    "AttemptRecord",
    "AttemptOutcome",
    "is_authorized",
    "mask_credential",
    "CredentialPool",
    "RequestForwarder",
    "forward",
    "UsageTracker",
    "create_app",
    "create_app_from_env",
]
