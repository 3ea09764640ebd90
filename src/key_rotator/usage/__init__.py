# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Usage tracking package.

Public API:
    UsageTracker: Attempt listener backing the health and stats endpoints
"""

from .tracker import UsageTracker, KeyUsage, LogEntry

__all__ = ["UsageTracker", "KeyUsage", "LogEntry"]
