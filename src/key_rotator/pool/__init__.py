# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""Credential pool: round-robin selection with cooldown bookkeeping."""

from .manager import CredentialPool

__all__ = ["CredentialPool"]
