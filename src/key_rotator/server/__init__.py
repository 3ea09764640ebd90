# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""HTTP boundary: FastAPI application around the forwarder."""

from .app import create_app, create_app_from_env, to_starlette_response

__all__ = ["create_app", "create_app_from_env", "to_starlette_response"]
