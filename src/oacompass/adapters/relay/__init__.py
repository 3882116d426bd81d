"""Relay HTTP service exposing the OpenAthens gateway to the staff client."""

from __future__ import annotations

from .app import build_router, create_app, register_exception_handlers

__all__ = ["build_router", "create_app", "register_exception_handlers"]
