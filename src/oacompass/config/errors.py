"""Errors raised while building configuration snapshots."""

from __future__ import annotations


class ConfigurationError(RuntimeError):
    """A setting is malformed, e.g. a bad ``PORT`` or an invalid group policy file.

    The relay answers these with HTTP 500; the CLI exits with status 2.
    """


class MissingConfigurationError(ConfigurationError):
    """A required environment variable such as ``OA_API_KEY`` is unset or blank."""
