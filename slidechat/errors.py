"""Exception types shared across slidechat subsystems."""

from __future__ import annotations


class SlideChatError(Exception):
    """Base class for every error slidechat raises on purpose."""


class ValidationFailure(SlideChatError, ValueError):
    """Required input is empty or missing (credential, files, message, session)."""
