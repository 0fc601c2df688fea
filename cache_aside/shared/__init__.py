"""Shared cross-cutting helpers (logging). No cache logic."""

from cache_aside.shared.logging import setup_logging

__all__ = ["setup_logging"]
