"""File-backed users CRUD service."""

from __future__ import annotations

from typing import Any

from .storage import UserStore, resolve_data_path


def create_app(*args: Any, **kwargs: Any):
    """Factory function that returns the users API application."""

    from .api import create_app as _create_app

    return _create_app(*args, **kwargs)


__all__ = [
    "UserStore",
    "resolve_data_path",
    "create_app",
]
