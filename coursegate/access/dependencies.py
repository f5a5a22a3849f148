"""Dependency injection for access module."""

from typing import Annotated

from fastapi import Depends, Header, Query

from .service import AccessService


# Module-level reference to be overridden by main.py
_service_getter = None


def set_access_service_getter(getter):
    """Set the access service getter function.

    Called by main.py during app initialization.
    """
    global _service_getter  # noqa: PLW0603 - Required for DI pattern
    _service_getter = getter


def get_access_service() -> AccessService:
    """Get AccessService instance configured at startup."""
    if _service_getter is None:
        raise RuntimeError(
            "AccessService not configured - call set_access_service_getter first"
        )
    return _service_getter()


AccessServiceDep = Annotated[AccessService, Depends(get_access_service)]


def get_stream_token(
    x_video_token: Annotated[str | None, Header()] = None,
    token: Annotated[str | None, Query()] = None,
) -> str | None:
    """Stream token from the X-Video-Token header, else the ``token`` query.

    Media players that cannot set headers pass it in the URL.
    """
    return x_video_token or token


StreamTokenDep = Annotated[str | None, Depends(get_stream_token)]
