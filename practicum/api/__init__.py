"""HTTP API."""

from practicum.api.app import create_app

__all__ = ["create_app"]
