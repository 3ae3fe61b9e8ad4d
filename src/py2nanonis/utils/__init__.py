"""Helpers built on top of the client."""

from .shared_client import SharedClient

__all__ = ['SharedClient']
