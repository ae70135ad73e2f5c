"""
HTTP API for benten.
"""

from .server import create_app

__all__ = ["create_app"]
