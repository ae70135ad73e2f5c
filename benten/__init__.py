"""
benten: a searchable index over a tagged audio library.
"""

from core import __version__

__all__ = ["__version__"]
