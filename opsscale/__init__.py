"""
Ops Scale contact intake service
"""
from opsscale.version import __version__

__all__ = ["__version__"]
