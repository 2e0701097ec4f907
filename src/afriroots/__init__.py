"""AfriRoots backend: accounts, sessions and the community content feed."""

from .api import app

__all__ = ["app"]
