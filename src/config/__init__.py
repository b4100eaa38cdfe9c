"""Configuration module — exports Settings.

Settings are instantiated once by ``src.main`` and passed explicitly to
each component; there is no module-level singleton here.
"""

from src.config.settings import Settings

__all__ = ["Settings"]
