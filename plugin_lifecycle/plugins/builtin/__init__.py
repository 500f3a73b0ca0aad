"""Plugins shipped with the plugin system."""

from .home import HomePlugin

__all__ = ["HomePlugin"]
