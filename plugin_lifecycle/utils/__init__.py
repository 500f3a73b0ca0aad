"""Utility modules for the plugin system."""

from . import logging

__all__ = ["logging"]
