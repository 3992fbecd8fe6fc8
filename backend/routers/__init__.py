"""Routers module - FastAPI route handlers"""

from . import compare, config, history, scan, themes

__all__ = ["compare", "config", "history", "scan", "themes"]
