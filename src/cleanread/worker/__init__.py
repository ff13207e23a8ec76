"""Standalone extraction worker served over a Unix socket."""

from .server import create_app, main

__all__ = ["create_app", "main"]
