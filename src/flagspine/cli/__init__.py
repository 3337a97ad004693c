"""flagspine command-line interface."""

from flagspine.cli.app import app

__all__ = ["app"]
