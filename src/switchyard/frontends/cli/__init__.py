"""Command-line interface."""

from switchyard.frontends.cli.main import main

__all__ = ["main"]
