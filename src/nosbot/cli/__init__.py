"""Command-line interface package for Nosbot."""

from nosbot.cli.main import CLIApplication, create_app

__all__ = ["CLIApplication", "create_app"]
