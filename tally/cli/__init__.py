"""tally command-line interface (typer)."""

from .main import app, main

__all__ = ["app", "main"]
