"""Typer sub-commands for the projecttracker CLI."""
