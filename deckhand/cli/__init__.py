"""Deckhand CLI: Typer-based command-line interface.

Provides the ``deckhand`` command with subcommands for running the
pipeline on a push, checking the branch guard, rendering and building
images, and inspecting recorded runs.

All output uses Rich for formatted terminal display.
"""
