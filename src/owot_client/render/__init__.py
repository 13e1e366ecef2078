"""Renderers for showing world cells."""

from owot_client.render.terminal import TerminalRenderer

__all__ = ["TerminalRenderer"]
