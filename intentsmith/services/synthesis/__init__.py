"""Invocation command synthesis."""

from .service import CommandSynthesizer, build_argv, extras_argv, normalise_example, render_command

__all__ = ["CommandSynthesizer", "build_argv", "extras_argv", "normalise_example", "render_command"]
