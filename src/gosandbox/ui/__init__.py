"""UI package exports for the CLI router and rendering."""

from gosandbox.ui.cli import CLIError, build_parser, main, run_cli
from gosandbox.ui.render import CLIRenderer, create_renderer

__all__ = [
    "CLIError",
    "CLIRenderer",
    "build_parser",
    "create_renderer",
    "main",
    "run_cli",
]
