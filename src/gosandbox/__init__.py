"""
gosandbox — isolated workspaces for running go commands against fixture modules.

File: src/gosandbox/__init__.py

Importing the package root only exposes the version; configuration and
logging are set up by the CLI, never at import time.
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
