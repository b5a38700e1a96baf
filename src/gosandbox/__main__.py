"""Module entrypoint for ``python -m gosandbox``."""

from __future__ import annotations

from gosandbox.main import cli_entrypoint

if __name__ == "__main__":
    raise SystemExit(cli_entrypoint())
