"""Entry point for `python -m branch_cli` and the `branchsync` console script."""

from __future__ import annotations

from branch_cli.app import app


def main() -> None:
    app()


if __name__ == "__main__":
    main()
