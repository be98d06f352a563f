"""Entry point for `python -m backoffice_cli` and the `backoffice` console script."""

from __future__ import annotations

from backoffice_cli.app import app


def main() -> None:
    app()


if __name__ == "__main__":
    main()
