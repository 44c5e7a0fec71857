"""
Entry point for ``python -m creatorshub`` and the ``creatorshub`` script.

Application errors are rendered by the commands in ``creatorshub.cli.app``.
"""

from creatorshub.cli.app import app


def main() -> None:
    app(prog_name="creatorshub")


if __name__ == "__main__":
    main()
