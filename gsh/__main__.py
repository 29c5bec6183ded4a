"""
Main entry point for gsh.
"""
import sys

from .cli import cli_main


def main() -> None:
    sys.exit(cli_main())


if __name__ == "__main__":
    main()
