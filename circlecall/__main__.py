"""Entry point for running CircleCall as a module."""

from circlecall.cli import app


def main() -> None:
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
