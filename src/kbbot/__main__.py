"""kbbot CLI entry point."""

from kbbot.cli import app

if __name__ == "__main__":
    app()
