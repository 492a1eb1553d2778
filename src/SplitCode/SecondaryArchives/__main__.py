"""Entry point for CLI invocation via python -m."""

from SplitCode.SecondaryArchives.cli import app

if __name__ == "__main__":
    app()
