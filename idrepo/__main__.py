"""
Identity repository CLI entry point.

Usage:
    python -m idrepo [COMMAND] [OPTIONS]
"""

from .cli import app

if __name__ == "__main__":
    app()
