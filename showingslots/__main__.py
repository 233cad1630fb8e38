"""
Convenience entry point for running showingslots directly.

Usage: python -m showingslots [command] [options]
"""

from .cli.app import app

if __name__ == "__main__":
    app()
