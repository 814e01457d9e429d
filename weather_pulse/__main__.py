"""
CLI entry point.

Usage:
    python -m weather_pulse fetch London
"""

from .cli import cli

if __name__ == "__main__":
    cli()
