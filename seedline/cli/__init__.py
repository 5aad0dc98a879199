"""
CLI module for Seedline - contains command-line interface components.
"""

from seedline.cli.main import main

__all__ = ["main"]
