"""
Entry point for: python -m RootFinderVisualizer

Without a subcommand the interactive basin viewer opens.
"""
import sys

from .cli import main

sys.exit(main())
