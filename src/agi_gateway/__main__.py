"""Entry point for ``python -m agi_gateway``."""

from .cli import main

main()
