"""Allow running with python -m nitro_server."""

from .cli import main

main()
