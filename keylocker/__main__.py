"""Allow running KeyLocker with ``python -m keylocker``"""
from .cli import main

main()
