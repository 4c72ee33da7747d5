"""Allow running as `python -m invoice_review`."""

from .cli.main import main

main()
