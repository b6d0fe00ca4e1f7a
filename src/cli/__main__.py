"""Allow ``python -m src.cli`` execution (defaults to the ingestion CLI)."""

from src.cli.ingest import main

main()
