"""Command-line tools for supportDesk operators.

- ``python -m src.cli.ingest pdf --file F --kb KB``: register, extract and
  embed a local PDF into a knowledge base.
- ``python -m src.cli.ingest search --kb KB --query Q``: semantic search of
  a knowledge base.
- ``python -m src.cli.ingest stats``: stored vector counts.

The CLI builds its own collaborators from ``Settings`` because it runs as a
one-shot script, not a long-lived server.
"""
