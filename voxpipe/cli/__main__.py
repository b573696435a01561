"""Allow ``python -m voxpipe.cli`` execution (defaults to the ingest CLI)."""

from voxpipe.cli.ingest import main

main()
