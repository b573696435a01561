"""Command-line tools for knowledge ingestion and conversation sync."""
