"""Pipeline services: document ingestion and conversation sync."""
