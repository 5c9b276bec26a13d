"""coursegraph: course content ingestion and validation."""
