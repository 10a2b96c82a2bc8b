"""In-memory EPG guide: XMLTV ingestion, channel index and now/next lookups."""
