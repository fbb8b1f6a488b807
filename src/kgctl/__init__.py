"""kgctl — knowledge graph ingestion, querying, and snapshot persistence."""

__version__ = "0.3.0"
