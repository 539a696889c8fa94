"""Core: key hierarchy, record codec, search index and note storage."""
