"""Core services: the Hacker News client, caching, indexing and search."""
