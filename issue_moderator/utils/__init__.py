"""Shared infrastructure: structured logging setup and HTTP connection pooling."""
