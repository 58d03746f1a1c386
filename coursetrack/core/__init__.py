"""Cross-cutting infrastructure: logging, request context, storage."""
