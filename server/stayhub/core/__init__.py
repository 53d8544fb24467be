"""Cross-cutting configuration, persistence, errors, and observability."""
