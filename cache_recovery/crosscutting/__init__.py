"""Cross-cutting concerns: config, logging, metrics, tracing, errors."""
