"""Check subsystem: result models, classification rules, aggregator."""
