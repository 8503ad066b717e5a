"""Application wiring: configuration, logging, metrics and entry point."""
