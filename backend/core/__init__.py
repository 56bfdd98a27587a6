"""Core backend infrastructure: configuration, logging, database, errors and request dependencies."""
