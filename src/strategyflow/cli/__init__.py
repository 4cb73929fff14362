"""Command-line interface for strategyflow."""
