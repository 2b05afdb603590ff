"""Command-line interface for FactoryFlow."""
