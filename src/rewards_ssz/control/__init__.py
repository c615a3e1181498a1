"""Command-line conversion driver."""
