"""Command-line entry points for the WOMSCP server."""
