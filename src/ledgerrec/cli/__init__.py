"""Command-line interface for ledgerrec."""
