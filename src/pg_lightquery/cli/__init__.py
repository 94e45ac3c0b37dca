"""Command-line interface for pg-lightquery."""
