"""I/O layer: database execution."""
