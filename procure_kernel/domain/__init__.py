"""Pure domain value objects for the procurement kernel (zero I/O)."""
