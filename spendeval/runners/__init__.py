"""Per-case and batch evaluation runners."""
