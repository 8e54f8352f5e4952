"""AI email writer backend."""
