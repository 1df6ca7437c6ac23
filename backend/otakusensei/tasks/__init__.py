"""Background tasks: the daily subscription sweep and credential cleanup."""
