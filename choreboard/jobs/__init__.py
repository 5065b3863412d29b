"""Background jobs for ChoreBoard."""
