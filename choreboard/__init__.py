"""ChoreBoard - household task completion, scoring and approval service."""
