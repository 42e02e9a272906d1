"""Task list core: recurrence, subtask dependencies, ordering and lifecycle."""
