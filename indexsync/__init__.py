"""indexsync: keep elastic indices in sync with changed objects."""
