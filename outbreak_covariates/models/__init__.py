"""Models module - random forest wrapper and candidate formula search."""
