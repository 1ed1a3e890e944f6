"""Signal Drill application package."""
