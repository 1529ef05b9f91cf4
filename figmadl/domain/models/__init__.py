"""Domain models (value objects) for the download workflow."""
