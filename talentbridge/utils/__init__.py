"""Upload helpers shared by routes."""
