"""Card catalog and player state types."""
