"""Quote and trade providers."""
