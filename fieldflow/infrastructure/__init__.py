"""Infrastructure: persistence, cache, notification providers."""
