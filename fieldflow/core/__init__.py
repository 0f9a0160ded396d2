"""Core wiring: settings, lifespan, exception handlers."""
