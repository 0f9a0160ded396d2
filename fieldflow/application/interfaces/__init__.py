"""Ports (Protocols) implemented by infrastructure and application services."""
