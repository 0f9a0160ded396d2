"""fieldflow: event-driven automation engine for field-service operations."""
