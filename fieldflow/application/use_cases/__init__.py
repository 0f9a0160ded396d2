"""Read-side use cases for the operator API."""
