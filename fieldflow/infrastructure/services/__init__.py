"""Infrastructure services: notification senders and message templates."""
