"""Application layer: event bus, workflow engine, scheduler and action handlers."""
