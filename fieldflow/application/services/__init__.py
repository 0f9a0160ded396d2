"""Application services: event bus, workflow engine, scheduler, job state machine."""
