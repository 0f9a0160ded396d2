"""Shared kernel: enums, utilities and telemetry used across layers."""
