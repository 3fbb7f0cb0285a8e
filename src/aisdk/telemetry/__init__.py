"""Telemetry module - Observability for generation runs.

This module provides OpenTelemetry integration:
- init_telemetry: Initialize tracing
- init_telemetry_from_config: Initialize tracing from the [telemetry] table
- shutdown_telemetry: Graceful shutdown
"""

from .tracing import init_telemetry, init_telemetry_from_config, shutdown_telemetry

__all__ = [
    "init_telemetry",
    "init_telemetry_from_config",
    "shutdown_telemetry",
]
