"""roomcast.otel: OpenTelemetry instrumentation for broadcasts."""

from roomcast.otel.metrics import BroadcastMetrics

__all__ = ["BroadcastMetrics"]
