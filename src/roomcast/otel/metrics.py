"""Broadcast metrics recorded through OpenTelemetry."""

from typing import Any

from opentelemetry import metrics
from opentelemetry.metrics import MeterProvider

from roomcast.broadcaster import DeliveryReport
from roomcast.events import Event


class BroadcastMetrics:
    """Broadcaster observer that records delivery reports.

    Tracks:
    - roomcast.broadcast.delivered: Events placed on an outbound queue
    - roomcast.broadcast.dropped: Events dropped, by ``reason``
    - roomcast.broadcast.fanout: Recipients attempted per broadcast

    Example:
        gateway = ChatGateway(observers=(BroadcastMetrics(),))
    """

    def __init__(
        self,
        meter_provider: MeterProvider | None = None,
        messaging_system: str = "roomcast",
    ) -> None:
        provider = meter_provider or metrics.get_meter_provider()
        meter = provider.get_meter("roomcast.otel")
        self._messaging_system = messaging_system

        self._delivered = meter.create_counter(
            "roomcast.broadcast.delivered",
            unit="{event}",
            description="Number of events placed on an outbound queue",
        )
        self._dropped = meter.create_counter(
            "roomcast.broadcast.dropped",
            unit="{event}",
            description="Number of events dropped during fan-out",
        )
        self._fanout = meter.create_histogram(
            "roomcast.broadcast.fanout",
            unit="{connection}",
            description="Number of recipients attempted per broadcast",
        )

    def __call__(self, target: str, event: Event, report: DeliveryReport) -> None:
        attributes: dict[str, Any] = {
            "messaging.system": self._messaging_system,
            "event.type": event.type,
        }
        self._fanout.record(report.attempted, attributes)
        if report.delivered:
            self._delivered.add(report.delivered, attributes)
        if report.dropped_disconnected:
            self._dropped.add(
                report.dropped_disconnected, {**attributes, "reason": "disconnected"}
            )
        if report.dropped_overflow:
            self._dropped.add(report.dropped_overflow, {**attributes, "reason": "overflow"})
