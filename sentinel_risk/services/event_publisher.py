"""
Kafka event publisher — fire-and-forget.

Publishes risk profile / metric events for downstream consumers
(dashboards, compliance reporting, data warehouse sync).
Never waits for broker acknowledgement; delivery failures are logged
and counted, not retried.
"""
from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import Awaitable, Optional, Union

import structlog

from sentinel_risk.core.config import Settings
from sentinel_risk.core.metrics import EVENT_PUBLISH_FAILURES
from sentinel_risk.schemas.risk_response import RiskEvent

logger = structlog.get_logger()


class EventPublisher(ABC):

    @abstractmethod
    def publish(self, event: RiskEvent) -> Union[None, Awaitable[None]]:
        raise NotImplementedError

    async def stop(self) -> None:
        return None


class LoggingEventPublisher(EventPublisher):
    """Used when Kafka is disabled (local dev): events only go to the log."""

    def publish(self, event: RiskEvent) -> None:
        logger.debug(
            "risk_event_skipped_kafka_disabled",
            event_type=event.event_type.value,
            organization_id=str(event.organization_id),
        )


class KafkaEventPublisher(EventPublisher):

    def __init__(self, bootstrap_servers: str, topic: str, producer=None):
        self.bootstrap_servers = bootstrap_servers
        self.topic = topic
        self._producer = producer
        self._started = producer is not None
        self._lock = asyncio.Lock()

    async def _get_producer(self):
        async with self._lock:
            if self._producer is None:
                from aiokafka import AIOKafkaProducer
                self._producer = AIOKafkaProducer(bootstrap_servers=self.bootstrap_servers)
            if not self._started:
                await self._producer.start()
                self._started = True
        return self._producer

    async def publish(self, event: RiskEvent) -> None:
        producer = await self._get_producer()
        # send() only enqueues; the returned future resolves on broker ack
        delivery = await producer.send(
            self.topic,
            event.model_dump_json().encode("utf-8"),
            key=event.partition_key.encode("utf-8"),
        )
        delivery.add_done_callback(lambda fut: self._on_delivery(event, fut))

    @staticmethod
    def _on_delivery(event: RiskEvent, fut: asyncio.Future) -> None:
        if fut.cancelled():
            error: Optional[BaseException] = asyncio.CancelledError()
        else:
            error = fut.exception()
        if error is None:
            logger.info("kafka_event_published", event_id=str(event.event_id), event_type=event.event_type.value)
            return
        EVENT_PUBLISH_FAILURES.labels(event_type=event.event_type.value).inc()
        logger.warning(
            "kafka_delivery_failed",
            event_id=str(event.event_id),
            event_type=event.event_type.value,
            error=str(error),
        )

    async def stop(self) -> None:
        if self._producer is not None and self._started:
            await self._producer.stop()
            self._started = False


def build_event_publisher(settings: Settings) -> EventPublisher:
    if not settings.kafka_enabled:
        return LoggingEventPublisher()
    return KafkaEventPublisher(settings.kafka_bootstrap, settings.kafka_topic_risk_events)
