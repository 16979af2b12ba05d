"""Publish digests to a Kafka topic."""

from __future__ import annotations

from threading import Lock

from kafka import KafkaProducer
from kafka.errors import KafkaError

from ..config import KafkaSinkConfig
from ..errors import SinkError
from .base import BaseSink


class KafkaSink(BaseSink):
    """Fire one message per digest; the producer is created on first use."""

    name = "kafka"

    def __init__(self, config: KafkaSinkConfig) -> None:
        self.config = config
        self._producer: KafkaProducer | None = None
        self._lock = Lock()

    def _get_producer(self) -> KafkaProducer:
        with self._lock:
            if self._producer is None:
                self._producer = KafkaProducer(
                    bootstrap_servers=list(self.config.brokers),
                    client_id="vacancy-watch",
                )
            return self._producer

    def publish(self, key: bytes, payload: bytes) -> None:
        try:
            producer = self._get_producer()
            future = producer.send(self.config.topic, key=key, value=payload)
            future.get(timeout=self.config.send_timeout)
        except KafkaError as exc:
            raise SinkError(self.name, f"publish to {self.config.topic} failed: {exc}") from exc

    def deliver(self, subject: str, body: str) -> None:
        self.publish(self.config.key.encode("utf-8"), body.encode("utf-8"))

    def close(self) -> None:
        with self._lock:
            if self._producer is not None:
                self._producer.close()
                self._producer = None


__all__ = ["KafkaSink"]
