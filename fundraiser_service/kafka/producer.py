"""Donation events (donation.created, donation.status_changed) for downstream services."""
from datetime import datetime, timezone
import json
from typing import Optional

from aiokafka import AIOKafkaProducer
from aiokafka.errors import KafkaError
import structlog

from fundraiser_service.core.config import get_settings
from fundraiser_service.schemas.donation import DonationResponse
from fundraiser_service.schemas.events import DonationEvent

logger = structlog.get_logger(__name__)


def _encode(value: dict) -> bytes:
    return json.dumps(value).encode("utf-8")


class DonationEventProducer:

    def __init__(self):
        settings = get_settings()
        self.client: Optional[AIOKafkaProducer] = None
        self.servers = settings.kafka_bootstrap_servers
        self.topic = settings.kafka_topic_donation_events

    @property
    def running(self) -> bool:
        return self.client is not None

    async def start(self):
        client = AIOKafkaProducer(
            bootstrap_servers=self.servers,
            value_serializer=_encode,
            acks="all",
            compression_type="gzip",
            request_timeout_ms=30000,
            retry_backoff_ms=500,
        )
        try:
            await client.start()
        except KafkaError as e:
            logger.error("Donation event producer failed to start", servers=self.servers, error=str(e))
            raise
        self.client = client
        logger.info("Donation event producer started", servers=self.servers, topic=self.topic)

    async def stop(self):
        client, self.client = self.client, None
        if client is None:
            return
        try:
            await client.stop()
        except KafkaError as e:
            logger.error("Donation event producer did not stop cleanly", error=str(e))
        else:
            logger.info("Donation event producer stopped")

    async def publish_donation_event(self, event_type: str, donation: DonationResponse) -> bool:
        """
        Send one donation event. Returns False when the producer is not
        running or the broker rejects the send; the donation row is already
        committed either way.
        """
        if not self.running:
            logger.debug("Donation event dropped, producer not running", event_type=event_type)
            return False

        event = DonationEvent(
            event_type=event_type,
            donation_id=donation.id,
            affiliate_link_id=donation.affiliate_link_id,
            amount=donation.amount,
            payment_status=donation.payment_status.value,
            timestamp=datetime.now(timezone.utc).isoformat(),
        )
        log = logger.bind(event_type=event_type, donation_id=donation.id)
        try:
            await self.client.send_and_wait(self.topic, value=event.model_dump())
        except KafkaError as e:
            log.error("Donation event not delivered", error=str(e))
            return False

        log.info("Donation event published")
        return True


kafka_producer = DonationEventProducer()


def get_kafka_producer() -> DonationEventProducer:
    return kafka_producer
