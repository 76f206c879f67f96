"""
Payment outcomes from the payment service.

``payment.completed`` and ``payment.failed`` drive the same status
transition as ``PATCH /donations/{id}/status``; reconciliation stays
idempotent, so redelivered events are harmless.

Offsets are committed by hand once an event has been applied or skipped.
An event that hits a database outage is sought back and read again after
a backoff, so a confirmed payment is never dropped.
"""
import asyncio
import json
from typing import Optional

from aiokafka import AIOKafkaConsumer, TopicPartition
from aiokafka.errors import KafkaError
from pydantic import ValidationError
import structlog

from fundraiser_service.core.config import get_settings
from fundraiser_service.core.exceptions import LedgerError, TransientIOError
from fundraiser_service.database.database import session_scope
from fundraiser_service.kafka.producer import kafka_producer
from fundraiser_service.models import DonationStatus
from fundraiser_service.schemas.events import PaymentEvent
from fundraiser_service.services.donation import DonationService

logger = structlog.get_logger(__name__)

PAYMENT_OUTCOMES = {
    "payment.completed": DonationStatus.COMPLETED,
    "payment.failed": DonationStatus.FAILED,
}


def _decode(raw: bytes) -> Optional[dict]:
    """Undecodable bytes become None, which handle_event skips"""
    try:
        return json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as e:
        logger.warning("Undecodable payment event", error=str(e), size=len(raw))
        return None


class PaymentEventConsumer:

    def __init__(self):
        settings = get_settings()
        self.client: Optional[AIOKafkaConsumer] = None
        self.servers = settings.kafka_bootstrap_servers
        self.topic = settings.kafka_topic_payment_events
        self.group_id = settings.kafka_consumer_group
        self.retry_backoff = settings.kafka_retry_backoff_seconds

    async def start(self):
        client = AIOKafkaConsumer(
            self.topic,
            bootstrap_servers=self.servers,
            group_id=self.group_id,
            value_deserializer=_decode,
            enable_auto_commit=False,
            auto_offset_reset="earliest",
        )
        try:
            await client.start()
        except KafkaError as e:
            logger.error("Payment event consumer failed to start", servers=self.servers, error=str(e))
            raise
        self.client = client
        logger.info("Payment event consumer started", servers=self.servers, topic=self.topic,
                    group_id=self.group_id)

    async def stop(self):
        client, self.client = self.client, None
        if client is None:
            return
        try:
            await client.stop()
        except KafkaError as e:
            logger.error("Payment event consumer did not stop cleanly", error=str(e))
        else:
            logger.info("Payment event consumer stopped")

    async def consume_events(self):
        if not self.client:
            logger.error("Payment event consumer not started, nothing to consume")
            return

        async for message in self.client:
            log = logger.bind(partition=message.partition, offset=message.offset)
            try:
                await self.handle_event(message.value)
            except TransientIOError as e:
                log.warning("Payment event deferred, ledger unavailable",
                            error=e.message, retry_in_seconds=self.retry_backoff)
                self.client.seek(TopicPartition(message.topic, message.partition), message.offset)
                await asyncio.sleep(self.retry_backoff)
                continue
            except Exception:
                log.exception("Payment event handling failed, skipping", payload=message.value)

            await self.client.commit()

    async def handle_event(self, payload: Optional[dict]) -> bool:
        """
        Apply one payment event. Returns True when a donation was updated.

        Malformed, unknown and rejected events are logged and skipped so one
        poison message cannot stall the partition. TransientIOError propagates
        so the caller can retry the event.
        """
        if not isinstance(payload, dict):
            logger.warning("Payment event without a JSON object skipped", payload=payload)
            return False

        try:
            event = PaymentEvent(**payload)
        except ValidationError as e:
            logger.warning("Malformed payment event skipped", error=str(e), payload=payload)
            return False

        target = PAYMENT_OUTCOMES.get(event.event_type)
        if target is None:
            logger.debug("Payment event type not handled", event_type=event.event_type)
            return False

        log = logger.bind(event_type=event.event_type, donation_id=event.donation_id)
        try:
            with session_scope() as db:
                donation = await DonationService.update_donation_status(
                    db,
                    event.donation_id,
                    target,
                    transaction_id=event.transaction_id,
                    payment_method=event.payment_method,
                )
        except TransientIOError:
            raise
        except LedgerError as e:
            log.warning("Payment event rejected", code=e.code, error=e.message)
            return False

        log.info("Payment event applied", payment_status=donation.payment_status.value)
        await kafka_producer.publish_donation_event("donation.status_changed", donation)
        return True


kafka_consumer = PaymentEventConsumer()
