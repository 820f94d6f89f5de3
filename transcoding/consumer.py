"""
RabbitMQ job intake.

One delivery in flight per worker (prefetch=1, manual ack); the handler runs
synchronously inside the delivery callback, and its outcome decides the
disposition:

- payload that cannot be decoded -> reject, never requeued
- handler raised                 -> requeue
- handler returned               -> ack
"""

import enum
import logging
import socket
from typing import Callable

from kombu import Connection, Exchange, Queue
from kombu.exceptions import OperationalError

from .errors import MalformedMessageError
from .messages import JobDescriptor, decode_job

logger = logging.getLogger(__name__)


class ConsumerState(enum.Enum):
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"
    CONSUMING = "consuming"
    SHUTTING_DOWN = "shutting_down"
    CLOSED = "closed"


def job_queue(name: str) -> Queue:
    # default exchange: routing key == queue name
    return Queue(name, exchange=Exchange(""), routing_key=name, durable=True)


class JobConsumer:
    def __init__(self, connection: Connection, queue_name: str,
                 handler: Callable[[JobDescriptor], object], *,
                 drop_non_retryable: bool = False, poll_interval: float = 1.0):
        self.connection = connection
        self.queue = job_queue(queue_name)
        self.handler = handler
        self.drop_non_retryable = drop_non_retryable
        self.poll_interval = poll_interval
        self.state = ConsumerState.DISCONNECTED
        self.should_stop = False
        self.error = None  # set when the broker was unreachable or went away

    def _set_state(self, state: ConsumerState):
        logger.info("Consumer %s -> %s", self.state.value, state.value)
        self.state = state

    def stop(self):
        """Stop taking new deliveries; a job already being handled runs to the end."""
        self.should_stop = True

    def on_message(self, message):
        try:
            job = decode_job(message.body)
        except MalformedMessageError as e:
            logger.error("Dropping malformed message: %s", e)
            message.reject(requeue=False)
            return

        logger.info("Received video message: ID=%s, URL=%s, Filename=%s", job.id, job.url, job.filename)
        try:
            self.handler(job)
        except Exception as e:
            retryable = getattr(e, "retryable", True)
            if not retryable and self.drop_non_retryable:
                logger.error("Failed to process video %s (non-retryable, dropping): %s", job.id, e)
                message.reject(requeue=False)
                return
            if retryable:
                logger.warning("Failed to process video %s, requeueing: %s", job.id, e)
            else:
                logger.error("Failed to process video %s (non-retryable, requeueing; needs operator attention): %s",
                             job.id, e)
            message.requeue()
            return

        logger.info("Successfully processed video %s", job.id)
        message.ack()

    def run(self):
        """Connect, declare the queue and consume until stop() or the broker goes away."""
        errors = (
            (OperationalError,)
            + tuple(self.connection.connection_errors)
            + tuple(self.connection.channel_errors)
        )
        try:
            self.connection.ensure_connection(max_retries=3)
            channel = self.connection.channel()
            self.queue(channel).declare()
            self._set_state(ConsumerState.CONNECTED)

            with self.connection.Consumer(
                queues=[self.queue],
                channel=channel,
                on_message=self.on_message,
                prefetch_count=1,
                no_ack=False,
            ):
                self._set_state(ConsumerState.CONSUMING)
                while not self.should_stop:
                    try:
                        self.connection.drain_events(timeout=self.poll_interval)
                    except socket.timeout:
                        continue
        except errors as e:
            logger.error("Broker connection lost: %s", e)
            self.error = e
        finally:
            self._set_state(ConsumerState.SHUTTING_DOWN)
            self.connection.release()
            self._set_state(ConsumerState.CLOSED)


def publish_job(connection: Connection, queue_name: str, job: JobDescriptor):
    """Publish a job message as persistent JSON on the durable job queue."""
    queue = job_queue(queue_name)
    with connection.Producer() as producer:
        producer.publish(
            job.to_payload(),
            exchange="",
            routing_key=queue_name,
            content_type="application/json",
            content_encoding="utf-8",
            delivery_mode=2,
            declare=[queue],
            retry=True,
        )
    logger.info("Published job %s to %s", job.id, queue_name)
