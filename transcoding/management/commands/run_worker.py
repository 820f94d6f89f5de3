import logging
import signal

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError
from kombu import Connection

from transcoding.consumer import JobConsumer
from transcoding.errors import ConfigurationError, PipelineError
from transcoding.s3 import ensure_bucket, get_s3_client
from transcoding.tasks import HlsJobProcessor

logger = logging.getLogger(__name__)


def check_worker_settings():
    missing = [
        name for name in ("RABBITMQ_URL", "HLS_QUEUE_NAME", "S3_BUCKET")
        if not str(getattr(settings, name, "") or "").strip()
    ]
    if missing:
        raise ConfigurationError(f"Missing worker settings: {', '.join(missing)}")


class Command(BaseCommand):
    help = "Consume HLS packaging jobs from RabbitMQ until SIGINT/SIGTERM."

    def handle(self, *args, **options):
        try:
            check_worker_settings()
            s3 = get_s3_client()
            ensure_bucket(s3, settings.S3_BUCKET)
        except PipelineError as e:
            raise CommandError(f"Worker startup failed: {e}") from e

        processor = HlsJobProcessor.from_settings(s3=s3)
        consumer = JobConsumer(
            Connection(settings.RABBITMQ_URL),
            settings.HLS_QUEUE_NAME,
            processor.process,
            drop_non_retryable=settings.HLS_DROP_NON_RETRYABLE,
        )

        def _shutdown(signum, frame):
            logger.info("Shutdown signal received, finishing current job")
            consumer.stop()

        signal.signal(signal.SIGINT, _shutdown)
        signal.signal(signal.SIGTERM, _shutdown)

        logger.info("Consuming jobs from queue %s", settings.HLS_QUEUE_NAME)
        consumer.run()
        if consumer.error is not None:
            raise CommandError(f"Broker unavailable: {consumer.error}")
        logger.info("Worker shutdown complete")
