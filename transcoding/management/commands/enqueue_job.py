from django.conf import settings
from django.core.management.base import BaseCommand, CommandError
from kombu import Connection

from transcoding.consumer import publish_job
from transcoding.errors import MalformedMessageError
from transcoding.messages import decode_job


class Command(BaseCommand):
    help = "Publish one HLS packaging job to the worker queue."

    def add_arguments(self, parser):
        parser.add_argument("video_id")
        parser.add_argument("url")
        parser.add_argument("filename")

    def handle(self, *args, **options):
        try:
            job = decode_job({
                "id": options["video_id"],
                "url": options["url"],
                "filename": options["filename"],
            })
        except MalformedMessageError as e:
            raise CommandError(str(e)) from e

        with Connection(settings.RABBITMQ_URL) as conn:
            publish_job(conn, settings.HLS_QUEUE_NAME, job)
        self.stdout.write(self.style.SUCCESS(f"Sent message: {job.to_payload().decode()}"))
