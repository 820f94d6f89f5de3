import logging

from django.conf import settings
from kombu import Connection
from kombu.exceptions import KombuError
from rest_framework import status, views
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from .consumer import publish_job
from .serializers import JobSubmitSerializer

logger = logging.getLogger(__name__)


class SubmitJobView(views.APIView):
    """
    Queues a source video for HLS packaging. The worker picks the message up
    from RabbitMQ; outcome is visible in worker logs and in the bucket.
    """
    permission_classes = [AllowAny]
    authentication_classes = []

    def post(self, request):
        ser = JobSubmitSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        job = ser.validated_data["job"]

        try:
            with Connection(settings.RABBITMQ_URL) as conn:
                publish_job(conn, settings.HLS_QUEUE_NAME, job)
        except (KombuError, OSError) as e:
            logger.error("Could not publish job %s: %s", job.id, e)
            return Response({"detail": "Job queue unavailable"}, status=status.HTTP_503_SERVICE_UNAVAILABLE)

        return Response({"job_id": job.id}, status=status.HTTP_202_ACCEPTED)
