from rest_framework import serializers

from .errors import MalformedMessageError
from .messages import decode_job


class JobSubmitSerializer(serializers.Serializer):
    id = serializers.CharField(max_length=128)
    url = serializers.URLField()
    filename = serializers.CharField(max_length=255)

    def validate(self, attrs):
        """
        Run the same checks the worker applies to queue payloads, so the API
        never publishes a message the worker would drop.
        """
        try:
            attrs["job"] = decode_job(dict(attrs))
        except MalformedMessageError as e:
            raise serializers.ValidationError(str(e))
        return attrs
