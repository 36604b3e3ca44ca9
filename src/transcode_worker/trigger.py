"""Decoding of push-delivery envelopes into transcode jobs.

Expected request body:
    {
        "message": {
            "data": "<base64 of {\"filename\": \"lecture1.mp4\", \"qualityCeiling\": 720}>",
            "messageId": "...",
            "attributes": {...}
        },
        "subscription": "..."
    }
"""

import base64
import binascii
import json
from typing import Any

from pydantic import ValidationError

from ..shared.exceptions import InvalidTriggerError
from ..shared.models import TranscodeJob


def decode_push_message(body: Any) -> TranscodeJob:
    """Turn a push envelope into a validated job.

    Raises:
        InvalidTriggerError: For any malformed envelope or payload
    """
    if not isinstance(body, dict):
        raise InvalidTriggerError("Request body must be a JSON object")

    message = body.get("message")
    if not isinstance(message, dict) or not message.get("data"):
        raise InvalidTriggerError("Invalid message format: missing message.data")

    try:
        raw = base64.b64decode(message["data"], validate=True)
        payload = json.loads(raw.decode("utf-8"))
    except (binascii.Error, ValueError, TypeError) as e:
        raise InvalidTriggerError(
            "Message data is not base64-encoded JSON",
            {"error": str(e), "message_id": message.get("messageId")},
        ) from e

    if not isinstance(payload, dict):
        raise InvalidTriggerError("Message payload must be a JSON object")

    try:
        return TranscodeJob.model_validate(payload)
    except ValidationError as e:
        raise InvalidTriggerError(
            "Missing or invalid filename or quality",
            {
                "errors": [
                    {"field": ".".join(str(p) for p in err["loc"]), "error": err["msg"]}
                    for err in e.errors()
                ],
                "message_id": message.get("messageId"),
            },
        ) from e
