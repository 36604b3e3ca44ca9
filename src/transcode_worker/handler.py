"""Lambda handler for push-delivered transcode jobs.

Exposed over HTTP (API Gateway REST proxy). The push subscription posts each
job message to POST /transcode; the response status drives redelivery:

- 200: job finished and the control plane was notified (ack)
- 400: malformed message, nothing was attempted (do not retry)
- 500: any stage failed, the whole job should be redelivered

GET /health is a liveness probe with no relation to job state.

Flow for one message:
1. Decode the base64 JSON payload into a TranscodeJob
2. Create the job workspace
3. Fetch source, plan renditions, encode, write master playlist
4. Publish the HLS tree, notify the control plane
5. Remove the workspace (always)
"""

from typing import Any

from aws_lambda_powertools import Logger, Metrics, Tracer
from aws_lambda_powertools.event_handler import APIGatewayRestResolver, Response, content_types
from aws_lambda_powertools.event_handler.exceptions import BadRequestError, InternalServerError
from aws_lambda_powertools.logging import correlation_paths
from aws_lambda_powertools.metrics import MetricUnit
from aws_lambda_powertools.utilities.typing import LambdaContext

from ..shared.aws_clients import get_s3_client
from ..shared.config import get_settings
from ..shared.exceptions import InvalidTriggerError, TranscodeJobError
from .pipeline import run_job
from .trigger import decode_push_message

logger = Logger(service="transcode-worker")
tracer = Tracer(service="transcode-worker")
metrics = Metrics(service="transcode-worker", namespace="HlsTranscoding")

app = APIGatewayRestResolver()

JOB_FAILED_MESSAGE = "Job processing failed."


@app.get("/health")
def health() -> Response:
    """Liveness probe."""
    return Response(
        status_code=200,
        content_type=content_types.TEXT_PLAIN,
        body="Transcoding service is running...",
    )


@app.post("/transcode")
def transcode() -> Response:
    """Run one transcode job from a push envelope."""
    settings = get_settings()

    try:
        body = app.current_event.json_body
        job = decode_push_message(body)
    except (ValueError, TypeError) as e:
        metrics.add_metric(name="InvalidTriggers", unit=MetricUnit.Count, value=1)
        logger.warning("Request body is not JSON", extra={"error": str(e)})
        raise BadRequestError("Bad Request: Invalid message format.")
    except InvalidTriggerError as e:
        metrics.add_metric(name="InvalidTriggers", unit=MetricUnit.Count, value=1)
        logger.warning("Rejected trigger", extra=e.to_dict())
        raise BadRequestError(f"Bad Request: {e.message}")

    logger.append_keys(source_key=job.filename)
    logger.info(
        f"Processing for transcode: {job.filename} at {job.quality_ceiling}p",
        extra={"source_bucket": job.source_bucket or settings.source_bucket},
    )

    try:
        result = run_job(job, settings, get_s3_client(settings))

    except TranscodeJobError as e:
        logger.error(f"[JOB_FAILED] for {job.filename}: {e.message}", extra=e.to_dict())
        metrics.add_metric(name="JobsFailed", unit=MetricUnit.Count, value=1)
        metrics.add_metadata(key="error_code", value=e.error_code)
        raise InternalServerError(JOB_FAILED_MESSAGE)

    except Exception as e:
        logger.exception(f"[JOB_FAILED] for {job.filename}: unexpected error {e}")
        metrics.add_metric(name="JobsFailed", unit=MetricUnit.Count, value=1)
        metrics.add_metadata(key="error_code", value="UNEXPECTED_ERROR")
        raise InternalServerError(JOB_FAILED_MESSAGE)

    finally:
        logger.remove_keys(["source_key"])

    metrics.add_metric(name="JobsSucceeded", unit=MetricUnit.Count, value=1)
    metrics.add_metric(name="RenditionsEncoded", unit=MetricUnit.Count, value=len(result.renditions))
    metrics.add_metric(name="ObjectsPublished", unit=MetricUnit.Count, value=len(result.uploaded_keys))
    metrics.add_metadata(key="filename", value=job.filename)

    logger.info("Job complete", extra=result.to_dict())

    return Response(
        status_code=200,
        content_type=content_types.TEXT_PLAIN,
        body=f"Successfully processed {job.filename}",
    )


@logger.inject_lambda_context(correlation_id_path=correlation_paths.API_GATEWAY_REST)
@tracer.capture_lambda_handler
@metrics.log_metrics(capture_cold_start_metric=True)
def handler(event: dict[str, Any], context: LambdaContext) -> dict[str, Any]:
    """Lambda entry point.

    Args:
        event: API Gateway REST proxy event
        context: Lambda context

    Returns:
        API Gateway proxy response
    """
    logger.setLevel(get_settings().log_level)
    return app.resolve(event, context)
