#!/usr/bin/env python3
"""Send a transcode trigger to a running worker.

Builds the same push envelope the messaging system delivers
({"message": {"data": base64(JSON)}}) and either prints it or POSTs it to the
worker's /transcode endpoint.

Usage:
    python send-trigger.py --filename lecture1.mp4 --quality 720 --print

    python send-trigger.py --filename uploads/lecture1.mp4 --quality 1080 \
        --bucket raw-videos --url https://xxxx.execute-api.us-east-1.amazonaws.com/prod/transcode
"""

import argparse
import base64
import json
import sys
import urllib.request
from urllib.error import HTTPError, URLError


def build_envelope(filename: str, quality: int, bucket: str | None = None) -> dict:
    """Build a push envelope for one job."""
    payload = {"filename": filename, "qualityCeiling": quality}
    if bucket:
        payload["sourceBucket"] = bucket

    data = base64.b64encode(json.dumps(payload).encode("utf-8")).decode("ascii")
    return {"message": {"data": data}}


def post_envelope(url: str, envelope: dict, timeout: float) -> tuple[int, str]:
    """POST the envelope and return (status, body)."""
    request = urllib.request.Request(
        url,
        data=json.dumps(envelope).encode("utf-8"),
        headers={"Content-Type": "application/json"},
        method="POST",
    )
    with urllib.request.urlopen(request, timeout=timeout) as response:
        return response.status, response.read().decode("utf-8", errors="replace")


def main():
    parser = argparse.ArgumentParser(
        description="Send a transcode trigger to the worker",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Inspect the envelope only
  %(prog)s --filename lecture1.mp4 --quality 720 --print

  # Trigger a job against a deployed worker
  %(prog)s --filename lecture1.mp4 --quality 720 \\
           --url https://xxxx.execute-api.us-east-1.amazonaws.com/prod/transcode
        """
    )

    parser.add_argument(
        "--filename",
        required=True,
        help="Source object key (e.g., uploads/lecture1.mp4)"
    )
    parser.add_argument(
        "--quality",
        type=int,
        required=True,
        help="Quality ceiling (360, 480, 720 or 1080)"
    )
    parser.add_argument(
        "--bucket",
        help="Source bucket (defaults to the worker's SOURCE_BUCKET)"
    )
    parser.add_argument(
        "--url",
        help="Worker /transcode endpoint"
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=900,
        help="Request timeout in seconds (default: 900)"
    )
    parser.add_argument(
        "--print",
        dest="print_only",
        action="store_true",
        help="Print the envelope instead of sending it"
    )

    args = parser.parse_args()

    envelope = build_envelope(args.filename, args.quality, args.bucket)

    if args.print_only or not args.url:
        print(json.dumps(envelope, indent=2))
        return

    try:
        status, body = post_envelope(args.url, envelope, args.timeout)
    except HTTPError as e:
        print(f"Error: worker returned HTTP {e.code}: {e.read().decode('utf-8', errors='replace')}")
        sys.exit(1)
    except URLError as e:
        print(f"Error: could not reach worker: {e.reason}")
        sys.exit(1)

    print(f"HTTP {status}: {body}")


if __name__ == "__main__":
    main()
