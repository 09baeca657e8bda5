"""
records.py — Initialization run records in GCS.

Each run writes one JSON document whose filename embeds a UTC timestamp,
so a plain lexicographic sort puts the newest record last.
"""

import json
import logging
from datetime import datetime, timezone

logger = logging.getLogger(__name__)

RECORD_PREFIX = "init_record_"


def upload_init_metadata(bucket, data: dict, folder: str) -> str:
    """
    Write a run record JSON to GCS.
    Returns the GCS blob name.
    """
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S_%f")
    blob_name = f"{folder}/{RECORD_PREFIX}{timestamp}.json"
    bucket.blob(blob_name).upload_from_string(
        json.dumps(data, indent=2, default=str),
        content_type="application/json",
    )
    logger.info(f"Record saved: gs://{bucket.name}/{blob_name}")
    return blob_name


def latest_init_metadata(bucket, folder: str):
    """Return the most recent run record as a dict, or None if there is none."""
    blobs = list(bucket.list_blobs(prefix=f"{folder}/{RECORD_PREFIX}"))
    if not blobs:
        logger.info("No previous initialization record found.")
        return None

    blobs.sort(key=lambda b: b.name, reverse=True)
    record = json.loads(blobs[0].download_as_text())
    logger.info(f"Latest initialization record: {blobs[0].name} "
                f"(status: {record.get('status')})")
    return record
