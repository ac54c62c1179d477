"""
Cloudflare R2 archive for pipeline artifacts.

Transcripts and analysis results are written as JSON under
``{uid}/{video_id}/{name}.json`` so they can be downloaded or re-used after
the Firestore document is trimmed. Archiving is optional: without R2
credentials every call is a no-op.
"""

import json
from typing import Any, Dict, List, Optional

import boto3
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError

from clipsforge.config import (
    R2_ACCESS_KEY_ID,
    R2_BUCKET_NAME,
    R2_ENDPOINT_URL,
    R2_SECRET_ACCESS_KEY,
    logger,
)

_r2_client: Optional[Any] = None


def is_configured() -> bool:
    return bool(R2_BUCKET_NAME and R2_ENDPOINT_URL and R2_ACCESS_KEY_ID and R2_SECRET_ACCESS_KEY)


def get_r2_client():
    global _r2_client
    if _r2_client is None:
        session = boto3.session.Session()
        _r2_client = session.client(
            "s3",
            endpoint_url=R2_ENDPOINT_URL or None,
            aws_access_key_id=R2_ACCESS_KEY_ID or None,
            aws_secret_access_key=R2_SECRET_ACCESS_KEY or None,
            # R2 only speaks sigv4
            config=Config(signature_version="s3v4"),
            region_name="auto",
        )
    return _r2_client


def artifact_key(uid: str, video_id: str, name: str) -> str:
    return f"{uid}/{video_id}/{name}.json"


def archive_json(uid: str, video_id: str, name: str, payload: Dict[str, Any]) -> Optional[str]:
    """Store ``payload`` as JSON; returns the object key, or None when skipped or failed."""
    if not is_configured():
        return None
    key = artifact_key(uid, video_id, name)
    body = json.dumps(payload, ensure_ascii=False, default=str).encode("utf-8")
    try:
        get_r2_client().put_object(
            Bucket=R2_BUCKET_NAME,
            Key=key,
            Body=body,
            ContentType="application/json",
        )
    except (BotoCoreError, ClientError) as exc:
        logger.error("Failed to archive %s: %s", key, exc)
        return None
    logger.debug("Archived %s (%d bytes)", key, len(body))
    return key


def delete_video_artifacts(uid: str, video_id: str) -> int:
    """Delete every archived object of a video. Returns the number of keys removed."""
    if not is_configured():
        return 0
    client = get_r2_client()
    prefix = f"{uid}/{video_id}/"

    paginator = client.get_paginator("list_objects_v2")
    objects: List[Dict[str, str]] = []
    for page in paginator.paginate(Bucket=R2_BUCKET_NAME, Prefix=prefix):
        for obj in page.get("Contents", []):
            objects.append({"Key": obj["Key"]})

    if not objects:
        return 0

    deleted = 0
    # R2 accepts up to 1000 keys per request
    for i in range(0, len(objects), 1000):
        batch = objects[i:i + 1000]
        response = client.delete_objects(
            Bucket=R2_BUCKET_NAME,
            Delete={"Objects": batch, "Quiet": True},
        )
        deleted += len(batch)
        if response.get("Errors"):
            logger.warning("Some artifacts failed to delete for %s/%s: %s", uid, video_id, response["Errors"])

    logger.info("Deleted %d artifacts for video %s/%s", deleted, uid, video_id)
    return deleted
