"""
Clip repository for Firestore.

Clips live flat at ``users/{uid}/clips/{clip_id}`` so they can be looked up
by id when scheduling posts; ``video_id`` links them to their source.
"""

import logging
from datetime import datetime
from typing import List, Optional

from google.cloud import firestore
from google.cloud.firestore_v1 import FieldFilter

from clipsforge.core.repositories.base import MAX_BATCH_SIZE, UserScopedRepository
from clipsforge.core.repositories.exceptions import ClipRepositoryError, ValidationError
from clipsforge.core.repositories.models import CLIP_STATUSES, ClipRecord

logger = logging.getLogger(__name__)


class ClipRepository(UserScopedRepository[ClipRecord]):
    collection_name = "clips"
    id_field = "clip_id"
    model = ClipRecord
    error_class = ClipRepositoryError

    def get_clip(self, clip_id: str) -> Optional[ClipRecord]:
        return self.get(clip_id)

    def list_clips(
        self,
        video_id: Optional[str] = None,
        status: Optional[str] = None,
    ) -> List[ClipRecord]:
        """List clips ordered by clip number (per video) then creation time."""
        if status and status not in CLIP_STATUSES:
            raise ValidationError(f"Invalid status: {status}")
        filters = []
        if video_id:
            filters.append(("video_id", "==", video_id))
        if status:
            filters.append(("status", "==", status))
        clips = self.query(filters)
        clips.sort(key=lambda c: (c.video_id, c.clip_number, c.created_at))
        return clips

    def list_pending_renders(self) -> List[ClipRecord]:
        """Clips still waiting on an external render."""
        return [c for c in self.list_clips(status="processing") if c.render_id]

    def list_created_between(self, start: datetime, end: datetime) -> List[ClipRecord]:
        return self.query([("created_at", ">=", start), ("created_at", "<=", end)])

    def next_clip_number(self, video_id: str) -> int:
        clips = self.list_clips(video_id=video_id)
        return max((c.clip_number for c in clips), default=0) + 1

    def increment_posts(self, clip_id: str, count: int = 1) -> bool:
        return self.update(clip_id, {"total_posts": firestore.Increment(count)})

    def delete_for_video(self, video_id: str) -> int:
        """Delete every clip of a video in batches; returns the number removed."""
        try:
            docs = list(
                self.collection.where(filter=FieldFilter("video_id", "==", video_id)).stream()
            )
            for i in range(0, len(docs), MAX_BATCH_SIZE):
                batch = self.db.batch()
                for doc in docs[i:i + MAX_BATCH_SIZE]:
                    batch.delete(doc.reference)
                batch.commit()
        except Exception as e:
            raise self._fail(f"delete clips of video {video_id}", e) from e

        logger.info(f"Deleted {len(docs)} clips for video {video_id}")
        return len(docs)
