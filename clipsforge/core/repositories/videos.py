"""
Video repository for Firestore.

Videos live at ``users/{uid}/videos/{video_id}``; the analysis produced for a
video is stored beside it in ``users/{uid}/content_analysis/{video_id}``.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from clipsforge.core.repositories.base import UserScopedRepository, utcnow
from clipsforge.core.repositories.clips import ClipRepository
from clipsforge.core.repositories.exceptions import ValidationError, VideoRepositoryError
from clipsforge.core.repositories.models import (
    VIDEO_STATUSES,
    ContentAnalysis,
    Transcription,
    TranscriptionLog,
    VideoRecord,
)

logger = logging.getLogger(__name__)

# Timestamp recorded when a video enters each status
_STATUS_TIMESTAMPS = {
    "uploaded": "uploaded_at",
    "analyzing": "transcribed_at",
    "generating": "analyzed_at",
    "completed": "completed_at",
}


class VideoRepository(UserScopedRepository[VideoRecord]):
    collection_name = "videos"
    id_field = "video_id"
    model = VideoRecord
    error_class = VideoRepositoryError

    def __init__(self, user_id: str, db: Optional[Any] = None):
        super().__init__(user_id, db=db)
        self.analysis_collection = self.user_ref.collection("content_analysis")
        self.transcription_logs = self.user_ref.collection("transcription_logs")

    def get_video(self, video_id: str) -> Optional[VideoRecord]:
        return self.get(video_id)

    def create_video(self, video: VideoRecord) -> VideoRecord:
        return self.create(video)

    def update_status(
        self,
        video_id: str,
        status: str,
        error_message: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """
        Move a video to a new processing status.

        ``error_message`` is cleared on every non-error transition so a
        retried pipeline does not keep a stale failure.
        """
        if status not in VIDEO_STATUSES:
            raise ValidationError(f"Invalid status: {status}")

        fields: Dict[str, Any] = dict(extra or {})
        fields["status"] = status
        if status == "error":
            fields["error_message"] = (error_message or "Unknown error")[:1000]
        else:
            fields["error_message"] = None

        stamp = _STATUS_TIMESTAMPS.get(status)
        if stamp:
            fields[stamp] = utcnow()

        updated = self.update(video_id, fields)
        if updated:
            logger.info(f"Video {video_id} -> {status}")
        return updated

    def save_transcription(
        self,
        video_id: str,
        transcription: Transcription,
        language: str,
        confidence: float,
    ) -> bool:
        return self.update_status(
            video_id,
            "analyzing",
            extra={
                "transcription": transcription.model_dump(),
                "transcription_language": language,
                "transcription_confidence": confidence,
            },
        )

    def list_videos(self, status: Optional[str] = None, limit: Optional[int] = None) -> List[VideoRecord]:
        """List videos newest first."""
        if status and status not in VIDEO_STATUSES:
            raise ValidationError(f"Invalid status: {status}")
        filters = [("status", "==", status)] if status else []
        videos = self.query(filters)
        videos.sort(key=lambda v: v.created_at, reverse=True)
        return videos[:limit] if limit else videos

    def list_created_between(self, start: datetime, end: datetime) -> List[VideoRecord]:
        return self.query([("created_at", ">=", start), ("created_at", "<=", end)])

    # ------------------------------------------------------------------
    # Content analysis
    # ------------------------------------------------------------------

    def save_analysis(self, analysis: ContentAnalysis) -> ContentAnalysis:
        try:
            self.analysis_collection.document(analysis.video_id).set(analysis.to_dict())
        except Exception as e:
            raise self._fail(f"save analysis for {analysis.video_id}", e) from e
        return analysis

    def get_analysis(self, video_id: str) -> Optional[ContentAnalysis]:
        try:
            doc = self.analysis_collection.document(video_id).get()
        except Exception as e:
            raise self._fail(f"get analysis for {video_id}", e) from e
        if not doc.exists:
            return None
        data = doc.to_dict()
        return ContentAnalysis.from_dict(data) if data else None

    def log_transcription(self, entry: TranscriptionLog) -> None:
        try:
            self.transcription_logs.add(entry.to_dict())
        except Exception as e:
            # Usage logging never fails the transcription itself
            logger.warning(f"Failed to write transcription log for {entry.video_id}: {e}")

    def delete_video(self, video_id: str, delete_clips: bool = True) -> bool:
        """Delete a video, its analysis and optionally its clips."""
        if not self.delete(video_id):
            return False
        try:
            self.analysis_collection.document(video_id).delete()
        except Exception as e:
            raise self._fail(f"delete analysis for {video_id}", e) from e
        if delete_clips:
            ClipRepository(self.user_id, db=self.db).delete_for_video(video_id)
        return True
