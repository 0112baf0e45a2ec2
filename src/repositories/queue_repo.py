"""Queue repository for Celery task management."""

from typing import Any, Dict
from ..config import settings


class QueueRepository:
    """Repository for queue operations using Celery."""

    @staticmethod
    def enqueue_video_processing(video_id: str, raw_file_path: str) -> Dict[str, Any]:
        """
        Enqueue the conversion pipeline for an uploaded video.
        Args:
            video_id: Video record ID
            raw_file_path: Location of the raw upload
        Returns:
            Task ID and status
        """
        # Import here to avoid circular imports
        from ..tasks.video_processing import process_video

        task = process_video.apply_async(
            kwargs={"video_id": video_id, "raw_file_path": raw_file_path},
            queue=settings.video_queue_name,
        )
        return {
            "task_id": task.id,
            "status": "queued",
        }

