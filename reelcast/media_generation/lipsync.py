"""Talking-head lip-sync through fal.ai"""

import logging
from typing import Any, Dict, Optional

from ..automation.ports import ILipSync
from ..utils.errors import ExternalServiceError
from .fal_jobs import FalQueue
from .media_models import RemoteJob


def extract_video_url(data: Dict[str, Any]) -> str:
    video = (data or {}).get("video") or {}
    url = video.get("url") if isinstance(video, dict) else None
    if not url:
        raise ExternalServiceError("lipsync", "invalid response format: no video URL")
    return url


class FalLipSync(ILipSync):
    """Re-times a reference avatar video to new narration audio"""

    def __init__(self, config, queue: Optional[FalQueue] = None):
        self.logger = logging.getLogger(__name__)
        self.model = config.services.lipsync_model
        self.queue = queue or FalQueue(config.credentials.fal_key)

    async def submit(self, video_url: str, audio_url: str) -> RemoteJob:
        self.logger.info(f"Requesting lip-sync: video={video_url} audio={audio_url}")
        return await self.queue.submit(
            self.model,
            arguments={"video_url": video_url, "audio_url": audio_url},
            source="lipsync",
            extract=extract_video_url,
        )
