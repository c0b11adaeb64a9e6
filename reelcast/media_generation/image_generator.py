"""Still-image generation through fal.ai Flux Pro"""

import logging
from typing import Any, Dict, Optional

from ..automation.ports import IImageGenerator
from ..utils.errors import ImageGenerationError
from .fal_jobs import FalQueue
from .media_models import RemoteJob


def extract_image_url(data: Dict[str, Any]) -> str:
    """First image URL of a Flux response"""
    images = (data or {}).get("images") or []
    url = images[0].get("url") if images and isinstance(images[0], dict) else None
    if not url:
        raise ImageGenerationError("response contained no image URL")
    return url


class FalImageGenerator(IImageGenerator):
    """One fal.ai request per prompt; each job resolves to a hosted image URL"""

    def __init__(self, config, queue: Optional[FalQueue] = None):
        self.config = config
        self.logger = logging.getLogger(__name__)
        self.model = config.services.image_model
        self.queue = queue or FalQueue(config.credentials.fal_key)

    async def submit(self, prompt: str) -> RemoteJob:
        if not prompt.strip():
            raise ImageGenerationError("empty prompt")

        self.logger.info(f"Generating image for prompt: {prompt[:50]}...")
        return await self.queue.submit(
            self.model,
            arguments={"prompt": prompt},
            source="image",
            extract=extract_image_url,
        )
