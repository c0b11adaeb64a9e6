"""Text-to-Speech through ElevenLabs, stored as MP3 in object storage"""

import asyncio
import logging

import aiohttp

from ..automation.ports import ISpeechSynthesizer
from ..utils.errors import ExternalServiceError, PreconditionError


class ElevenLabsSynthesizer(ISpeechSynthesizer):
    """Narrates a script with a user's trained voice"""

    def __init__(self, config, store):
        self.logger = logging.getLogger(__name__)
        self.store = store  # S3ObjectStore; needs upload_bytes
        self.base_url = config.services.tts_base_url.rstrip("/")
        self.api_key = config.credentials.elevenlabs_api_key
        self.model_id = config.services.tts_model_id
        self.voice_settings = {
            "stability": config.services.tts_stability,
            "similarity_boost": config.services.tts_similarity_boost,
        }
        self.timeout = aiohttp.ClientTimeout(total=config.services.http_timeout_seconds)

    async def synthesize(self, text: str, voice_id: str, user_id: str) -> str:
        if not voice_id:
            raise PreconditionError("No voice profile found for this user")
        if not text.strip():
            raise PreconditionError("Project has no script to narrate")

        self.logger.info(f"Synthesizing {len(text)} characters with voice {voice_id}")
        audio = await self._request_audio(text, voice_id)
        self.logger.info(f"Received {len(audio) / 1024:.0f} KB of audio")

        return await self.store.upload_bytes(audio, user_id, "audio", ".mp3", "audio/mpeg")

    async def _request_audio(self, text: str, voice_id: str) -> bytes:
        url = f"{self.base_url}/text-to-speech/{voice_id}"
        headers = {
            'Accept': 'audio/mpeg',
            'Content-Type': 'application/json',
            'xi-api-key': self.api_key,
        }
        payload = {"text": text, "model_id": self.model_id, "voice_settings": self.voice_settings}

        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.post(url, json=payload, headers=headers) as response:
                    if response.status != 200:
                        body = await response.text()
                        raise ExternalServiceError("speech synthesis", f"HTTP {response.status}: {body[:300]}")
                    audio = await response.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ExternalServiceError("speech synthesis", str(e)) from e

        if not audio:
            raise ExternalServiceError("speech synthesis", "empty audio response")
        return audio
