"""
Word-level transcription through AssemblyAI

A transcription is submitted once and then polled at a fixed interval until
AssemblyAI reports completed or error. Polling is bounded by
max_poll_attempts; None keeps polling until the job settles.
"""

import asyncio
import logging
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, Optional, Tuple

import aiohttp

from ..automation.ports import ITranscriber
from ..content_generation.content_models import Transcript, WordTimestamp
from ..utils.errors import TranscriptionError
from .media_models import JobStage, ProgressEvent, RemoteJob

StatusFetcher = Callable[[], Awaitable[Dict[str, Any]]]
Sleeper = Callable[[float], Awaitable[None]]

SETTLED_STATES = ("completed", "error")


async def poll_transcript(fetch: StatusFetcher,
                          interval: float,
                          max_attempts: Optional[int],
                          sleep: Sleeper = asyncio.sleep) -> AsyncIterator[Tuple[int, Dict[str, Any]]]:
    """Yield (attempt, payload) for every poll until the job settles"""
    attempt = 0
    while True:
        attempt += 1
        data = await fetch()
        yield attempt, data

        status = data.get("status")
        if status in SETTLED_STATES:
            return
        if max_attempts is not None and attempt >= max_attempts:
            raise TranscriptionError(f"job still '{status}' after {attempt} polls")
        await sleep(interval)


def parse_transcript(data: Dict[str, Any]) -> Transcript:
    """Transcript from a completed AssemblyAI payload"""
    try:
        words = [
            WordTimestamp(
                text=w["text"],
                start=int(w["start"]),
                end=int(w["end"]),
                confidence=float(w.get("confidence", 1.0)),
            )
            for w in data.get("words") or []
        ]
        return Transcript(
            id=data.get("id"),
            text=data.get("text") or "",
            words=words,
            audio_duration=float(data.get("audio_duration") or 0.0),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise TranscriptionError(f"malformed transcript payload: {e}") from e


class AssemblyAIJob(RemoteJob):
    """A submitted transcript, polled lazily by events() or result()"""

    source = "transcription"

    def __init__(self, transcript_id: str, fetch: StatusFetcher, interval: float,
                 max_attempts: Optional[int], sleep: Sleeper = asyncio.sleep):
        self.transcript_id = transcript_id
        self._fetch = fetch
        self._interval = interval
        self._max_attempts = max_attempts
        self._sleep = sleep
        self._final: Optional[Dict[str, Any]] = None
        self._started = False

    async def events(self) -> AsyncIterator[ProgressEvent]:
        if self._started:
            return
        self._started = True

        async for attempt, data in poll_transcript(
            self._fetch, self._interval, self._max_attempts, self._sleep
        ):
            status = data.get("status")
            if status == "completed":
                stage = JobStage.COMPLETED
            elif status == "error":
                stage = JobStage.FAILED
            elif status == "queued":
                stage = JobStage.QUEUED
            else:
                stage = JobStage.IN_PROGRESS
            self._final = data
            yield ProgressEvent(source=self.source, stage=stage, attempt=attempt,
                                message=f"status {status}")

    async def result(self) -> Transcript:
        if not self._started:
            async for _ in self.events():
                pass

        data = self._final or {}
        status = data.get("status")
        if status == "error":
            raise TranscriptionError(f"transcription failed: {data.get('error', 'unknown error')}")
        if status != "completed":
            raise TranscriptionError(f"transcript {self.transcript_id} never completed")
        return parse_transcript(data)


class AssemblyAITranscriber(ITranscriber):
    """AssemblyAI REST client; use as an async context manager"""

    def __init__(self, config):
        self.logger = logging.getLogger(__name__)
        self.base_url = config.services.transcription_base_url.rstrip("/")
        self.api_key = config.credentials.assemblyai_api_key
        self.poll_interval = config.transcription.poll_interval_seconds
        self.max_poll_attempts = config.transcription.max_poll_attempts
        self.speaker_labels = config.transcription.speaker_labels
        self.timeout = aiohttp.ClientTimeout(total=config.services.http_timeout_seconds)
        self.session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self):
        """Async context manager entry"""
        self._get_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit"""
        await self.close()

    async def close(self) -> None:
        if self.session:
            await self.session.close()
            self.session = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession(
                timeout=self.timeout,
                headers={'authorization': self.api_key, 'content-type': 'application/json'}
            )
        return self.session

    async def submit(self, audio_url: str) -> AssemblyAIJob:
        if not self.api_key:
            raise TranscriptionError("ASSEMBLYAI_API_KEY is not set")

        self.logger.info(f"Submitting audio URL to AssemblyAI: {audio_url}")
        payload = {"audio_url": audio_url, "speaker_labels": self.speaker_labels}
        data = await self._request("POST", f"{self.base_url}/transcript", json=payload)

        transcript_id = data.get("id")
        if not transcript_id:
            raise TranscriptionError("submission returned no transcript id")
        self.logger.info(f"Transcription job submitted with ID: {transcript_id}")

        async def fetch() -> Dict[str, Any]:
            return await self._request("GET", f"{self.base_url}/transcript/{transcript_id}")

        return AssemblyAIJob(transcript_id, fetch, self.poll_interval, self.max_poll_attempts)

    async def _request(self, method: str, url: str, **kwargs) -> Dict[str, Any]:
        session = self._get_session()
        try:
            async with session.request(method, url, **kwargs) as response:
                if response.status != 200:
                    body = await response.text()
                    raise TranscriptionError(f"HTTP {response.status}: {body[:300]}")
                return await response.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TranscriptionError(f"{method} {url} failed: {e}") from e
