"""fal.ai queue jobs exposed as RemoteJob"""

import logging
from typing import Any, AsyncIterator, Callable, Dict, Optional

import fal_client

from ..utils.errors import ExternalServiceError
from .media_models import JobStage, ProgressEvent, RemoteJob

logger = logging.getLogger(__name__)

ResultExtractor = Callable[[Dict[str, Any]], Any]


def status_to_event(source: str, status: Any) -> ProgressEvent:
    """Map a fal_client queue status onto a ProgressEvent"""
    if isinstance(status, fal_client.Queued):
        return ProgressEvent(source=source, stage=JobStage.QUEUED, queue_position=status.position)

    logs = getattr(status, "logs", None) or []
    message = None
    if logs:
        last = logs[-1]
        message = last.get("message", str(last)) if isinstance(last, dict) else str(last)

    if isinstance(status, fal_client.Completed):
        return ProgressEvent(source=source, stage=JobStage.COMPLETED, message=message)
    return ProgressEvent(source=source, stage=JobStage.IN_PROGRESS, message=message)


class FalJob(RemoteJob):
    """A request sitting in a fal.ai application queue"""

    def __init__(self, handle: Any, source: str, extract: ResultExtractor):
        self._handle = handle
        self._extract = extract
        self.source = source

    @property
    def request_id(self) -> Optional[str]:
        return getattr(self._handle, "request_id", None)

    async def events(self) -> AsyncIterator[ProgressEvent]:
        try:
            async for status in self._handle.iter_events(with_logs=True):
                yield status_to_event(self.source, status)
        except Exception as e:
            raise ExternalServiceError(self.source, f"status stream failed: {e}") from e

    async def result(self) -> Any:
        try:
            data = await self._handle.get()
        except Exception as e:
            raise ExternalServiceError(self.source, f"request {self.request_id} failed: {e}") from e
        return self._extract(data)


class FalQueue:
    """Submits requests to fal.ai with an explicit API key"""

    def __init__(self, api_key: str, client: Optional[Any] = None):
        self.client = client or fal_client.AsyncClient(key=api_key or None)

    async def submit(self, application: str, arguments: Dict[str, Any],
                     source: str, extract: ResultExtractor) -> FalJob:
        try:
            handle = await self.client.submit(application, arguments=arguments)
        except Exception as e:
            raise ExternalServiceError(source, f"could not submit to {application}: {e}") from e

        logger.info(f"Submitted {source} request to {application}: {getattr(handle, 'request_id', '?')}")
        return FalJob(handle, source, extract)
