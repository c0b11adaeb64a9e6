"""Data models for remote media generation jobs"""

from abc import ABC, abstractmethod
from datetime import datetime
from enum import Enum
from typing import Any, AsyncIterator, Optional
from pydantic import BaseModel, Field


class JobStage(str, Enum):
    """Where a remote job is in its life"""
    QUEUED = "queued"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


class ProgressEvent(BaseModel):
    """One observation of a remote job, for logging only"""
    source: str  # e.g. "image", "lipsync", "transcription"
    stage: JobStage
    message: Optional[str] = None
    queue_position: Optional[int] = None
    attempt: Optional[int] = None  # polling jobs only
    timestamp: datetime = Field(default_factory=datetime.now)

    def describe(self) -> str:
        parts = [f"[{self.source}] {self.stage.value}"]
        if self.queue_position is not None:
            parts.append(f"position {self.queue_position}")
        if self.attempt is not None:
            parts.append(f"poll #{self.attempt}")
        if self.message:
            parts.append(self.message)
        return " - ".join(parts)


class RemoteJob(ABC):
    """
    A submitted remote job.

    events() is an observable stream of progress updates; result() waits for
    the final value and raises ExternalServiceError when the job failed. A
    caller may skip events() entirely.
    """

    source: str = "remote"

    @abstractmethod
    def events(self) -> AsyncIterator[ProgressEvent]:
        """Progress events until the job settles"""

    @abstractmethod
    async def result(self) -> Any:
        """The job's final value"""
