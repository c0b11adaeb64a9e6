"""
Interfaces of the orchestrator's collaborators.

Concrete adapters live in media_generation/ (fal.ai, ElevenLabs, AssemblyAI),
storage/ (S3) and automation/project_store.py; tests swap in fakes.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Union

from ..media_generation.media_models import RemoteJob
from .automation_models import Project, UserProfile


class IImageGenerator(ABC):
    @abstractmethod
    async def submit(self, prompt: str) -> RemoteJob:
        """Start generating one image; the job's result is its URL"""


class ISpeechSynthesizer(ABC):
    @abstractmethod
    async def synthesize(self, text: str, voice_id: str, user_id: str) -> str:
        """Narrate text with a voice profile; returns the stored audio URL"""


class ITranscriber(ABC):
    @abstractmethod
    async def submit(self, audio_url: str) -> RemoteJob:
        """Start transcription; the job's result is a Transcript"""


class ILipSync(ABC):
    @abstractmethod
    async def submit(self, video_url: str, audio_url: str) -> RemoteJob:
        """Start lip-sync of video to audio; the job's result is a video URL"""


class IObjectStore(ABC):
    @abstractmethod
    async def upload_file(self, path: Union[str, Path], user_id: str, kind: str) -> str:
        """Store a local file durably; returns its public URL"""

    @abstractmethod
    async def download(self, url: str, dest_dir: Union[str, Path]) -> Path:
        """Fetch url into dest_dir; raises DownloadError"""


class IProjectStore(ABC):
    @abstractmethod
    def get_project(self, project_id: str) -> Project:
        """Raises ProjectNotFoundError"""

    @abstractmethod
    def get_user(self, user_id: str) -> UserProfile:
        """Raises ProjectNotFoundError"""

    @abstractmethod
    def save_project(self, project: Project) -> Project:
        """Whole-record update keyed by project id"""

    @abstractmethod
    def begin_run(self, project_id: str) -> Project:
        """Atomically move a project to processing; raises ProjectBusyError"""

    @abstractmethod
    def create_project(self, project: Project) -> Project:
        """Insert a new record; raises ValueError for a duplicate id"""

    @abstractmethod
    def save_user(self, user: UserProfile) -> UserProfile:
        """Insert or replace a user profile"""
