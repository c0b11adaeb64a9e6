"""
Automation Data Models

Pydantic models for projects, their owners and the outcome of a composition run.
"""

from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field
from enum import Enum

from ..content_generation.content_models import (
    SceneSpec, TimedScene, Transcript, flatten_image_prompts
)


class ProjectStatus(str, Enum):
    """Project lifecycle status"""
    DRAFT = "draft"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class UserProfile(BaseModel):
    """Owner of projects, with the assets a run needs"""
    id: str
    name: Optional[str] = None
    avatar_video_url: Optional[str] = None  # reference talking-head video
    voice_id: Optional[str] = None          # trained TTS voice


class Project(BaseModel):
    """One narrated video, from script to final render"""
    id: str
    user_id: str
    title: str = ""
    status: ProjectStatus = ProjectStatus.DRAFT

    # Script
    script: str = ""
    scenes: List[SceneSpec] = Field(default_factory=list)
    image_prompts: List[str] = Field(default_factory=list)
    generated_images: List[str] = Field(default_factory=list)  # URLs, index-aligned to prompts

    # Narration timing
    transcript: Optional[Transcript] = None
    timed_scenes: List[TimedScene] = Field(default_factory=list)  # display only
    audio_duration: Optional[float] = None  # seconds

    # Outputs
    slideshow_url: Optional[str] = None
    lipsync_url: Optional[str] = None
    final_video_url: Optional[str] = None
    error_message: Optional[str] = None

    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    @classmethod
    def from_scenes(cls, project_id: str, user_id: str, title: str,
                    scenes: List[SceneSpec]) -> "Project":
        """New draft whose script and prompts are derived from scenes"""
        return cls(
            id=project_id,
            user_id=user_id,
            title=title,
            script="\n\n".join(scene.content for scene in scenes),
            scenes=scenes,
            image_prompts=flatten_image_prompts(scenes),
        )

    def touch(self) -> None:
        self.updated_at = datetime.now()


class RunOutcome(BaseModel):
    """What a composition run reports back to its caller"""
    project_id: str
    status: ProjectStatus
    reason: Optional[str] = None
    slideshow_url: Optional[str] = None
    lipsync_url: Optional[str] = None
    final_video_url: Optional[str] = None
    slideshow_tiers: List[str] = Field(default_factory=list)  # tiers attempted, in order
    merge_tiers: List[str] = Field(default_factory=list)
    duration_seconds: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.status == ProjectStatus.COMPLETED
