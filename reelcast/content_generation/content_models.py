"""Data models for script scenes, transcripts and timed scenes"""

from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field


class SceneSpec(BaseModel):
    """A scene of the generated script"""
    content: str
    image_prompts: List[str] = []


def flatten_image_prompts(scenes: List[SceneSpec]) -> List[str]:
    """All image prompts of all scenes, in script order"""
    return [prompt for scene in scenes for prompt in scene.image_prompts]


class WordTimestamp(BaseModel):
    """One recognized word; times in milliseconds"""
    model_config = ConfigDict(frozen=True)

    text: str
    start: int = Field(ge=0)
    end: int = Field(ge=0)
    confidence: float = 1.0


class Transcript(BaseModel):
    """Result of the transcription step"""
    id: Optional[str] = None
    text: str = ""
    words: List[WordTimestamp] = []
    audio_duration: float = 0.0  # seconds

    @property
    def word_count(self) -> int:
        return len(self.words)


class TimedScene(BaseModel):
    """A window of narration and the image(s) shown during it; times in ms"""
    start: float
    end: float
    image_prompts: List[str]
    image_urls: List[str] = []

    @property
    def duration_ms(self) -> float:
        return self.end - self.start

    @property
    def duration_seconds(self) -> float:
        return self.duration_ms / 1000.0
