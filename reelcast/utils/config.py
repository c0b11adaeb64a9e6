"""Configuration management for the composition pipeline"""

import os
import yaml
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional
from dotenv import load_dotenv
from pydantic import BaseModel, Field


class PipelineMode(str, Enum):
    """Output orientation; picks the frame target"""
    PORTRAIT = "portrait"
    LANDSCAPE = "landscape"


class MergeLayout(str, Enum):
    """How slideshow and talking head share the final frame"""
    SPLIT = "split"
    PIP = "pip"


class OverlayAnchor(str, Enum):
    TOP_LEFT = "top_left"
    TOP_RIGHT = "top_right"
    BOTTOM_LEFT = "bottom_left"
    BOTTOM_RIGHT = "bottom_right"
    BOTTOM_CENTER = "bottom_center"


class VideoConfig(BaseModel):
    mode: PipelineMode = PipelineMode.PORTRAIT
    fps: int = Field(default=30, ge=1, le=60)

    # Enhanced slideshow
    ken_burns_effect: bool = True
    zoom_increment: float = Field(default=0.0015, gt=0.0)
    max_zoom: float = Field(default=1.5, ge=1.0)
    fade_in: float = Field(default=0.5, ge=0.0)
    fade_out: float = Field(default=0.5, ge=0.0)

    # Encoding
    video_codec: str = "libx264"
    audio_codec: str = "aac"
    pix_fmt: str = "yuv420p"
    preset: str = "medium"
    crf: int = Field(default=23, ge=0, le=51)

    # Split-screen merge
    merge_layout: MergeLayout = MergeLayout.SPLIT
    pip_anchor: OverlayAnchor = OverlayAnchor.BOTTOM_RIGHT
    pip_scale: float = Field(default=0.4, gt=0.0, le=1.0)
    overlay_margin: int = Field(default=10, ge=0)

    # Filters longer than this go to a -filter_complex_script file
    filter_script_threshold: int = Field(default=7000, ge=0)

    ffmpeg_path: str = "ffmpeg"
    ffprobe_path: str = "ffprobe"


class TranscriptionConfig(BaseModel):
    poll_interval_seconds: float = Field(default=3.0, gt=0.0)
    # None polls until the job settles
    max_poll_attempts: Optional[int] = Field(default=400, ge=1)
    speaker_labels: bool = True


class ServicesConfig(BaseModel):
    """Remote model identifiers and endpoints"""
    image_model: str = "fal-ai/flux-pro/v1.1"
    lipsync_model: str = "fal-ai/sync-lipsync"
    tts_base_url: str = "https://api.elevenlabs.io/v1"
    tts_model_id: str = "eleven_multilingual_v2"
    tts_stability: float = 0.5
    tts_similarity_boost: float = 0.5
    transcription_base_url: str = "https://api.assemblyai.com/v2"
    http_timeout_seconds: float = 120.0


class StorageConfig(BaseModel):
    region: str = "us-west-1"
    bucket: str = ""


class PathsConfig(BaseModel):
    """Storage paths configuration"""
    data: str = "./data"
    temp: str = "./temp"
    logs: str = "./logs"


class ServiceCredentials(BaseModel):
    """API credentials, read once and injected into each client"""
    fal_key: str = ""
    elevenlabs_api_key: str = ""
    assemblyai_api_key: str = ""
    aws_access_key_id: str = ""
    aws_secret_access_key: str = ""

    @classmethod
    def from_env(cls, env_file: Optional[str] = ".env.local") -> "ServiceCredentials":
        if env_file:
            load_dotenv(dotenv_path=env_file)
        return cls(
            fal_key=os.getenv("FAL_KEY", os.getenv("FAL_AI_API_KEY", "")),
            elevenlabs_api_key=os.getenv("ELEVENLABS_API_KEY", ""),
            assemblyai_api_key=os.getenv("ASSEMBLYAI_API_KEY", ""),
            aws_access_key_id=os.getenv("AWS_ACCESS_KEY_ID", ""),
            aws_secret_access_key=os.getenv("AWS_SECRET_ACCESS_KEY", ""),
        )


class Config(BaseModel):
    video: VideoConfig = VideoConfig()
    transcription: TranscriptionConfig = TranscriptionConfig()
    services: ServicesConfig = ServicesConfig()
    storage: StorageConfig = StorageConfig()
    paths: PathsConfig = PathsConfig()
    credentials: ServiceCredentials = ServiceCredentials()
    logging: Dict[str, Any] = {}

    @classmethod
    def load(cls, config_path: str, env_file: Optional[str] = ".env.local") -> "Config":
        """Load configuration from YAML file, credentials from the environment"""
        config_file = Path(config_path)
        if not config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_file, 'r', encoding='utf-8') as f:
            config_data = yaml.safe_load(f) or {}

        config = cls(**config_data)
        config.credentials = ServiceCredentials.from_env(env_file)
        if not config.storage.bucket:
            config.storage.bucket = os.getenv("AWS_S3_BUCKET_NAME", "")
        config.storage.region = os.getenv("AWS_REGION", config.storage.region)
        return config

    def save(self, config_path: str):
        """Save configuration to YAML file (credentials are never written)"""
        config_file = Path(config_path)
        config_file.parent.mkdir(parents=True, exist_ok=True)

        with open(config_file, 'w', encoding='utf-8') as f:
            yaml.safe_dump(self.model_dump(mode='json', exclude={'credentials'}), f, default_flow_style=False)
