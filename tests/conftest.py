"""Shared fakes for pipeline tests."""

from __future__ import annotations

from pathlib import Path
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence

import pytest

from reelcast.automation.automation_models import Project, UserProfile
from reelcast.automation.orchestrator import CompositionOrchestrator
from reelcast.automation.ports import (
    IImageGenerator, ILipSync, IObjectStore, ISpeechSynthesizer, ITranscriber
)
from reelcast.automation.project_store import JsonProjectStore
from reelcast.content_generation.content_models import SceneSpec, Transcript, WordTimestamp
from reelcast.media_generation.media_models import JobStage, ProgressEvent, RemoteJob
from reelcast.utils.config import Config
from reelcast.utils.errors import DownloadError, ExternalServiceError
from reelcast.utils.resources import RunWorkspace
from reelcast.video_assembly.video_assembler import VideoAssembler
from reelcast.video_assembly.video_models import GraphDescription, MediaInfo, ProcessResult


class FakeJob(RemoteJob):
    """Settled job: one progress event, then a value or an error."""

    def __init__(self, value: Any = None, error: Optional[Exception] = None, source: str = "fake"):
        self.value = value
        self.error = error
        self.source = source

    async def events(self) -> AsyncIterator[ProgressEvent]:
        yield ProgressEvent(source=self.source, stage=JobStage.IN_PROGRESS, message="working")

    async def result(self) -> Any:
        if self.error is not None:
            raise self.error
        return self.value


class FakeImageGenerator(IImageGenerator):
    def __init__(self, failing_prompts: Sequence[str] = ()):
        self.failing_prompts = set(failing_prompts)
        self.prompts: List[str] = []

    async def submit(self, prompt: str) -> RemoteJob:
        self.prompts.append(prompt)
        if prompt in self.failing_prompts:
            return FakeJob(error=ExternalServiceError("image", f"rejected {prompt}"))
        return FakeJob(value=f"https://fal.media/files/{prompt}.jpg", source="image")


class FakeSpeech(ISpeechSynthesizer):
    def __init__(self, error: Optional[Exception] = None):
        self.error = error
        self.calls: List[tuple] = []

    async def synthesize(self, text: str, voice_id: str, user_id: str) -> str:
        self.calls.append((text, voice_id, user_id))
        if self.error is not None:
            raise self.error
        return f"https://s3.us-west-1.amazonaws.com/bucket/{user_id}/audio/narration.mp3"


class FakeTranscriber(ITranscriber):
    def __init__(self, transcript: Transcript):
        self.transcript = transcript

    async def submit(self, audio_url: str) -> RemoteJob:
        return FakeJob(value=self.transcript, source="transcription")


class FakeLipSync(ILipSync):
    def __init__(self, error: Optional[Exception] = None):
        self.error = error
        self.calls: List[tuple] = []

    async def submit(self, video_url: str, audio_url: str) -> RemoteJob:
        self.calls.append((video_url, audio_url))
        if self.error is not None:
            return FakeJob(error=self.error, source="lipsync")
        return FakeJob(value="https://fal.media/files/lipsync.mp4", source="lipsync")


class FakeObjectStore(IObjectStore):
    """Downloads write small local files; uploads return predictable URLs."""

    def __init__(self, failing_downloads: Sequence[str] = (), failing_kinds: Sequence[str] = ()):
        self.failing_downloads = set(failing_downloads)
        self.failing_kinds = set(failing_kinds)
        self.uploads: List[tuple] = []
        self.downloads: List[str] = []

    async def upload_file(self, path, user_id: str, kind: str) -> str:
        if kind in self.failing_kinds:
            raise ExternalServiceError("storage", f"upload of {kind} refused")
        self.uploads.append((Path(path), user_id, kind))
        return f"https://s3.us-west-1.amazonaws.com/bucket/{user_id}/{kind}/{Path(path).name}"

    async def download(self, url: str, dest_dir) -> Path:
        self.downloads.append(url)
        if url in self.failing_downloads:
            raise DownloadError(url, "HTTP 404 Not Found")
        target = Path(dest_dir) / f"download_{len(self.downloads)}{Path(url).suffix or '.jpg'}"
        target.write_bytes(b"data")
        return target


class FakeRunner:
    """Stands in for ffmpeg: writes the output file unless its tier should fail."""

    def __init__(self, failing_tiers: Sequence[str] = ()):
        self.failing_tiers = set(failing_tiers)
        self.rendered: List[tuple] = []

    async def run_graph(self, graph: GraphDescription, output_path, workspace: RunWorkspace) -> ProcessResult:
        name = Path(output_path).name
        self.rendered.append((name, graph))
        if any(name.startswith(f"{tier}_") for tier in self.failing_tiers):
            return ProcessResult(exit_code=1, stderr="Error initializing complex filters.\nInvalid argument")
        Path(output_path).write_bytes(b"video")
        return ProcessResult(exit_code=0)

    async def probe(self, path) -> MediaInfo:
        return MediaInfo(width=720, height=1280, duration_seconds=1.2)

    def tiers_rendered(self) -> List[str]:
        return [name.rsplit("_", 1)[0] for name, _ in self.rendered]


def make_words(*spec) -> List[WordTimestamp]:
    return [WordTimestamp(text=text, start=start, end=end) for text, start, end in spec]


@pytest.fixture
def config(tmp_path: Path) -> Config:
    cfg = Config()
    cfg.paths.temp = str(tmp_path / "temp")
    cfg.paths.data = str(tmp_path / "data")
    cfg.paths.logs = str(tmp_path / "logs")
    return cfg


@pytest.fixture
def store(tmp_path: Path) -> JsonProjectStore:
    store = JsonProjectStore(tmp_path / "data" / "projects.json")
    store.save_user(UserProfile(
        id="u1", avatar_video_url="https://s3.us-west-1.amazonaws.com/bucket/u1/video/me.mp4",
        voice_id="voice-1",
    ))
    store.create_project(Project.from_scenes(
        project_id="p1", user_id="u1", title="Demo",
        scenes=[
            SceneSpec(content="hi", image_prompts=["a"]),
            SceneSpec(content="there", image_prompts=["b"]),
        ],
    ))
    return store


@pytest.fixture
def transcript() -> Transcript:
    return Transcript(
        id="t1", text="hi there",
        words=make_words(("hi", 0, 500), ("there", 500, 1200)),
        audio_duration=1.2,
    )


class Harness:
    """Orchestrator wired to fakes, with the fakes exposed for assertions."""

    def __init__(self, config: Config, store: JsonProjectStore, transcript: Transcript,
                 images: Optional[FakeImageGenerator] = None,
                 speech: Optional[FakeSpeech] = None,
                 lipsync: Optional[FakeLipSync] = None,
                 object_store: Optional[FakeObjectStore] = None,
                 runner: Optional[FakeRunner] = None):
        self.config = config
        self.store = store
        self.images = images or FakeImageGenerator()
        self.speech = speech or FakeSpeech()
        self.transcriber = FakeTranscriber(transcript)
        self.lipsync = lipsync or FakeLipSync()
        self.object_store = object_store or FakeObjectStore()
        self.runner = runner or FakeRunner()
        self.workspaces: List[RunWorkspace] = []

        self.orchestrator = CompositionOrchestrator(
            config=config,
            store=store,
            images=self.images,
            speech=self.speech,
            transcriber=self.transcriber,
            lipsync=self.lipsync,
            object_store=self.object_store,
            assembler=VideoAssembler(config.video, runner=self.runner),
            workspace_factory=self._workspace,
        )

    def _workspace(self, project: Project) -> RunWorkspace:
        workspace = RunWorkspace(self.config.paths.temp, f"run_{project.id}_{len(self.workspaces)}")
        self.workspaces.append(workspace)
        return workspace


@pytest.fixture
def harness_factory(config: Config, store: JsonProjectStore, transcript: Transcript):
    def build(**kwargs: Dict[str, Any]) -> Harness:
        return Harness(config, store, transcript, **kwargs)
    return build
