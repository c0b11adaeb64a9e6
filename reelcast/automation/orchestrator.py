"""
Composition Orchestrator

Runs one project from prompts to final video:

 1. preconditions          7. slideshow (enhanced -> basic)
 2. images (fan-out)       8. lip-sync of the avatar video
 3. narration (TTS)        9. merge (primary -> last resort)
 4. transcription         10. upload + persist, Completed
 5. scene alignment       11. Failed on any fatal error
 6. downloads

Slideshow and merge failures only cost their own outputs. Everything else
that goes wrong ends the run as Failed with a reason. The run workspace is
released exactly once, whichever way the run ends.
"""

import asyncio
import time
import uuid
from pathlib import Path
from typing import Any, Callable, List, Optional

from ..content_generation.alignment import align, attach_image_urls, scene_durations
from ..content_generation.content_models import TimedScene, Transcript
from ..media_generation.media_models import RemoteJob
from ..utils.config import Config
from ..utils.errors import (
    DownloadError, ExternalServiceError, ImageGenerationError,
    PreconditionError, ReelcastError
)
from ..utils.logger import LoggerMixin
from ..utils.resources import RunWorkspace
from ..video_assembly.video_assembler import VideoAssembler, pair_images_with_durations
from ..video_assembly.video_models import frame_size_for
from .automation_models import Project, ProjectStatus, RunOutcome, UserProfile
from .ports import (
    IImageGenerator, ILipSync, IObjectStore, IProjectStore,
    ISpeechSynthesizer, ITranscriber
)

WorkspaceFactory = Callable[[Project], RunWorkspace]

# Storage kinds, as folder names under the user's prefix
SLIDESHOW_KIND = "slideshows"
FINAL_VIDEO_KIND = "final-videos"


class CompositionOrchestrator(LoggerMixin):
    """Pipeline state machine for a single project run"""

    def __init__(self,
                 config: Config,
                 store: IProjectStore,
                 images: IImageGenerator,
                 speech: ISpeechSynthesizer,
                 transcriber: ITranscriber,
                 lipsync: ILipSync,
                 object_store: IObjectStore,
                 assembler: Optional[VideoAssembler] = None,
                 workspace_factory: Optional[WorkspaceFactory] = None):
        self.config = config
        self.store = store
        self.images = images
        self.speech = speech
        self.transcriber = transcriber
        self.lipsync = lipsync
        self.object_store = object_store
        self.assembler = assembler or VideoAssembler(config.video)
        self.workspace_factory = workspace_factory or self._default_workspace

    def _default_workspace(self, project: Project) -> RunWorkspace:
        return RunWorkspace(self.config.paths.temp, f"run_{project.id}_{uuid.uuid4().hex[:8]}")

    async def run(self, project_id: str) -> RunOutcome:
        """Compose a project's videos.

        Raises ProjectNotFoundError for unknown ids and ProjectBusyError when
        another run holds the project; every other failure is reported in the
        returned RunOutcome and recorded on the project.
        """
        started = time.time()
        project = self.store.begin_run(project_id)
        self.logger.info(f"Run started for project {project.id} ({project.title or 'untitled'})")

        outcome = RunOutcome(project_id=project.id, status=ProjectStatus.PROCESSING)
        workspace = self.workspace_factory(project)
        try:
            workspace.acquire()
            await self._compose(project, workspace, outcome)
        except ReelcastError as e:
            self._fail(project, outcome, str(e))
        except Exception as e:
            self.logger.exception(f"Unexpected error in project {project.id}")
            self._fail(project, outcome, f"Unexpected error: {e}")
            raise
        finally:
            workspace.release()
            outcome.duration_seconds = time.time() - started

        self.logger.info(
            f"Run for project {project.id} ended {outcome.status.value} "
            f"in {outcome.duration_seconds:.1f}s"
        )
        return outcome

    async def _compose(self, project: Project, workspace: RunWorkspace, outcome: RunOutcome) -> None:
        # 1. Preconditions
        user = self._check_preconditions(project)

        # 2. Images
        if not project.generated_images:
            project.generated_images = await self._generate_images(project.image_prompts)
            self.store.save_project(project)
        image_urls = project.generated_images

        # 3. Narration
        if not user.voice_id:
            raise PreconditionError("No voice profile found for this user")
        self.logger.info("Generating audio from script...")
        audio_url = await self.speech.synthesize(project.script, user.voice_id, user.id)

        # 4. Transcription
        self.logger.info("Getting transcript with word timestamps...")
        transcript: Transcript = await self._await_job(await self.transcriber.submit(audio_url))
        self.logger.info(
            f"Transcript has {transcript.word_count} words over {transcript.audio_duration:.1f}s"
        )

        # 5. Alignment
        timed_scenes = align(transcript.words, project.image_prompts, transcript.audio_duration)
        attach_image_urls(timed_scenes, image_urls)

        # 6. Downloads
        image_paths = await self._download_all(image_urls, workspace)
        audio_path = (await self._download_all([audio_url], workspace))[0]

        # 7. Slideshow
        frame_size = frame_size_for(self.config.video.mode)
        durations = self._slideshow_durations(timed_scenes, len(image_paths), transcript.audio_duration)
        used_images = image_paths[:len(durations)]
        slideshow = await self.assembler.build_slideshow(
            used_images, durations, audio_path, frame_size, workspace
        )
        outcome.slideshow_tiers = slideshow.tiers_tried

        # 8. Lip-sync
        self.logger.info("Generating lip-synced video...")
        lipsync_url = await self._await_job(
            await self.lipsync.submit(user.avatar_video_url, audio_url)
        )
        project.lipsync_url = lipsync_url
        outcome.lipsync_url = lipsync_url

        # 9-10. Merge and uploads
        if slideshow.success:
            project.slideshow_url = await self.object_store.upload_file(
                slideshow.output_path, user.id, SLIDESHOW_KIND
            )
            outcome.slideshow_url = project.slideshow_url

            lipsync_path = workspace.track(await self.object_store.download(lipsync_url, workspace.directory))
            merged = await self.assembler.merge(slideshow.output_path, lipsync_path, frame_size, workspace)
            outcome.merge_tiers = merged.tiers_tried
            if merged.success:
                project.final_video_url = await self._upload_optional(merged.output_path, user.id)
        else:
            self.logger.warning("No slideshow produced; skipping split-screen merge")

        project.transcript = transcript
        project.timed_scenes = timed_scenes
        project.audio_duration = transcript.audio_duration
        project.status = ProjectStatus.COMPLETED
        project.error_message = None
        self.store.save_project(project)

        outcome.status = ProjectStatus.COMPLETED
        outcome.final_video_url = project.final_video_url

    def _check_preconditions(self, project: Project) -> UserProfile:
        if not project.image_prompts:
            raise PreconditionError("No image prompts found in project")
        user = self.store.get_user(project.user_id)
        if not user.avatar_video_url:
            raise PreconditionError("User has no uploaded avatar video")
        return user

    async def _generate_images(self, prompts: List[str]) -> List[str]:
        """All prompts concurrently; keeps whatever succeeded, in prompt order"""
        self.logger.info(f"Generating {len(prompts)} images...")

        async def generate(prompt: str) -> str:
            return await self._await_job(await self.images.submit(prompt))

        results = await asyncio.gather(*(generate(p) for p in prompts), return_exceptions=True)

        urls = []
        for prompt, result in zip(prompts, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                self.logger.warning(f"Image generation failed for '{prompt[:50]}': {result}")
            else:
                urls.append(result)

        if not urls:
            raise ImageGenerationError("No images could be generated")
        self.logger.info(f"Generated {len(urls)}/{len(prompts)} images")
        return urls

    async def _await_job(self, job: RemoteJob) -> Any:
        """Log a job's progress events, then return its result"""
        async for event in job.events():
            self.logger.debug(event.describe())
        return await job.result()

    async def _download_all(self, urls: List[str], workspace: RunWorkspace) -> List[Path]:
        results = await asyncio.gather(
            *(self.object_store.download(url, workspace.directory) for url in urls),
            return_exceptions=True,
        )

        paths, first_error = [], None
        for url, result in zip(urls, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                first_error = first_error or result
                self.logger.error(f"Download failed for {url}: {result}")
            else:
                paths.append(workspace.track(result))

        if first_error is not None:
            if isinstance(first_error, ReelcastError):
                raise first_error
            raise DownloadError(str(urls), str(first_error)) from first_error
        return paths

    def _slideshow_durations(self, timed_scenes: List[TimedScene], image_count: int,
                             audio_duration: float) -> List[float]:
        if not timed_scenes:
            # No word timings at all: spread the narration evenly
            self.logger.warning("Transcript has no words; using equal scene durations")
            return [audio_duration / image_count] * image_count
        if image_count < len(timed_scenes):
            self.logger.warning(
                f"Only {image_count} images for {len(timed_scenes)} scenes; "
                f"last image covers the remaining scenes"
            )
        durations = scene_durations(timed_scenes)
        # Silence before the first word is shown on the first image so the
        # slideshow spans the whole narration track
        durations[0] += timed_scenes[0].start / 1000.0
        return pair_images_with_durations(range(image_count), durations)

    async def _upload_optional(self, path, user_id: str) -> Optional[str]:
        """Final video upload; a failure here leaves the field empty"""
        try:
            return await self.object_store.upload_file(path, user_id, FINAL_VIDEO_KIND)
        except ExternalServiceError as e:
            self.logger.error(f"Split-screen upload failed: {e}")
            return None

    def _fail(self, project: Project, outcome: RunOutcome, reason: str) -> None:
        self.logger.error(f"Project {project.id} failed: {reason}")
        project.status = ProjectStatus.FAILED
        project.error_message = reason
        self.store.save_project(project)

        outcome.status = ProjectStatus.FAILED
        outcome.reason = reason
        outcome.slideshow_url = project.slideshow_url
        outcome.lipsync_url = project.lipsync_url
        outcome.final_video_url = project.final_video_url
