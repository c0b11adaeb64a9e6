"""
Video Assembler

Renders the two local artifacts of a run with ordered fallback tiers:
- Slideshow: enhanced graph (Ken Burns, fades), then basic concat list
- Merge: split screen (or picture-in-picture), then raw stacking

Each attempt yields a tagged TierResult; the first success wins. Nothing here
raises for a failed render; the caller reads the TieredOutcome.
"""

import logging
from pathlib import Path
from typing import List, Optional, Sequence, Union

from ..utils.config import MergeLayout, VideoConfig
from ..utils.errors import GraphBuildError, InspectionError
from ..utils.resources import RunWorkspace
from .filter_graph import FilterGraphBuilder
from .process_runner import ProcessRunner
from .video_models import (
    FrameSize, GraphDescription, GraphStyle, MergeStyle, TieredOutcome, TierResult
)

PathLike = Union[str, Path]

# trim/-t treat zero as "no limit"; degenerate scenes still get a frame or two
MIN_SEGMENT_SECONDS = 0.1

SLIDESHOW_TIERS = (GraphStyle.ENHANCED, GraphStyle.BASIC)
MERGE_TIERS = (MergeStyle.PRIMARY, MergeStyle.LAST_RESORT)


class VideoAssembler:
    """
    Tiered renderer for slideshow and split-screen outputs.

    Renders are strictly sequential: one ffmpeg process at a time, each
    writing a fresh tracked file in the run workspace.
    """

    def __init__(self,
                 video_config: Optional[VideoConfig] = None,
                 runner: Optional[ProcessRunner] = None,
                 builder: Optional[FilterGraphBuilder] = None,
                 slideshow_tiers: Sequence[GraphStyle] = SLIDESHOW_TIERS,
                 merge_tiers: Sequence[MergeStyle] = MERGE_TIERS):
        self.video = video_config or VideoConfig()
        self.runner = runner or ProcessRunner(self.video)
        self.builder = builder or FilterGraphBuilder(self.video)
        self.slideshow_tiers = list(slideshow_tiers)
        self.merge_tiers = list(merge_tiers)
        self.logger = logging.getLogger(__name__)

    async def build_slideshow(self,
                              images: Sequence[PathLike],
                              durations: Sequence[float],
                              audio: PathLike,
                              frame_size: FrameSize,
                              workspace: RunWorkspace) -> TieredOutcome:
        """Narrated slideshow; durations are seconds per image"""
        durations = [max(d, MIN_SEGMENT_SECONDS) for d in durations]
        total = sum(durations)
        self.logger.info(f"Building slideshow: {len(images)} images, {total:.1f}s at {frame_size}")

        outcome = TieredOutcome(artifact="slideshow")
        for style in self.slideshow_tiers:
            try:
                graph = self.builder.build_graph(images, durations, style, frame_size, audio)
            except GraphBuildError as e:
                outcome.attempts.append(TierResult(tier=style.value, success=False, error=str(e)))
                self.logger.warning(f"Slideshow {style.value} graph could not be built: {e}")
                continue

            result = await self._render(style.value, "slideshow", graph, workspace)
            outcome.attempts.append(result)
            if result.success:
                break

        self._log_outcome(outcome)
        return outcome

    async def merge(self,
                    slideshow: PathLike,
                    talking_head: PathLike,
                    frame_size: FrameSize,
                    workspace: RunWorkspace) -> TieredOutcome:
        """Final video combining slideshow and lip-synced clip"""
        overlay_source = None
        if self.video.merge_layout == MergeLayout.PIP:
            overlay_source = await self._source_size(talking_head)

        outcome = TieredOutcome(artifact="merge")
        for style in self.merge_tiers:
            try:
                graph = self.builder.build_merge_graph(
                    slideshow, talking_head, style, frame_size, overlay_source
                )
            except GraphBuildError as e:
                outcome.attempts.append(TierResult(tier=style.value, success=False, error=str(e)))
                self.logger.warning(f"Merge {style.value} graph could not be built: {e}")
                continue

            result = await self._render(style.value, "merged", graph, workspace)
            outcome.attempts.append(result)
            if result.success:
                break

        self._log_outcome(outcome)
        return outcome

    async def _render(self, tier: str, prefix: str, graph: GraphDescription,
                      workspace: RunWorkspace) -> TierResult:
        output_path = workspace.new_path(f"{prefix}_{tier}", ".mp4")
        self.logger.info(f"Rendering {prefix} ({tier} tier) -> {output_path.name}")

        try:
            result = await self.runner.run_graph(graph, output_path, workspace)
        except (GraphBuildError, OSError) as e:
            return TierResult(tier=tier, success=False, error=str(e))

        if not result.success:
            return TierResult(
                tier=tier, success=False,
                error=f"ffmpeg exited with {result.exit_code}: {result.error_tail()}",
            )
        if not output_path.exists() or output_path.stat().st_size == 0:
            return TierResult(tier=tier, success=False, error="ffmpeg did not create output file")

        return TierResult(tier=tier, success=True, output_path=output_path)

    async def _source_size(self, path: PathLike) -> Optional[FrameSize]:
        try:
            info = await self.runner.probe(path)
        except InspectionError as e:
            self.logger.warning(f"Could not probe talking head, assuming frame aspect: {e}")
            return None
        if not info.width or not info.height:
            return None
        return FrameSize(width=info.width, height=info.height)

    def _log_outcome(self, outcome: TieredOutcome) -> None:
        for attempt in outcome.attempts:
            if not attempt.success:
                self.logger.warning(f"{outcome.artifact} tier {attempt.tier} failed: {attempt.error}")
        if outcome.success:
            self.logger.info(f"{outcome.artifact} produced by {outcome.winner.tier} tier")
        else:
            self.logger.error(
                f"{outcome.artifact} failed at every tier: {', '.join(outcome.tiers_tried)}"
            )


def pair_images_with_durations(image_paths: Sequence[PathLike],
                               durations: Sequence[float]) -> List[float]:
    """Durations for the images actually available

    With fewer images than scenes, the first N scenes keep their timing and the
    last paired image also covers every scene that has no image of its own.
    """
    if not image_paths:
        return []
    count = min(len(image_paths), len(durations))
    paired = list(durations[:count])
    if paired and len(durations) > count:
        paired[-1] += sum(durations[count:])
    return paired
