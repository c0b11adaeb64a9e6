"""
Filter Graph Builder

Turns images, per-scene durations and a frame target into GraphDescription
objects for ffmpeg:

- Enhanced slideshow: scale/pad, Ken Burns zoompan, trim, fades, concat
- Basic slideshow: concat demuxer list with per-image durations
- Merge: split screen (or picture-in-picture) of slideshow and talking head
- Last-resort merge: raw stack of the two streams

The builder only describes renders. Choosing a tier after a failure is the
caller's job.
"""

import logging
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

from ..utils.config import MergeLayout, OverlayAnchor, VideoConfig
from ..utils.errors import GraphBuildError
from .video_models import (
    Filter, FilterChain, FrameSize, GraphDescription, GraphStyle,
    MediaInput, MergeStyle, PanDirection, format_number
)

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

# Display time of the repeated last entry in a concat list
CONCAT_TAIL_SECONDS = 0.1
MERGE_PRESET = "fast"
LAST_RESORT_PRESET = "ultrafast"


def overlay_position(anchor: OverlayAnchor, out_w: int, out_h: int,
                     ov_w: int, ov_h: int, margin: int = 10) -> Tuple[int, int]:
    """Top-left corner of an overlay of ov_w x ov_h placed at anchor"""
    anchor = OverlayAnchor(anchor)
    right = out_w - ov_w - margin
    bottom = out_h - ov_h - margin

    positions = {
        OverlayAnchor.TOP_LEFT: (margin, margin),
        OverlayAnchor.TOP_RIGHT: (right, margin),
        OverlayAnchor.BOTTOM_LEFT: (margin, bottom),
        OverlayAnchor.BOTTOM_RIGHT: (right, bottom),
        OverlayAnchor.BOTTOM_CENTER: ((out_w - ov_w) // 2, bottom),
    }
    x, y = positions[anchor]
    return max(0, x), max(0, y)


def _even(value: float) -> int:
    """libx264 with yuv420p needs even dimensions"""
    return max(2, int(value) // 2 * 2)


def _quote_concat_path(path: PathLike) -> str:
    return "'" + str(path).replace("'", "'\\''") + "'"


def _fit_filters(width: int, height: int) -> List[Filter]:
    """Scale into the box keeping aspect ratio, then center-pad the rest"""
    return [
        Filter(name="scale", args=[width, height],
               options={"force_original_aspect_ratio": "decrease"}),
        Filter(name="pad", args=[width, height, "(ow-iw)/2", "(oh-ih)/2"]),
        Filter(name="setsar", args=[1]),
    ]


class FilterGraphBuilder:
    """Builds GraphDescription objects from a VideoConfig"""

    def __init__(self, video_config: Optional[VideoConfig] = None):
        self.video = video_config or VideoConfig()

    # ------------------------------------------------------------------
    # Slideshow
    # ------------------------------------------------------------------

    def build_graph(self,
                    images: Sequence[PathLike],
                    durations: Sequence[float],
                    style: GraphStyle,
                    frame_size: FrameSize,
                    audio: Optional[PathLike] = None) -> GraphDescription:
        """Describe a slideshow render of images for the given durations (seconds)"""
        if not images:
            raise GraphBuildError("No images to build a slideshow from")
        if len(images) != len(durations):
            raise GraphBuildError(
                f"{len(images)} images but {len(durations)} durations"
            )
        for i, duration in enumerate(durations):
            if duration < 0:
                raise GraphBuildError(f"Negative duration for image {i}: {duration}")

        style = GraphStyle(style)
        if style == GraphStyle.ENHANCED:
            graph = self._build_enhanced(images, durations, frame_size, audio)
        else:
            graph = self._build_basic(images, durations, frame_size, audio)

        graph.validate_labels()
        logger.debug(f"Built {style.value} graph for {len(images)} images at {frame_size}")
        return graph

    def _build_enhanced(self, images, durations, frame_size: FrameSize,
                        audio: Optional[PathLike]) -> GraphDescription:
        video = self.video
        width, height = frame_size.width, frame_size.height

        inputs: List[MediaInput] = []
        chains: List[FilterChain] = []
        pan_directions: List[PanDirection] = []

        for index, (image, duration) in enumerate(zip(images, durations)):
            inputs.append(MediaInput(
                path=str(image), loop=True, framerate=video.fps, duration=duration
            ))

            filters = _fit_filters(width, height)
            if video.ken_burns_effect:
                direction = PanDirection.for_index(index)
                pan_directions.append(direction)
                filters.append(self._zoompan(direction, frame_size))

            filters.append(Filter(name="trim", options={"duration": duration}))
            filters.append(Filter(name="setpts", args=["PTS-STARTPTS"]))
            filters.extend(self._fades(duration))

            chains.append(FilterChain(
                inputs=[f"{index}:v"], filters=filters, outputs=[f"seg{index}"]
            ))

        chains.append(FilterChain(
            inputs=[f"seg{i}" for i in range(len(images))],
            filters=[Filter(name="concat", options={"n": len(images), "v": 1, "a": 0})],
            outputs=["outv"],
        ))

        maps = ["[outv]"]
        options = self._encode_options(video.preset)
        if audio is not None:
            inputs.append(MediaInput(path=str(audio)))
            maps.append(f"{len(images)}:a")
            options.append("-shortest")

        return GraphDescription(
            inputs=inputs, chains=chains, maps=maps,
            output_options=options, pan_directions=pan_directions,
        )

    def _zoompan(self, direction: PanDirection, frame_size: FrameSize) -> Filter:
        """Continuous zoom clamped at max_zoom, travelling towards direction"""
        video = self.video
        centre_x = "iw/2-(iw/zoom/2)"
        centre_y = "ih/2-(ih/zoom/2)"
        travel = {
            PanDirection.CENTER: (centre_x, centre_y),
            PanDirection.TOP_LEFT: ("0", "0"),
            PanDirection.TOP_RIGHT: ("iw-iw/zoom", "0"),
            PanDirection.BOTTOM: (centre_x, "ih-ih/zoom"),
        }
        x, y = travel[direction]
        zoom = (f"min(1+{format_number(video.zoom_increment)}*on,"
                f"{format_number(video.max_zoom)})")
        return Filter(name="zoompan", options={
            "z": zoom, "x": x, "y": y, "d": 1, "s": str(frame_size), "fps": video.fps,
        })

    def _fades(self, duration: float) -> List[Filter]:
        fade_in, fade_out = self.video.fade_in, self.video.fade_out
        if fade_in + fade_out > duration:
            fade_in = min(fade_in, duration / 2)
            fade_out = min(fade_out, duration - fade_in)

        filters = []
        if fade_in > 0:
            filters.append(Filter(name="fade", options={"t": "in", "st": 0, "d": fade_in}))
        if fade_out > 0:
            # Fade-out never starts before the fade-in has finished
            out_start = max(fade_in, duration - fade_out)
            filters.append(Filter(name="fade", options={"t": "out", "st": out_start, "d": fade_out}))
        return filters

    def _build_basic(self, images, durations, frame_size: FrameSize,
                     audio: Optional[PathLike]) -> GraphDescription:
        lines = []
        for image, duration in zip(images, durations):
            lines.append(f"file {_quote_concat_path(image)}")
            lines.append(f"duration {format_number(duration)}")
        # The demuxer ignores the last duration unless the file is listed again
        lines.append(f"file {_quote_concat_path(images[-1])}")
        lines.append(f"duration {format_number(CONCAT_TAIL_SECONDS)}")

        inputs = [MediaInput(format="concat", safe=0)]
        filters = _fit_filters(frame_size.width, frame_size.height)
        filters.append(Filter(name="fps", args=[self.video.fps]))
        chains = [FilterChain(inputs=["0:v"], filters=filters, outputs=["outv"])]

        maps = ["[outv]"]
        options = self._encode_options(self.video.preset)
        if audio is not None:
            inputs.append(MediaInput(path=str(audio)))
            maps.append("1:a")
            options.append("-shortest")

        return GraphDescription(
            inputs=inputs, chains=chains, maps=maps,
            output_options=options, concat_list="\n".join(lines) + "\n",
        )

    # ------------------------------------------------------------------
    # Merge
    # ------------------------------------------------------------------

    def build_merge_graph(self,
                          slideshow: PathLike,
                          talking_head: PathLike,
                          style: MergeStyle,
                          frame_size: FrameSize,
                          overlay_source: Optional[FrameSize] = None) -> GraphDescription:
        """Describe the combination of slideshow and lip-synced clip

        overlay_source is the talking head's own size when known; it only
        matters for the picture-in-picture layout.
        """
        style = MergeStyle(style)
        inputs = [MediaInput(path=str(slideshow)), MediaInput(path=str(talking_head))]

        if style == MergeStyle.LAST_RESORT:
            stack = "vstack" if frame_size.is_portrait else "hstack"
            chains = [FilterChain(
                inputs=["0:v", "1:v"],
                filters=[Filter(name=stack, options={"inputs": 2})],
                outputs=["v"],
            )]
            preset = LAST_RESORT_PRESET
        elif self.video.merge_layout == MergeLayout.PIP:
            chains = self._pip_chains(frame_size, overlay_source)
            preset = MERGE_PRESET
        else:
            chains = self._split_chains(frame_size)
            preset = MERGE_PRESET

        options = self._encode_options(preset)
        options.append("-shortest")
        graph = GraphDescription(
            inputs=inputs, chains=chains, maps=["[v]", "0:a"], output_options=options,
        )
        graph.validate_labels()
        return graph

    def _split_chains(self, frame_size: FrameSize) -> List[FilterChain]:
        if frame_size.is_portrait:
            panel_w, panel_h = frame_size.width, _even(frame_size.height / 2)
            labels, stack = ("top", "bottom"), "vstack"
        else:
            panel_w, panel_h = _even(frame_size.width / 2), frame_size.height
            labels, stack = ("left", "right"), "hstack"

        return [
            FilterChain(inputs=["0:v"], filters=_fit_filters(panel_w, panel_h), outputs=[labels[0]]),
            FilterChain(inputs=["1:v"], filters=_fit_filters(panel_w, panel_h), outputs=[labels[1]]),
            FilterChain(inputs=list(labels), filters=[Filter(name=stack, options={"inputs": 2})],
                        outputs=["v"]),
        ]

    def _pip_chains(self, frame_size: FrameSize,
                    overlay_source: Optional[FrameSize]) -> List[FilterChain]:
        video = self.video
        source = overlay_source or frame_size
        ov_w = _even(frame_size.width * video.pip_scale)
        ov_h = _even(ov_w * source.height / source.width)
        x, y = overlay_position(
            video.pip_anchor, frame_size.width, frame_size.height,
            ov_w, ov_h, video.overlay_margin,
        )
        return [
            FilterChain(inputs=["0:v"], filters=_fit_filters(frame_size.width, frame_size.height),
                        outputs=["base"]),
            FilterChain(inputs=["1:v"], filters=_fit_filters(ov_w, ov_h), outputs=["pip"]),
            FilterChain(inputs=["base", "pip"], filters=[Filter(name="overlay", args=[x, y])],
                        outputs=["v"]),
        ]

    def _encode_options(self, preset: str) -> List[str]:
        video = self.video
        return [
            "-c:v", video.video_codec,
            "-c:a", video.audio_codec,
            "-pix_fmt", video.pix_fmt,
            "-preset", preset,
            "-crf", str(video.crf),
        ]
