"""
Video Assembly Data Models

Pydantic models for the filter graphs handed to ffmpeg, the results of running
it, and the tagged results of tiered rendering attempts.
"""

import re
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Union
from pydantic import BaseModel, Field

from ..utils.config import PipelineMode
from ..utils.errors import GraphBuildError

FilterValue = Union[str, int, float]

_STREAM_SPEC = re.compile(r"^(\d+):([va])$")


class GraphStyle(str, Enum):
    """Slideshow graph tiers, most sophisticated first"""
    ENHANCED = "enhanced"
    BASIC = "basic"


class MergeStyle(str, Enum):
    """Slideshow + talking head merge tiers"""
    PRIMARY = "primary"
    LAST_RESORT = "last_resort"


class PanDirection(int, Enum):
    """Ken Burns travel, picked by image index mod 4"""
    CENTER = 0
    TOP_LEFT = 1
    TOP_RIGHT = 2
    BOTTOM = 3

    @classmethod
    def for_index(cls, index: int) -> "PanDirection":
        return cls(index % 4)


class FrameSize(BaseModel):
    width: int = Field(gt=0)
    height: int = Field(gt=0)

    @property
    def is_portrait(self) -> bool:
        return self.height > self.width

    def __str__(self) -> str:
        return f"{self.width}x{self.height}"


FRAME_TARGETS: Dict[PipelineMode, FrameSize] = {
    PipelineMode.PORTRAIT: FrameSize(width=720, height=1280),
    PipelineMode.LANDSCAPE: FrameSize(width=1920, height=1080),
}


def frame_size_for(mode: PipelineMode) -> FrameSize:
    return FRAME_TARGETS[PipelineMode(mode)]


def format_number(value: Union[int, float]) -> str:
    """Shortest decimal form ffmpeg accepts: 3.0 -> '3', 0.25 -> '0.25'"""
    if isinstance(value, bool):
        return str(int(value))
    if isinstance(value, int):
        return str(value)
    text = f"{value:.6f}".rstrip('0').rstrip('.')
    return text if text not in ("", "-0") else "0"


def _format_value(value: FilterValue) -> str:
    if isinstance(value, (int, float)):
        return format_number(value)
    # Commas would otherwise split the filter chain
    if "," in value and not value.startswith("'"):
        return f"'{value}'"
    return value


class Filter(BaseModel):
    """One ffmpeg filter: name, positional arguments, keyword options"""
    name: str
    args: List[FilterValue] = Field(default_factory=list)
    options: Dict[str, FilterValue] = Field(default_factory=dict)

    def render(self) -> str:
        parts = [_format_value(a) for a in self.args]
        parts += [f"{key}={_format_value(val)}" for key, val in self.options.items()]
        if not parts:
            return self.name
        return f"{self.name}={':'.join(parts)}"


class FilterChain(BaseModel):
    """Labelled inputs -> comma-joined filters -> labelled outputs"""
    inputs: List[str]
    filters: List[Filter]
    outputs: List[str]

    def render(self) -> str:
        ins = "".join(f"[{label}]" for label in self.inputs)
        outs = "".join(f"[{label}]" for label in self.outputs)
        return f"{ins}{','.join(f.render() for f in self.filters)}{outs}"


class MediaInput(BaseModel):
    """One -i source and the options that precede it"""
    path: Optional[str] = None  # None: the concat list written at run time
    loop: bool = False
    framerate: Optional[int] = None
    duration: Optional[float] = None
    format: Optional[str] = None
    safe: Optional[int] = None

    def to_args(self, concat_list_path: Optional[str] = None) -> List[str]:
        args: List[str] = []
        if self.format:
            args += ["-f", self.format]
        if self.safe is not None:
            args += ["-safe", str(self.safe)]
        if self.loop:
            args += ["-loop", "1"]
        if self.framerate:
            args += ["-framerate", str(self.framerate)]
        if self.duration is not None:
            args += ["-t", format_number(self.duration)]

        path = self.path
        if path is None:
            if concat_list_path is None:
                raise GraphBuildError("Concat input has no list file")
            path = concat_list_path
        return args + ["-i", path]


class GraphDescription(BaseModel):
    """Everything ffmpeg needs for one render, as typed fields"""
    inputs: List[MediaInput]
    chains: List[FilterChain]
    maps: List[str]  # "[label]" for graph outputs, "N:a" for input streams
    output_options: List[str] = Field(default_factory=list)
    concat_list: Optional[str] = None
    pan_directions: List[PanDirection] = Field(default_factory=list)

    def render(self) -> str:
        """The filter_complex string"""
        return ";".join(chain.render() for chain in self.chains)

    def produced_labels(self) -> List[str]:
        return [label for chain in self.chains for label in chain.outputs]

    def validate_labels(self) -> None:
        """Every consumed label must exist before it is used"""
        produced: List[str] = []
        for chain in self.chains:
            for label in chain.inputs:
                if label in produced:
                    continue
                if not self._is_input_stream(label):
                    raise GraphBuildError(f"Chain consumes unknown label [{label}]")
            for label in chain.outputs:
                if label in produced:
                    raise GraphBuildError(f"Label [{label}] produced twice")
                produced.append(label)

        for mapped in self.maps:
            if mapped.startswith("["):
                if mapped.strip("[]") not in produced:
                    raise GraphBuildError(f"Mapped label {mapped} is never produced")
            elif not self._is_input_stream(mapped):
                raise GraphBuildError(f"Mapped stream {mapped} is not an input")

    def _is_input_stream(self, label: str) -> bool:
        match = _STREAM_SPEC.match(label)
        return bool(match) and int(match.group(1)) < len(self.inputs)

    def to_args(self,
                output_path: Union[str, Path],
                concat_list_path: Optional[str] = None,
                filter_script_path: Optional[str] = None) -> List[str]:
        """Validated ffmpeg argument list (without the executable)"""
        self.validate_labels()

        args = ["-y"]
        for media_input in self.inputs:
            args += media_input.to_args(concat_list_path)

        if self.chains:
            if filter_script_path:
                args += ["-filter_complex_script", filter_script_path]
            else:
                args += ["-filter_complex", self.render()]

        for mapped in self.maps:
            args += ["-map", mapped]
        args += self.output_options
        args.append(str(output_path))
        return args


class ProcessResult(BaseModel):
    """Exit status and captured output of one external process"""
    exit_code: int
    stdout: str = ""
    stderr: str = ""

    @property
    def success(self) -> bool:
        return self.exit_code == 0

    def error_tail(self, lines: int = 15) -> str:
        """Last lines of stderr, enough to show ffmpeg's actual complaint"""
        return "\n".join(self.stderr.strip().splitlines()[-lines:])


class MediaInfo(BaseModel):
    width: Optional[int] = None
    height: Optional[int] = None
    duration_seconds: float = 0.0


class TierResult(BaseModel):
    """Outcome of one tier attempt"""
    tier: str
    success: bool
    output_path: Optional[Path] = None
    error: Optional[str] = None


class TieredOutcome(BaseModel):
    """Every attempt made for one artifact, in order"""
    artifact: str
    attempts: List[TierResult] = Field(default_factory=list)

    @property
    def success(self) -> bool:
        return any(a.success for a in self.attempts)

    @property
    def winner(self) -> Optional[TierResult]:
        for attempt in self.attempts:
            if attempt.success:
                return attempt
        return None

    @property
    def output_path(self) -> Optional[Path]:
        winner = self.winner
        return winner.output_path if winner else None

    @property
    def tiers_tried(self) -> List[str]:
        return [a.tier for a in self.attempts]
