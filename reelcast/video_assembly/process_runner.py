"""
Process Runner

Spawns ffmpeg-class executables with argument lists and captures their output.
Exit status is reported, never raised; the probe variant is the exception and
raises InspectionError because callers cannot continue without its answer.
"""

import asyncio
import logging
from pathlib import Path
from typing import List, Optional, Sequence, Union

import ffmpeg

from ..utils.config import VideoConfig
from ..utils.errors import InspectionError
from ..utils.resources import RunWorkspace
from .video_models import GraphDescription, MediaInfo, ProcessResult

logger = logging.getLogger(__name__)

# Shell conventions for "not executable" and "command not found"
EXIT_NOT_EXECUTABLE = 126
EXIT_NOT_FOUND = 127


class ProcessRunner:
    """Runs external media tools one invocation at a time"""

    def __init__(self, video_config: Optional[VideoConfig] = None):
        self.video = video_config or VideoConfig()

    async def run(self, executable: str, args: Sequence[str]) -> ProcessResult:
        """Run executable with args; a nonzero exit comes back in the result"""
        cmd = [executable, *[str(a) for a in args]]
        logger.debug(f"Running: {' '.join(cmd)}")

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE
            )
        except FileNotFoundError as e:
            logger.error(f"{executable} not found: {e}")
            return ProcessResult(exit_code=EXIT_NOT_FOUND, stderr=str(e))
        except PermissionError as e:
            logger.error(f"{executable} is not executable: {e}")
            return ProcessResult(exit_code=EXIT_NOT_EXECUTABLE, stderr=str(e))

        stdout, stderr = await process.communicate()
        result = ProcessResult(
            exit_code=process.returncode,
            stdout=stdout.decode(errors="replace"),
            stderr=stderr.decode(errors="replace"),
        )

        if not result.success:
            logger.warning(f"{executable} exited with {result.exit_code}: {result.error_tail(5)}")
        return result

    async def run_graph(self,
                        graph: GraphDescription,
                        output_path: Union[str, Path],
                        workspace: RunWorkspace) -> ProcessResult:
        """Render a graph with ffmpeg, writing side files into the workspace"""
        concat_list_path = None
        if graph.concat_list is not None:
            concat_file = workspace.new_path("concat", ".txt")
            concat_file.write_text(graph.concat_list, encoding="utf-8")
            concat_list_path = str(concat_file)

        filter_script_path = None
        rendered = graph.render()
        if len(rendered) > self.video.filter_script_threshold:
            script_file = workspace.new_path("filter", ".txt")
            script_file.write_text(rendered, encoding="utf-8")
            filter_script_path = str(script_file)
            logger.info(f"Filter graph is {len(rendered)} chars, using script file {script_file.name}")

        args = graph.to_args(output_path, concat_list_path, filter_script_path)
        return await self.run(self.video.ffmpeg_path, args)

    async def probe(self, path: Union[str, Path]) -> MediaInfo:
        """Width, height and duration of a media file via ffprobe"""
        path = str(path)
        try:
            data = await asyncio.to_thread(ffmpeg.probe, path, cmd=self.video.ffprobe_path)
        except ffmpeg.Error as e:
            stderr = e.stderr.decode(errors="replace") if e.stderr else None
            raise InspectionError(path, "ffprobe exited with an error", stderr) from e
        except FileNotFoundError as e:
            raise InspectionError(path, f"{self.video.ffprobe_path} not found") from e
        except ValueError as e:
            # ffmpeg.probe parses stdout with json.loads
            raise InspectionError(path, f"unparsable ffprobe output: {e}") from e

        return self._media_info(path, data)

    @staticmethod
    def _media_info(path: str, data: dict) -> MediaInfo:
        try:
            streams: List[dict] = data.get("streams", [])
            video_stream = next((s for s in streams if s.get("codec_type") == "video"), None)

            duration = data.get("format", {}).get("duration")
            if duration is None and streams:
                duration = next((s["duration"] for s in streams if "duration" in s), None)

            return MediaInfo(
                width=int(video_stream["width"]) if video_stream else None,
                height=int(video_stream["height"]) if video_stream else None,
                duration_seconds=float(duration) if duration is not None else 0.0,
            )
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise InspectionError(path, f"unexpected ffprobe structure: {e}") from e
