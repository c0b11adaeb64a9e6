#!/usr/bin/env python3
"""
reelcast - Main Entry Point
Composes narrated slideshow, lip-synced talking head and split-screen video for a project.
"""

import asyncio
import json
import sys
import uuid
from pathlib import Path

from rich.console import Console
from rich.table import Table

from reelcast.automation.automation_models import Project, ProjectStatus, UserProfile
from reelcast.automation.orchestrator import CompositionOrchestrator
from reelcast.automation.project_store import JsonProjectStore
from reelcast.content_generation.alignment import align
from reelcast.content_generation.content_models import SceneSpec, Transcript
from reelcast.media_generation.image_generator import FalImageGenerator
from reelcast.media_generation.lipsync import FalLipSync
from reelcast.media_generation.transcriber import AssemblyAITranscriber
from reelcast.media_generation.tts_engine import ElevenLabsSynthesizer
from reelcast.storage.object_store import S3ObjectStore
from reelcast.utils.config import Config
from reelcast.utils.errors import ReelcastError
from reelcast.utils.logger import setup_logging
from reelcast.video_assembly.process_runner import ProcessRunner

console = Console()


class ReelcastSystem:
    """Wires configuration, storage and remote services together"""

    def __init__(self, config_path: str = "configs/config.yaml", store_path: str = None):
        self.config = Config.load(config_path)
        self.logger = setup_logging(self.config)
        self.store = JsonProjectStore(store_path or Path(self.config.paths.data) / "projects.json")

    async def run_project(self, project_id: str) -> None:
        """Run the full composition pipeline for one project"""
        object_store = S3ObjectStore(
            self.config.storage, self.config.credentials,
            self.config.services.http_timeout_seconds,
        )

        async with AssemblyAITranscriber(self.config) as transcriber:
            orchestrator = CompositionOrchestrator(
                config=self.config,
                store=self.store,
                images=FalImageGenerator(self.config),
                speech=ElevenLabsSynthesizer(self.config, object_store),
                transcriber=transcriber,
                lipsync=FalLipSync(self.config),
                object_store=object_store,
            )
            with console.status(f"[cyan]Composing project {project_id}..."):
                outcome = await orchestrator.run(project_id)

        if outcome.status == ProjectStatus.COMPLETED:
            console.print("\n[bold green]Video generation complete[/bold green]")
        else:
            console.print(f"\n[bold red]Video generation failed:[/bold red] {outcome.reason}")

        table = Table(show_header=False)
        table.add_row("Status", outcome.status.value)
        table.add_row("Slideshow", outcome.slideshow_url or "-")
        table.add_row("Lip-sync", outcome.lipsync_url or "-")
        table.add_row("Final video", outcome.final_video_url or "-")
        table.add_row("Slideshow tiers", ", ".join(outcome.slideshow_tiers) or "-")
        table.add_row("Merge tiers", ", ".join(outcome.merge_tiers) or "-")
        table.add_row("Elapsed", f"{outcome.duration_seconds:.1f}s")
        console.print(table)

        if not outcome.succeeded:
            sys.exit(1)

    def create_project(self, project_file: str) -> None:
        """Register a user (if given) and a draft project from a JSON file"""
        with open(project_file, encoding='utf-8') as f:
            data = json.load(f)

        if 'user' in data:
            self.store.save_user(UserProfile(**data['user']))
            user_id = data['user']['id']
        else:
            user_id = data['user_id']

        project = Project.from_scenes(
            project_id=str(data.get('id') or uuid.uuid4().hex[:12]),
            user_id=user_id,
            title=data.get('title', ''),
            scenes=[SceneSpec(**s) for s in data.get('scenes', [])],
        )
        self.store.create_project(project)
        console.print(f"[green]Created project {project.id}[/green] "
                      f"with {len(project.image_prompts)} image prompts")


def show_alignment(transcript_file: str, prompts_file: str) -> None:
    """Print the scene timing for a saved transcript and prompt list"""
    with open(transcript_file, encoding='utf-8') as f:
        transcript = Transcript(**json.load(f))
    with open(prompts_file, encoding='utf-8') as f:
        prompts = json.load(f)

    scenes = align(transcript.words, prompts, transcript.audio_duration)

    table = Table(title=f"{len(scenes)} scenes over {transcript.audio_duration:.2f}s")
    table.add_column("#", justify="right")
    table.add_column("Start (ms)", justify="right")
    table.add_column("End (ms)", justify="right")
    table.add_column("Duration (s)", justify="right")
    table.add_column("Prompt")
    for i, scene in enumerate(scenes):
        table.add_row(str(i), f"{scene.start:.0f}", f"{scene.end:.0f}",
                      f"{scene.duration_seconds:.2f}", scene.image_prompts[0][:60])
    console.print(table)


async def show_probe(config: Config, media_file: str) -> None:
    info = await ProcessRunner(config.video).probe(media_file)
    console.print(f"[cyan]{media_file}[/cyan]: {info.width}x{info.height}, {info.duration_seconds:.2f}s")


def main():
    """Main entry point"""
    import argparse

    parser = argparse.ArgumentParser(description="reelcast video composition")
    parser.add_argument("--mode", choices=["run", "create", "align", "probe"],
                        default="run", help="Operation mode")
    parser.add_argument("--project-id", type=str, help="Project to compose (run mode)")
    parser.add_argument("--project-file", type=str, help="Project JSON with scenes (create mode)")
    parser.add_argument("--transcript", type=str, help="Transcript JSON (align mode)")
    parser.add_argument("--prompts", type=str, help="JSON list of image prompts (align mode)")
    parser.add_argument("--media", type=str, help="Media file to inspect (probe mode)")
    parser.add_argument("--config", type=str, default="configs/config.yaml",
                        help="Path to configuration file")
    parser.add_argument("--store", type=str, default=None,
                        help="Project store JSON (default: <data>/projects.json)")

    args = parser.parse_args()

    try:
        if args.mode == "align":
            if not args.transcript or not args.prompts:
                parser.error("align mode needs --transcript and --prompts")
            show_alignment(args.transcript, args.prompts)
        elif args.mode == "probe":
            if not args.media:
                parser.error("probe mode needs --media")
            asyncio.run(show_probe(Config.load(args.config), args.media))
        elif args.mode == "create":
            if not args.project_file:
                parser.error("create mode needs --project-file")
            ReelcastSystem(args.config, args.store).create_project(args.project_file)
        else:
            if not args.project_id:
                parser.error("run mode needs --project-id")
            asyncio.run(ReelcastSystem(args.config, args.store).run_project(args.project_id))

    except KeyboardInterrupt:
        console.print("\n[yellow]Stopped by user[/yellow]")
    except ReelcastError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)
    except Exception as e:
        console.print(f"[red]Fatal error:[/red] {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
