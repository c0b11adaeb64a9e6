"""Scene timing alignment

Maps word-level timestamps onto a fixed number of visual scenes, one scene per
image prompt. Boundaries snap to word ends so that no scene claims a span
without narration behind it; only the final scene's end is pinned to the total
audio duration.
"""

from __future__ import annotations

import logging
from typing import List, Sequence

from .content_models import TimedScene, WordTimestamp


logger = logging.getLogger(__name__)


def align(words: Sequence[WordTimestamp], prompts: Sequence[str],
          audio_duration_seconds: float) -> List[TimedScene]:
    """Group words into len(prompts) contiguous scenes.

    Each scene aims for total_duration / len(prompts) milliseconds. Starting at
    the current word, the window keeps taking the next word while that word
    starts before the target boundary, so a word is never split and ties go to
    including one more word. A scene stops early rather than consume words the
    scenes after it need, so short transcripts still give every scene narration.
    If the words run out first, the remaining time is divided evenly across the
    prompts still unassigned. Scene bounds never pass the audio duration, even
    when the last words are timed after it.

    Returns an empty list when either input is empty.
    """
    if not words or not prompts:
        return []

    total_ms = audio_duration_seconds * 1000.0
    target_per_scene = total_ms / len(prompts)

    scenes: List[TimedScene] = []
    scene_start: float = words[0].start
    word_index = 0

    while word_index < len(words) and len(scenes) < len(prompts):
        target_end = scene_start + target_per_scene
        scenes_after = len(prompts) - len(scenes) - 1

        last = word_index
        # Never take a word a later scene needs for its own first word
        while (last + 1 < len(words)
               and words[last + 1].start < target_end
               and len(words) - (last + 2) >= scenes_after):
            last += 1

        scene_end = float(words[last].end)
        scenes.append(TimedScene(
            start=scene_start,
            end=scene_end,
            image_prompts=[prompts[len(scenes)]],
        ))
        scene_start = scene_end
        word_index = last + 1

    remaining_prompts = len(prompts) - len(scenes)
    if remaining_prompts > 0:
        last_end = scenes[-1].end
        remaining_ms = max(0.0, total_ms - last_end)
        per_scene = remaining_ms / remaining_prompts
        logger.info(
            f"Word timings exhausted after {len(scenes)} scenes; "
            f"spreading {remaining_ms:.0f}ms over {remaining_prompts} remaining prompts"
        )
        for i in range(remaining_prompts):
            start = last_end + i * per_scene
            scenes.append(TimedScene(
                start=start,
                end=start + per_scene,
                image_prompts=[prompts[len(scenes)]],
            ))

    # Word timings can overrun a rounded audio duration; no scene outlives the audio
    for scene in scenes:
        scene.start = min(scene.start, total_ms)
        scene.end = min(scene.end, total_ms)

    # The last scene always runs to the end of the audio
    scenes[-1].end = max(scenes[-1].start, total_ms)
    return scenes


def attach_image_urls(scenes: List[TimedScene], image_urls: Sequence[str]) -> List[TimedScene]:
    """Bind generated image URLs to scenes by position"""
    for i, scene in enumerate(scenes):
        if i < len(image_urls):
            scene.image_urls = [image_urls[i]]
    return scenes


def scene_durations(scenes: Sequence[TimedScene]) -> List[float]:
    """Per-scene durations in seconds"""
    return [scene.duration_seconds for scene in scenes]
