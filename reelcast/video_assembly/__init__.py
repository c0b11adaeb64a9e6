"""
Video Assembly Pipeline

This module handles rendering with ffmpeg:
- Filter graph descriptions for slideshow and merge tiers
- Process running and media inspection
- Tiered fallback between graph styles
"""

from .video_assembler import VideoAssembler
from .filter_graph import FilterGraphBuilder
from .process_runner import ProcessRunner
from .video_models import GraphDescription, GraphStyle, MergeStyle, TieredOutcome

__all__ = [
    'VideoAssembler',
    'FilterGraphBuilder',
    'ProcessRunner',
    'GraphDescription',
    'GraphStyle',
    'MergeStyle',
    'TieredOutcome'
]
