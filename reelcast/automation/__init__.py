"""
Automation System

Runs composition of a project end to end and keeps project records.
"""

from .orchestrator import CompositionOrchestrator
from .project_store import JsonProjectStore
from .automation_models import Project, ProjectStatus, RunOutcome, UserProfile

__all__ = [
    'CompositionOrchestrator',
    'JsonProjectStore',
    'Project',
    'ProjectStatus',
    'RunOutcome',
    'UserProfile'
]
