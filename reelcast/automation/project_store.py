"""
Project Store

JSON-file persistence for projects and user profiles. Every mutation is a
whole-record update keyed by id; the status field doubles as the single-writer
lock for composition runs.
"""

import json
import logging
from pathlib import Path
from threading import Lock
from typing import Dict, List, Union

from ..utils.errors import ProjectBusyError, ProjectNotFoundError
from .automation_models import Project, ProjectStatus, UserProfile
from .ports import IProjectStore


class JsonProjectStore(IProjectStore):
    """Projects and users kept in one JSON document on disk"""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self.logger = logging.getLogger(__name__)
        self.state_lock = Lock()

        self.projects: Dict[str, Project] = {}
        self.users: Dict[str, UserProfile] = {}
        self._load()

    def get_project(self, project_id: str) -> Project:
        with self.state_lock:
            project = self.projects.get(str(project_id))
            if project is None:
                raise ProjectNotFoundError(f"Project {project_id} not found")
            return project.model_copy(deep=True)

    def get_user(self, user_id: str) -> UserProfile:
        with self.state_lock:
            user = self.users.get(str(user_id))
            if user is None:
                raise ProjectNotFoundError(f"User {user_id} not found")
            return user.model_copy(deep=True)

    def list_projects(self) -> List[Project]:
        with self.state_lock:
            return [p.model_copy(deep=True) for p in self.projects.values()]

    def create_project(self, project: Project) -> Project:
        with self.state_lock:
            if project.id in self.projects:
                raise ValueError(f"Project {project.id} already exists")
            self.projects[project.id] = project.model_copy(deep=True)
            self._save()
        self.logger.info(f"Created project {project.id} ({len(project.image_prompts)} image prompts)")
        return project

    def save_project(self, project: Project) -> Project:
        with self.state_lock:
            if project.id not in self.projects:
                raise ProjectNotFoundError(f"Project {project.id} not found")
            project.touch()
            self.projects[project.id] = project.model_copy(deep=True)
            self._save()
        return project

    def save_user(self, user: UserProfile) -> UserProfile:
        with self.state_lock:
            self.users[user.id] = user.model_copy(deep=True)
            self._save()
        return user

    def begin_run(self, project_id: str) -> Project:
        """Move a project to processing unless another run holds it"""
        with self.state_lock:
            project = self.projects.get(str(project_id))
            if project is None:
                raise ProjectNotFoundError(f"Project {project_id} not found")
            if project.status == ProjectStatus.PROCESSING:
                raise ProjectBusyError(f"Project {project_id} is already processing")

            project.status = ProjectStatus.PROCESSING
            project.error_message = None
            project.touch()
            self._save()
            self.logger.info(f"Project {project_id} entered processing")
            return project.model_copy(deep=True)

    def _load(self) -> None:
        """Load projects and users from disk"""
        if not self.path.exists():
            return

        with open(self.path, encoding='utf-8') as f:
            data = json.load(f)

        self.projects = {p['id']: Project(**p) for p in data.get('projects', [])}
        self.users = {u['id']: UserProfile(**u) for u in data.get('users', [])}
        self.logger.info(f"Loaded {len(self.projects)} projects and {len(self.users)} users")

    def _save(self) -> None:
        """Write the whole store; caller holds state_lock"""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + '.tmp')

        with open(tmp_path, 'w', encoding='utf-8') as f:
            json.dump({
                'projects': [p.model_dump(mode='json') for p in self.projects.values()],
                'users': [u.model_dump(mode='json') for u in self.users.values()],
            }, f, indent=2)
        tmp_path.replace(self.path)
