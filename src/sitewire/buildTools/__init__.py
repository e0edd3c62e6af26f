"""Project build tools public API."""

from .build import AppBuildOptions, AppBuildError, create_app
from .task import Task, TaskRunner, register_task

__all__ = [
    "AppBuildOptions",
    "AppBuildError",
    "create_app",
    "Task",
    "TaskRunner",
    "register_task",
]
