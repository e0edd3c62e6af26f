"""
Tasks run from the command line.

    sitewire task list
    sitewire task run myproject.tasks:Cleanup

A task is a Task subclass. Tasks are registered with register_task() or
through the "sitewire.tasks" entry point group of an installed package;
an unregistered task can still be run by its import path.
"""

from __future__ import annotations

from importlib.metadata import entry_points
from typing import TextIO
import sys
import traceback

from ..core.log import get_logger
from ..dispatch.runner import import_string


ENTRY_POINT_GROUP = "sitewire.tasks"


class Task:
    """Base class for command line tasks."""

    description: str = ""

    def execute(self) -> None:
        raise NotImplementedError


def task_name(task: type) -> str:
    return f"{task.__module__}:{task.__qualname__}"


class TaskRunner:
    """
    Registry of tasks, name -> (import path or class, description).
    """

    def __init__(self) -> None:
        self.tasks: dict[str, tuple[str | type, str]] = {}
        self.logger = get_logger(self)
        self._discovered = False

    def register(self, task: str | type, description: str | None = None, name: str | None = None) -> str:
        if isinstance(task, str):
            name = name or task
        else:
            name = name or task_name(task)
            if description is None:
                description = task.description
        self.tasks[name] = (task, description or "")
        return name

    def discover(self) -> None:
        """Register the tasks of installed packages, once."""
        if self._discovered:
            return
        self._discovered = True
        for ep in entry_points(group=ENTRY_POINT_GROUP):
            self.register(ep.value, name=ep.name)

    def list_tasks(self, out: TextIO | None = None) -> None:
        out = out or sys.stdout
        self.discover()
        if not self.tasks:
            print("No tasks available", file=out)
            return

        print("Listing available tasks:", file=out)
        for name, (_, description) in sorted(self.tasks.items()):
            print(f"- {name:<30} {description}".rstrip(), file=out)

    def resolve(self, name: str) -> type:
        self.discover()
        target = self.tasks[name][0] if name in self.tasks else name
        return import_string(target) if isinstance(target, str) else target

    def run(self, name: str, err: TextIO | None = None) -> bool:
        """Run one task; failures are reported on err and give False."""
        err = err or sys.stderr
        try:
            task = self.resolve(name)
        except (ImportError, AttributeError):
            print(f"Error: task does not exist: {name}", file=err)
            return False

        if not (isinstance(task, type) and issubclass(task, Task)):
            print(f"Error: invalid task: {name}", file=err)
            return False

        self.logger.info("Running task %s", name)
        try:
            task().execute()
        except Exception as e:
            print(f"Error: error while running task: {name}", file=err)
            print(f"Exception: {type(e).__name__}", file=err)
            print(f"Message: {e}", file=err)
            traceback.print_exc(file=err)
            return False
        return True


default_runner = TaskRunner()


def register_task(task: str | type, description: str | None = None, name: str | None = None) -> str:
    return default_runner.register(task, description, name)
