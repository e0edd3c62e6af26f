from __future__ import annotations

import io

import pytest

from sitewire.__main__ import main
from sitewire.buildTools import task as task_module
from sitewire.buildTools.task import Task, TaskRunner, task_name


class Cleanup(Task):
    description = "Remove stale files"
    runs = 0

    def execute(self) -> None:
        Cleanup.runs += 1


class Broken(Task):
    def execute(self) -> None:
        raise RuntimeError("disk full")


class NotATask:
    pass


@pytest.fixture
def runner(monkeypatch) -> TaskRunner:
    runner = TaskRunner()
    runner._discovered = True
    monkeypatch.setattr(task_module, "default_runner", runner)
    Cleanup.runs = 0
    return runner


def test_register_uses_class_path_and_description(runner: TaskRunner):
    name = runner.register(Cleanup)
    assert name == task_name(Cleanup)
    assert name.endswith(":Cleanup")
    assert runner.tasks[name] == (Cleanup, "Remove stale files")


def test_list_tasks(runner: TaskRunner):
    out = io.StringIO()
    runner.list_tasks(out)
    assert out.getvalue() == "No tasks available\n"

    runner.register(Cleanup, name="cleanup")
    out = io.StringIO()
    runner.list_tasks(out)
    lines = out.getvalue().splitlines()
    assert lines[0] == "Listing available tasks:"
    assert lines[1].startswith("- cleanup")
    assert lines[1].endswith("Remove stale files")


def test_run_registered_task(runner: TaskRunner):
    runner.register(Cleanup, name="cleanup")
    assert runner.run("cleanup") is True
    assert Cleanup.runs == 1


def test_run_reports_failures(runner: TaskRunner):
    runner.register(Broken, name="broken")
    runner.register(NotATask, name="plain")

    err = io.StringIO()
    assert runner.run("broken", err) is False
    assert "Error: error while running task: broken" in err.getvalue()
    assert "Exception: RuntimeError" in err.getvalue()
    assert "Message: disk full" in err.getvalue()

    err = io.StringIO()
    assert runner.run("plain", err) is False
    assert err.getvalue() == "Error: invalid task: plain\n"

    err = io.StringIO()
    assert runner.run("no.such.module:Task", err) is False
    assert err.getvalue() == "Error: task does not exist: no.such.module:Task\n"


def test_run_by_import_path(runner: TaskRunner):
    assert runner.run("sitewire.buildTools.task:Task", io.StringIO()) is False
    assert runner.resolve("sitewire.buildTools.task:TaskRunner") is TaskRunner


def test_cli_task_commands(runner: TaskRunner, capsys):
    runner.register(Cleanup, name="cleanup")
    runner.register(Broken, name="broken")

    assert main(["task", "list"]) == 0
    out = capsys.readouterr().out
    assert "- cleanup" in out
    assert "- broken" in out

    assert main(["task", "run", "cleanup"]) == 0
    assert Cleanup.runs == 1

    assert main(["task", "run", "broken"]) == 1
    assert "disk full" in capsys.readouterr().err
