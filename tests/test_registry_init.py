import sys
import types

import pytest

from taskq.core.exceptions import ValidationError
from taskq.queue.job import JobDefinition, JobResult
from taskq.queue.registry_init import load_job_definitions


async def send_email(input):
    return JobResult.success()


async def build_report(input):
    return None


jobs = [
    JobDefinition(name="send_email", handle=send_email),
    JobDefinition(name="build_report", handle=build_report, max_tries=1),
]


def install_module(monkeypatch, name: str, **attributes) -> str:
    module = types.ModuleType(name)
    for key, value in attributes.items():
        setattr(module, key, value)
    monkeypatch.setitem(sys.modules, name, module)
    return name


def test_loads_jobs_in_declaration_order():
    definitions = load_job_definitions([__name__])

    assert [d.name for d in definitions] == ["send_email", "build_report"]
    assert definitions[1].max_tries == 1


def test_no_modules_loads_nothing():
    assert load_job_definitions([]) == []


def test_concatenates_modules(monkeypatch):
    extra = install_module(
        monkeypatch,
        "taskq_extra_jobs",
        jobs=[JobDefinition(name="cleanup", handle=build_report)],
    )

    definitions = load_job_definitions([__name__, extra])

    assert [d.name for d in definitions] == ["send_email", "build_report", "cleanup"]


def test_module_without_jobs(monkeypatch):
    path = install_module(monkeypatch, "taskq_no_jobs")

    with pytest.raises(ValidationError, match="Module taskq_no_jobs has no 'jobs' attribute"):
        load_job_definitions([path])


def test_module_with_non_job_entry(monkeypatch):
    path = install_module(monkeypatch, "taskq_bad_jobs", jobs=[send_email])

    with pytest.raises(ValidationError, match="exposes a non-job entry"):
        load_job_definitions([path])


def test_unknown_module():
    with pytest.raises(ModuleNotFoundError):
        load_job_definitions(["taskq_does_not_exist"])
