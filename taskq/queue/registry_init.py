"""
Loads job definitions from the modules named in settings.
"""

import importlib
import logging
from collections.abc import Iterable
from typing import Any

from taskq.core.exceptions import ValidationError
from taskq.queue.job import JobDefinition

logger = logging.getLogger(__name__)


def load_job_definitions(module_paths: Iterable[str]) -> list[JobDefinition[Any]]:
    """Import each module and collect the definitions in its ``jobs`` list."""
    definitions: list[JobDefinition[Any]] = []

    for path in module_paths:
        module = importlib.import_module(path)
        jobs = getattr(module, "jobs", None)
        if jobs is None:
            raise ValidationError(
                f"Module {path} has no 'jobs' attribute", {"module": path}
            )

        for job in jobs:
            if not isinstance(job, JobDefinition):
                raise ValidationError(
                    f"Module {path} exposes a non-job entry: {job!r}",
                    {"module": path},
                )
            definitions.append(job)

    logger.info(
        "Job definitions loaded",
        extra={"job_names": [d.name for d in definitions]},
    )
    return definitions
