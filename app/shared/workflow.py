"""Step log for multi-step writes that have no spanning transaction.

Required steps propagate their errors and abort the request. Best-effort
steps run inside a backend savepoint: a failure is logged, recorded and
reported as a warning, and every step committed before it stays in place.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import asdict, dataclass
from typing import Any, TypeVar

from app.core.enums import WorkflowStepStatusEnum
from app.core.metrics import record_workflow_step_failure
from app.core.persistence import PersistenceBackend

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(slots=True)
class WorkflowStep:
    name: str
    status: WorkflowStepStatusEnum
    detail: str | None = None


class WorkflowLog:
    """Ordered record of the steps taken by one operation."""

    def __init__(self, name: str, backend: PersistenceBackend) -> None:
        self.name = name
        self.backend = backend
        self.steps: list[WorkflowStep] = []
        self.warnings: list[str] = []

    async def run(self, step: str, action: Callable[[], Awaitable[T]]) -> T:
        """Run a required step."""
        try:
            result = await action()
        except Exception as exc:
            self.steps.append(WorkflowStep(step, WorkflowStepStatusEnum.FAILED, str(exc)))
            raise
        self.steps.append(WorkflowStep(step, WorkflowStepStatusEnum.SUCCEEDED))
        return result

    async def attempt(
        self,
        step: str,
        action: Callable[[], Awaitable[T]],
        *,
        failure_notice: str | None = None,
    ) -> T | None:
        """Run a best-effort step; return None when it fails."""
        try:
            async with self.backend.savepoint():
                result = await action()
        except Exception as exc:
            logger.exception("Workflow %s: step %s failed", self.name, step)
            record_workflow_step_failure(self.name, step)
            self.steps.append(WorkflowStep(step, WorkflowStepStatusEnum.FAILED, str(exc)))
            if failure_notice:
                self.warnings.append(failure_notice)
            return None
        self.steps.append(WorkflowStep(step, WorkflowStepStatusEnum.SUCCEEDED))
        return result

    def skip(self, step: str, reason: str, *, notice: str | None = None) -> None:
        """Record a step that was not attempted."""
        logger.warning("Workflow %s: step %s skipped (%s)", self.name, step, reason)
        self.steps.append(WorkflowStep(step, WorkflowStepStatusEnum.SKIPPED, reason))
        if notice:
            self.warnings.append(notice)

    def warn(self, message: str) -> None:
        """Surface a notice without recording a step."""
        logger.warning("Workflow %s: %s", self.name, message)
        self.warnings.append(message)

    @property
    def has_failures(self) -> bool:
        return any(step.status == WorkflowStepStatusEnum.FAILED for step in self.steps)

    def as_payload(self) -> dict[str, Any]:
        """Serialize the log for the audit trail."""
        return {
            "workflow": self.name,
            "steps": [
                {**asdict(step), "status": str(step.status)}
                for step in self.steps
            ],
            "warnings": list(self.warnings),
        }
