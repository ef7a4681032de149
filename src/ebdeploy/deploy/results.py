"""Result models for deployment runs.

``DeploymentResult`` is the structured report of one run: which stages
ran, how long each took, which environment ended up serving the CNAME and,
on failure, the first error. The CLI renders it as a rich table or dumps it
with ``model_dump_json()``; programmatic callers check ``succeeded``.

Key Concepts:
    OverallStatus: PENDING → RUNNING → PASSED | FAILED.
    StageResult: one orchestrator stage (passed, failed or skipped).
    DeploymentResult: aggregates stages; ``mark_complete()`` finalises
        timestamps, duration, status and summary.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field

from ebdeploy.core.errors import error_to_dict


class OverallStatus(str, Enum):
    """Overall status of a deployment run."""

    PASSED = "PASSED"
    FAILED = "FAILED"
    RUNNING = "RUNNING"
    PENDING = "PENDING"


class StageResult(BaseModel):
    """Outcome of one orchestrator stage."""

    name: str
    status: Literal["passed", "failed", "skipped"] = "skipped"
    started_at: str | None = None
    duration_seconds: float = 0.0
    error: dict[str, Any] | None = None


class DeploymentResult(BaseModel):
    """Result of one deployment run."""

    run_id: str
    application: str | None = None
    environment_cname: str | None = None
    region: str | None = None
    deploy_type: str | None = None
    version_label: str | None = None
    started_at: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    completed_at: str | None = None
    duration_seconds: float = 0.0
    stages: list[StageResult] = Field(default_factory=list)
    environment_name: str | None = None
    new_environment_name: str | None = None
    template_name: str | None = None
    overall_status: OverallStatus = OverallStatus.PENDING
    error: dict[str, Any] | None = None
    summary: str = ""

    @property
    def succeeded(self) -> bool:
        return self.overall_status == OverallStatus.PASSED

    def stage(self, name: str) -> StageResult | None:
        for stage in self.stages:
            if stage.name == name:
                return stage
        return None

    def mark_complete(self, error: Exception | None = None) -> None:
        """Mark the run complete, compute duration, status and summary."""
        self.completed_at = datetime.now(UTC).isoformat()
        start = datetime.fromisoformat(self.started_at)
        end = datetime.fromisoformat(self.completed_at)
        self.duration_seconds = (end - start).total_seconds()

        passed = sum(1 for s in self.stages if s.status == "passed")
        total = len(self.stages)
        if error is None:
            self.overall_status = OverallStatus.PASSED
            self.summary = f"{passed}/{total} stages passed"
        else:
            self.overall_status = OverallStatus.FAILED
            self.error = error_to_dict(error)
            self.summary = f"{passed}/{total} stages passed, failed: {error}"
