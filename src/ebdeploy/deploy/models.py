"""Snapshots of Elastic Beanstalk entities and typed control-plane requests.

The orchestrator never constructs an environment; it reads
``EnvironmentSnapshot`` values built from ``DescribeEnvironments`` /
``CreateEnvironment`` responses and threads the relevant subset (id, name,
CNAME) from step to step.

Request dataclasses render their own wire payloads (``to_api()``), so the
upper-camel casing the AWS APIs expect lives in one explicit place.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class EnvironmentStatus(str, Enum):
    """Lifecycle status reported by Elastic Beanstalk."""

    LAUNCHING = "Launching"
    UPDATING = "Updating"
    READY = "Ready"
    TERMINATING = "Terminating"
    TERMINATED = "Terminated"


class EnvironmentHealth(str, Enum):
    """Health color reported by Elastic Beanstalk."""

    GREEN = "Green"
    YELLOW = "Yellow"
    RED = "Red"
    GREY = "Grey"


@dataclass(frozen=True)
class EnvironmentSnapshot:
    """Read-only view of one environment at one point in time.

    ``status`` and ``health`` are kept as the raw strings the API returned
    (the API may add values); compare them against the enums above.
    """

    environment_id: str
    name: str
    cname: str
    application_name: str
    status: str = ""
    health: str = ""
    version_label: str | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> EnvironmentSnapshot:
        return cls(
            environment_id=data.get("EnvironmentId", ""),
            name=data.get("EnvironmentName", ""),
            cname=data.get("CNAME", ""),
            application_name=data.get("ApplicationName", ""),
            status=data.get("Status", ""),
            health=data.get("Health", ""),
            version_label=data.get("VersionLabel"),
        )

    @property
    def is_ready(self) -> bool:
        return self.status == EnvironmentStatus.READY.value

    @property
    def is_green(self) -> bool:
        return self.health == EnvironmentHealth.GREEN.value


@dataclass(frozen=True)
class PutObjectRequest:
    """Upload of the source bundle to S3."""

    bucket: str
    key: str
    body: bytes

    def to_api(self) -> dict[str, Any]:
        return {"Bucket": self.bucket, "Key": self.key, "Body": self.body}


@dataclass(frozen=True)
class CreateApplicationVersionRequest:
    application_name: str
    version_label: str
    description: str
    s3_bucket: str
    s3_key: str

    def to_api(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "ApplicationName": self.application_name,
            "VersionLabel": self.version_label,
            "SourceBundle": {"S3Bucket": self.s3_bucket, "S3Key": self.s3_key},
        }
        if self.description:
            payload["Description"] = self.description
        return payload


@dataclass(frozen=True)
class CreateEnvironmentRequest:
    application_name: str
    environment_name: str
    version_label: str
    template_name: str

    def to_api(self) -> dict[str, Any]:
        return {
            "ApplicationName": self.application_name,
            "EnvironmentName": self.environment_name,
            "VersionLabel": self.version_label,
            "TemplateName": self.template_name,
        }
