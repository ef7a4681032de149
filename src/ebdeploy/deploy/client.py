"""Control-plane client facade over Elastic Beanstalk and S3.

The orchestrator, strategies and pollers depend on the ``ControlPlane``
protocol only. ``Boto3ControlPlane`` is the production implementation: one
instance is built per run from the resolved credentials and region, then
passed explicitly to every component that needs it.

boto3 is synchronous, so each call runs in a worker thread through
``asyncio.to_thread``; the caller still awaits the calls one at a time.
Any ``botocore`` failure is surfaced as ``RemoteOperationError`` with the
original exception as its cause. Nothing here retries.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any, Protocol

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ebdeploy.core.errors import ConfigurationError, RemoteOperationError
from ebdeploy.core.logging import get_logger
from ebdeploy.deploy.config import AwsCredentials
from ebdeploy.deploy.models import (
    CreateApplicationVersionRequest,
    CreateEnvironmentRequest,
    EnvironmentSnapshot,
    PutObjectRequest,
)

logger = get_logger(__name__)


class ControlPlane(Protocol):
    """Async operations the deployment needs from the platform."""

    async def describe_applications(self, application_names: list[str]) -> list[str]: ...

    async def describe_environments(
        self,
        application_name: str,
        *,
        environment_names: list[str] | None = None,
        version_label: str | None = None,
        include_deleted: bool = False,
    ) -> list[EnvironmentSnapshot]: ...

    async def put_object(self, request: PutObjectRequest) -> None: ...

    async def create_application_version(self, request: CreateApplicationVersionRequest) -> None: ...

    async def update_environment(
        self, environment_name: str, version_label: str, description: str
    ) -> None: ...

    async def create_configuration_template(
        self, application_name: str, environment_id: str, template_name: str
    ) -> str: ...

    async def create_environment(self, request: CreateEnvironmentRequest) -> EnvironmentSnapshot: ...

    async def swap_environment_cnames(
        self, source_environment_name: str, destination_environment_name: str
    ) -> None: ...


class Boto3ControlPlane:
    """ControlPlane backed by boto3 ``elasticbeanstalk`` and ``s3`` clients.

    Parameters
    ----------
    region
        AWS region the application lives in.
    credentials
        Resolved access key pair; None uses the default boto3 chain.
    session
        Pre-built ``boto3.session.Session`` (tests inject stubbed ones).
    """

    def __init__(
        self,
        region: str,
        credentials: AwsCredentials | None = None,
        session: boto3.session.Session | None = None,
    ) -> None:
        self.region = region
        try:
            if session is None:
                kwargs: dict[str, Any] = {"region_name": region}
                if credentials is not None:
                    kwargs["aws_access_key_id"] = credentials.access_key_id
                    kwargs["aws_secret_access_key"] = credentials.secret_access_key.get_secret_value()
                session = boto3.session.Session(**kwargs)
            self._eb = session.client("elasticbeanstalk", region_name=region)
            self._s3 = session.client("s3", region_name=region)
        except BotoCoreError as exc:
            raise ConfigurationError(f"Cannot create AWS clients for region '{region}': {exc}", cause=exc) from exc

    async def _call(self, operation: str, fn: Callable[..., dict[str, Any]], **params: Any) -> dict[str, Any]:
        logger.debug("control_plane.call", operation=operation)
        try:
            response = await asyncio.to_thread(fn, **params)
        except (ClientError, BotoCoreError) as exc:
            raise RemoteOperationError(operation, cause=exc) from exc
        logger.debug("control_plane.response", operation=operation, response=_without_metadata(response))
        return response

    async def describe_applications(self, application_names: list[str]) -> list[str]:
        data = await self._call(
            "DescribeApplications",
            self._eb.describe_applications,
            ApplicationNames=application_names,
        )
        return [app["ApplicationName"] for app in data.get("Applications", [])]

    async def describe_environments(
        self,
        application_name: str,
        *,
        environment_names: list[str] | None = None,
        version_label: str | None = None,
        include_deleted: bool = False,
    ) -> list[EnvironmentSnapshot]:
        params: dict[str, Any] = {
            "ApplicationName": application_name,
            "IncludeDeleted": include_deleted,
        }
        if environment_names:
            params["EnvironmentNames"] = environment_names
        if version_label:
            params["VersionLabel"] = version_label
        data = await self._call("DescribeEnvironments", self._eb.describe_environments, **params)
        return [EnvironmentSnapshot.from_api(env) for env in data.get("Environments", [])]

    async def put_object(self, request: PutObjectRequest) -> None:
        await self._call("PutObject", self._s3.put_object, **request.to_api())

    async def create_application_version(self, request: CreateApplicationVersionRequest) -> None:
        await self._call(
            "CreateApplicationVersion",
            self._eb.create_application_version,
            **request.to_api(),
        )

    async def update_environment(
        self, environment_name: str, version_label: str, description: str
    ) -> None:
        params = {"EnvironmentName": environment_name, "VersionLabel": version_label}
        if description:
            params["Description"] = description
        await self._call("UpdateEnvironment", self._eb.update_environment, **params)

    async def create_configuration_template(
        self, application_name: str, environment_id: str, template_name: str
    ) -> str:
        data = await self._call(
            "CreateConfigurationTemplate",
            self._eb.create_configuration_template,
            ApplicationName=application_name,
            EnvironmentId=environment_id,
            TemplateName=template_name,
        )
        return data.get("TemplateName", template_name)

    async def create_environment(self, request: CreateEnvironmentRequest) -> EnvironmentSnapshot:
        data = await self._call("CreateEnvironment", self._eb.create_environment, **request.to_api())
        return EnvironmentSnapshot.from_api(data)

    async def swap_environment_cnames(
        self, source_environment_name: str, destination_environment_name: str
    ) -> None:
        await self._call(
            "SwapEnvironmentCNAMEs",
            self._eb.swap_environment_cnames,
            SourceEnvironmentName=source_environment_name,
            DestinationEnvironmentName=destination_environment_name,
        )


def _without_metadata(response: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in response.items() if k != "ResponseMetadata"}
