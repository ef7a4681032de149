"""Deployment orchestrator.

Runs one deployment as a strict linear pipeline of Result-returning
stages. A stage runs only when every earlier stage succeeded; the first
failure skips the rest and is reported to the host.

    ::

        resolve_request()            (preconditions, no remote calls)
              │
        check_application ──▶ resolve_environment ──▶ upload_bundle
              ──▶ create_version ──▶ deploy (inPlace | swapToNew)
              │
        completion: done(None) on success, done(first_error) on failure

Example::

    from ebdeploy.deploy import run_deploy_task

    result = await run_deploy_task({
        "applicationName": "my-app",
        "environmentCNAME": "my-app.us-east-1.elasticbeanstalk.com",
        "region": "us-east-1",
        "sourceBundle": "dist/my-app-1.2.0.zip",
        "healthPage": "/health",
    })
    assert result.succeeded
"""

from __future__ import annotations

import asyncio
import time
import uuid
from collections.abc import Awaitable, Callable, Iterable, Mapping
from datetime import UTC, datetime
from typing import Any

import httpx

from ebdeploy.core.errors import (
    ApplicationNotFoundError,
    ConfigurationError,
    DeployError,
    EnvironmentNotFoundError,
    SourceBundleError,
    error_to_dict,
)
from ebdeploy.core.logging import LogContext, get_logger
from ebdeploy.core.result import Ok, Result, try_result_async
from ebdeploy.core.settings import AwsEnvironmentCredentials
from ebdeploy.deploy.client import Boto3ControlPlane, ControlPlane
from ebdeploy.deploy.config import DeploymentRequest, resolve_request
from ebdeploy.deploy.health import HealthProber
from ebdeploy.deploy.models import (
    CreateApplicationVersionRequest,
    EnvironmentSnapshot,
    PutObjectRequest,
)
from ebdeploy.deploy.polling import Clock, Sleep
from ebdeploy.deploy.results import DeploymentResult, OverallStatus, StageResult
from ebdeploy.deploy.strategies import StrategyOutcome, get_strategy

logger = get_logger(__name__)

STAGES = (
    "check_application",
    "resolve_environment",
    "upload_bundle",
    "create_version",
    "deploy",
)

Done = Callable[[Exception | None], None]
ClientFactory = Callable[[DeploymentRequest], ControlPlane]


def default_client_factory(request: DeploymentRequest) -> ControlPlane:
    """Build the per-run boto3 facade from the resolved request."""
    return Boto3ControlPlane(request.region, request.credentials)


def find_environment_by_cname(
    environments: Iterable[EnvironmentSnapshot], cname: str
) -> EnvironmentSnapshot | None:
    """First environment whose CNAME equals ``cname`` exactly."""
    for environment in environments:
        if environment.cname == cname:
            return environment
    return None


def _new_run_id() -> str:
    return uuid.uuid4().hex[:12]


class DeploymentOrchestrator:
    """Sequences one deployment run against a control-plane facade.

    Parameters
    ----------
    request
        Validated request (see ``resolve_request()``).
    client
        Control-plane facade built for this run.
    http_client
        Optional ``httpx.AsyncClient`` shared by every health probe.
    sleep, clock
        Delay and monotonic clock used by the pollers (tests inject fakes).
    """

    def __init__(
        self,
        request: DeploymentRequest,
        client: ControlPlane,
        *,
        http_client: httpx.AsyncClient | None = None,
        sleep: Sleep = asyncio.sleep,
        clock: Clock = time.monotonic,
        run_id: str | None = None,
    ) -> None:
        self.request = request
        self.client = client
        self.prober = HealthProber.from_request(
            request, http_client=http_client, sleep=sleep, clock=clock
        )
        self._sleep = sleep
        self._clock = clock
        self.result = DeploymentResult(
            run_id=run_id or _new_run_id(),
            application=request.application_name,
            environment_cname=request.environment_cname,
            region=request.region,
            deploy_type=request.deploy_type.value,
            version_label=request.version_label,
            stages=[StageResult(name=name) for name in STAGES],
        )

    async def run(self, done: Done | None = None) -> DeploymentResult:
        """Execute every stage and signal completion exactly once."""
        result = self.result
        result.overall_status = OverallStatus.RUNNING

        async with LogContext(run_id=result.run_id, application=self.request.application_name):
            logger.info("deploy.operating_in_region", region=self.request.region)

            outcome: Result[Any] = Ok(None)
            outcome = await outcome.and_then_async(self._stage("check_application", self._check_application))
            outcome = await outcome.and_then_async(self._stage("resolve_environment", self._resolve_environment))
            outcome = await outcome.and_then_async(self._stage("upload_bundle", self._upload_bundle))
            outcome = await outcome.and_then_async(self._stage("create_version", self._create_version))
            outcome = await outcome.and_then_async(self._stage("deploy", self._deploy))

            error = outcome.error if outcome.is_err() else None
            result.mark_complete(error)
            if error is None:
                logger.info("deploy.succeeded", summary=result.summary, duration=result.duration_seconds)
            else:
                logger.error("deploy.failed", error=error_to_dict(error))

        if done is not None:
            done(error)
        return result

    # ------------------------------------------------------------------
    # Stage plumbing
    # ------------------------------------------------------------------

    def _stage(
        self, name: str, fn: Callable[[Any], Awaitable[Any]]
    ) -> Callable[[Any], Awaitable[Result[Any]]]:
        stage = self.result.stage(name)

        async def run_stage(value: Any) -> Result[Any]:
            stage.started_at = datetime.now(UTC).isoformat()
            start = time.monotonic()
            logger.info("stage.started", stage=name)

            outcome = await try_result_async(lambda: fn(value))

            stage.duration_seconds = time.monotonic() - start
            if outcome.is_ok():
                stage.status = "passed"
                logger.info("stage.completed", stage=name)
            else:
                stage.status = "failed"
                if isinstance(outcome.error, DeployError):
                    outcome.error.with_context(stage=name, run_id=self.result.run_id)
                stage.error = error_to_dict(outcome.error)
                logger.error("stage.failed", stage=name, error=str(outcome.error))
            return outcome

        return run_stage

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    async def _check_application(self, _: None) -> None:
        application = self.request.application_name
        names = await self.client.describe_applications([application])
        if application not in names:
            raise ApplicationNotFoundError(application)

    async def _resolve_environment(self, _: None) -> EnvironmentSnapshot:
        cname = self.request.environment_cname
        environments = await self.client.describe_environments(
            self.request.application_name, include_deleted=False
        )
        logger.debug("environments.listed", environments=[e.cname for e in environments])

        environment = find_environment_by_cname(environments, cname)
        if environment is None:
            raise EnvironmentNotFoundError(cname).with_context(
                application=self.request.application_name
            )
        self.result.environment_name = environment.name
        return environment

    async def _upload_bundle(self, environment: EnvironmentSnapshot) -> EnvironmentSnapshot:
        request = self.request
        try:
            body = request.source_bundle.read_bytes()
        except OSError as exc:
            raise SourceBundleError(f'Cannot read "sourceBundle": {exc}', cause=exc) from exc

        logger.info(
            "bundle.uploading",
            source_bundle=str(request.source_bundle),
            location=str(request.s3),
            size_bytes=len(body),
        )
        await self.client.put_object(
            PutObjectRequest(bucket=request.s3.bucket, key=request.s3.key, body=body)
        )
        return environment

    async def _create_version(self, environment: EnvironmentSnapshot) -> EnvironmentSnapshot:
        request = self.request
        logger.info("version.creating", version_label=request.version_label)
        await self.client.create_application_version(
            CreateApplicationVersionRequest(
                application_name=request.application_name,
                version_label=request.version_label,
                description=request.version_description,
                s3_bucket=request.s3.bucket,
                s3_key=request.s3.key,
            )
        )
        return environment

    async def _deploy(self, environment: EnvironmentSnapshot) -> StrategyOutcome:
        strategy_cls = get_strategy(self.request.deploy_type)
        strategy = strategy_cls(
            self.client,
            self.request,
            self.prober,
            sleep=self._sleep,
            clock=self._clock,
        )
        outcome = await strategy.execute(environment)
        if outcome.previous_environment is not None:
            self.result.new_environment_name = outcome.environment.name
            self.result.template_name = outcome.template_name
        return outcome


async def run_deploy_task(
    options: Mapping[str, Any],
    done: Done | None = None,
    *,
    client_factory: ClientFactory = default_client_factory,
    env_credentials: AwsEnvironmentCredentials | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> DeploymentResult:
    """Task entry point: validate ``options``, then run the deployment.

    Configuration errors, and errors raised while building the client, are
    reported through ``done`` and the returned result like any other
    failure. ``done`` is called exactly once whatever the outcome.
    """
    run_id = _new_run_id()
    try:
        request = resolve_request(options, env_credentials=env_credentials)
    except ConfigurationError as exc:
        logger.error("deploy.invalid_configuration", run_id=run_id, error=exc.to_dict())
        return _failed_before_start(run_id, options, exc, done)

    try:
        client = client_factory(request)
    except Exception as exc:
        logger.error("deploy.client_unavailable", run_id=run_id, error=error_to_dict(exc))
        return _failed_before_start(run_id, options, exc, done)

    orchestrator = DeploymentOrchestrator(request, client, http_client=http_client, run_id=run_id)
    return await orchestrator.run(done)


def _failed_before_start(
    run_id: str, options: Mapping[str, Any], error: Exception, done: Done | None
) -> DeploymentResult:
    """Report a run that failed before its first stage."""
    result = DeploymentResult(
        run_id=run_id,
        application=options.get("applicationName"),
        environment_cname=options.get("environmentCNAME"),
        region=options.get("region"),
    )
    result.mark_complete(error)
    if done is not None:
        done(error)
    return result
