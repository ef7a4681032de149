"""Elastic Beanstalk deployment: upload, register, deploy, verify.

Key Concepts:
    DeploymentRequest: validated, immutable input of one run
        (``resolve_request()`` builds it from the task options).
    ControlPlane / Boto3ControlPlane: async facade over Elastic Beanstalk + S3.
    wait_for_environment_ready: Ready/Green convergence poller.
    HealthProber: health page status + contents verification.
    InPlaceStrategy / SwapToNewStrategy: the two deploy topologies.
    DeploymentOrchestrator: the stage pipeline; ``run_deploy_task()`` is the
        task entry point.
    DeploymentResult: structured report of a run.

Related Modules:
    - :mod:`ebdeploy.deploy.config` - Options, defaults and preconditions
    - :mod:`ebdeploy.deploy.client` - Control-plane facade
    - :mod:`ebdeploy.deploy.polling` - Readiness poller
    - :mod:`ebdeploy.deploy.health` - Health-endpoint prober
    - :mod:`ebdeploy.deploy.strategies` - Deploy-strategy executors
    - :mod:`ebdeploy.deploy.workflow` - Orchestrator
    - :mod:`ebdeploy.cli.deploy` - CLI commands (``ebdeploy deploy``)

Example:
    >>> from ebdeploy.deploy import DeployType
    >>> DeployType("swapToNew")
    <DeployType.SWAP_TO_NEW: 'swapToNew'>
"""

from __future__ import annotations

from ebdeploy.deploy.client import Boto3ControlPlane, ControlPlane
from ebdeploy.deploy.config import (
    DeploymentRequest,
    DeployType,
    PollingConfig,
    S3Location,
    resolve_request,
)
from ebdeploy.deploy.health import HealthProber
from ebdeploy.deploy.models import EnvironmentHealth, EnvironmentSnapshot, EnvironmentStatus
from ebdeploy.deploy.polling import PollOutcome, poll_until, wait_for_environment_ready
from ebdeploy.deploy.results import DeploymentResult, OverallStatus, StageResult
from ebdeploy.deploy.strategies import InPlaceStrategy, StrategyOutcome, SwapToNewStrategy
from ebdeploy.deploy.workflow import DeploymentOrchestrator, run_deploy_task

__all__ = [
    "Boto3ControlPlane",
    "ControlPlane",
    "DeployType",
    "DeploymentOrchestrator",
    "DeploymentRequest",
    "DeploymentResult",
    "EnvironmentHealth",
    "EnvironmentSnapshot",
    "EnvironmentStatus",
    "HealthProber",
    "InPlaceStrategy",
    "OverallStatus",
    "PollOutcome",
    "PollingConfig",
    "S3Location",
    "StageResult",
    "StrategyOutcome",
    "SwapToNewStrategy",
    "poll_until",
    "resolve_request",
    "run_deploy_task",
    "wait_for_environment_ready",
]
