"""Deploy-strategy executors.

Two alternative procedures compose control-plane calls, the readiness
poller and the health prober into a complete deployment:

- **InPlaceStrategy** (``inPlace``): update the running environment with
  the new version, wait for Ready/Green (5 s / 2 min), probe the health page.
- **SwapToNewStrategy** (``swapToNew``, blue/green): snapshot the current
  environment into a configuration template, launch a new environment from
  it with the new version, wait for Ready/Green (20 s / 10 min), probe it,
  swap CNAMEs (old → new) and probe again at the original CNAME.

The previous environment of a swap is never terminated; it remains
available as a rollback target.
"""

from __future__ import annotations

import asyncio
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import ClassVar

from ebdeploy.core.errors import UnknownDeployTypeError
from ebdeploy.core.logging import get_logger
from ebdeploy.deploy.client import ControlPlane
from ebdeploy.deploy.config import DeploymentRequest, DeployType, PollingConfig
from ebdeploy.deploy.health import HealthProber
from ebdeploy.deploy.models import CreateEnvironmentRequest, EnvironmentSnapshot
from ebdeploy.deploy.naming import create_environment_name, create_template_name
from ebdeploy.deploy.polling import Clock, Sleep, wait_for_environment_ready

logger = get_logger(__name__)


@dataclass(frozen=True)
class StrategyOutcome:
    """What a strategy leaves behind.

    Attributes:
        environment: Environment now serving the requested CNAME
        previous_environment: Environment that served it before (swap only)
        template_name: Configuration template created (swap only)
    """

    environment: EnvironmentSnapshot
    previous_environment: EnvironmentSnapshot | None = None
    template_name: str | None = None


class DeployStrategy(ABC):
    """Base class for deploy-strategy executors."""

    deploy_type: ClassVar[DeployType]

    def __init__(
        self,
        client: ControlPlane,
        request: DeploymentRequest,
        prober: HealthProber,
        *,
        sleep: Sleep = asyncio.sleep,
        clock: Clock = time.monotonic,
    ) -> None:
        self.client = client
        self.request = request
        self.prober = prober
        self._sleep = sleep
        self._clock = clock

    @abstractmethod
    async def execute(self, environment: EnvironmentSnapshot) -> StrategyOutcome:
        """Deploy ``request.version_label`` behind ``environment``'s CNAME."""

    async def _wait_until_ready(
        self, environment: EnvironmentSnapshot, polling: PollingConfig
    ) -> EnvironmentSnapshot:
        return await wait_for_environment_ready(
            self.client,
            environment,
            application_name=self.request.application_name,
            version_label=self.request.version_label,
            polling=polling,
            sleep=self._sleep,
            clock=self._clock,
        )


class InPlaceStrategy(DeployStrategy):
    deploy_type = DeployType.IN_PLACE

    async def execute(self, environment: EnvironmentSnapshot) -> StrategyOutcome:
        request = self.request
        logger.info("environment.updating", environment=environment.name, version_label=request.version_label)
        await self.client.update_environment(
            environment.name,
            request.version_label,
            request.version_description,
        )
        logger.info("environment.updated", environment=environment.name)

        ready = await self._wait_until_ready(environment, request.deploy_polling)
        await self.prober.probe(ready)
        return StrategyOutcome(environment=ready)


class SwapToNewStrategy(DeployStrategy):
    deploy_type = DeployType.SWAP_TO_NEW

    async def execute(self, environment: EnvironmentSnapshot) -> StrategyOutcome:
        request = self.request
        application = request.application_name

        logger.info("template.creating", environment=environment.name)
        template_name = await self.client.create_configuration_template(
            application,
            environment.environment_id,
            create_template_name(application),
        )
        logger.info("template.created", template=template_name)

        new_name = create_environment_name(application)
        logger.info("environment.creating", environment=new_name, version_label=request.version_label)
        created = await self.client.create_environment(
            CreateEnvironmentRequest(
                application_name=application,
                environment_name=new_name,
                version_label=request.version_label,
                template_name=template_name,
            )
        )
        logger.info("environment.created", environment=created.name, cname=created.cname)

        ready = await self._wait_until_ready(created, request.swap_polling)
        await self.prober.probe(ready)

        logger.info("cnames.swapping", source=environment.name, destination=created.name)
        await self.client.swap_environment_cnames(environment.name, created.name)
        logger.info("cnames.swapped", cname=environment.cname, environment=created.name)

        # Same CNAME as before the swap, now answered by the new environment.
        await self.prober.probe(environment)

        return StrategyOutcome(
            environment=ready,
            previous_environment=environment,
            template_name=template_name,
        )


STRATEGIES: dict[DeployType, type[DeployStrategy]] = {
    DeployType.IN_PLACE: InPlaceStrategy,
    DeployType.SWAP_TO_NEW: SwapToNewStrategy,
}


def get_strategy(deploy_type: DeployType | str) -> type[DeployStrategy]:
    """Look up the executor class for a deploy type."""
    try:
        return STRATEGIES[DeployType(deploy_type)]
    except (KeyError, ValueError):
        raise UnknownDeployTypeError(str(deploy_type)) from None
