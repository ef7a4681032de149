"""Tests for the in-place and swap-to-new strategy executors."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from ebdeploy.core.errors import ConvergenceTimeoutError, UnknownDeployTypeError
from ebdeploy.deploy.config import DeployType, resolve_request
from ebdeploy.deploy.health import HealthProber
from ebdeploy.deploy.models import CreateEnvironmentRequest
from ebdeploy.deploy.strategies import (
    STRATEGIES,
    InPlaceStrategy,
    SwapToNewStrategy,
    get_strategy,
)

from conftest import APPLICATION, make_env


@pytest.fixture
def prober():
    mock = MagicMock(spec=HealthProber)
    mock.probe = AsyncMock(return_value=None)
    return mock


def called_methods(client):
    return [name for name, _, _ in client.mock_calls]


class TestRegistry:
    def test_lookup(self):
        assert get_strategy(DeployType.IN_PLACE) is InPlaceStrategy
        assert get_strategy("swapToNew") is SwapToNewStrategy
        assert set(STRATEGIES) == set(DeployType)

    def test_unknown(self):
        with pytest.raises(UnknownDeployTypeError):
            get_strategy("rolling")


class TestInPlaceStrategy:
    @pytest.mark.asyncio
    async def test_update_wait_probe(self, options, control_plane, current_env, prober, sleep, clock):
        options["versionDescription"] = "release"
        request = resolve_request(options)
        strategy = InPlaceStrategy(control_plane, request, prober, sleep=sleep, clock=clock)

        outcome = await strategy.execute(current_env)

        control_plane.update_environment.assert_awaited_once_with("my-app-blue", "my-app-1.2.0", "release")
        control_plane.create_environment.assert_not_called()
        prober.probe.assert_awaited_once_with(current_env)
        assert outcome.environment == current_env
        assert outcome.previous_environment is None
        # Deploy polling: first query after one 5 s interval.
        assert sleep.calls == [5]

    @pytest.mark.asyncio
    async def test_convergence_timeout_skips_probe(self, options, control_plane, current_env, prober, sleep, clock):
        options["deployTimeout"] = 10
        control_plane.describe_environments.return_value = [make_env(status="Updating")]
        strategy = InPlaceStrategy(control_plane, resolve_request(options), prober, sleep=sleep, clock=clock)

        with pytest.raises(ConvergenceTimeoutError):
            await strategy.execute(current_env)
        prober.probe.assert_not_called()


class TestSwapToNewStrategy:
    @pytest.mark.asyncio
    async def test_end_to_end(self, options, control_plane, current_env, prober, sleep, clock):
        options["deployType"] = "swapToNew"
        request = resolve_request(options)
        new_ready = make_env(
            "my-app12345678901234",
            environment_id="e-green",
            cname="my-app-green.us-east-1.elasticbeanstalk.com",
        )
        control_plane.describe_environments.return_value = [new_ready]

        strategy = SwapToNewStrategy(control_plane, request, prober, sleep=sleep, clock=clock)
        outcome = await strategy.execute(current_env)

        template_call = control_plane.create_configuration_template.await_args
        assert template_call.args[0] == APPLICATION
        assert template_call.args[1] == "e-blue"
        assert template_call.args[2].startswith("my-app-")

        create_request = control_plane.create_environment.await_args.args[0]
        assert isinstance(create_request, CreateEnvironmentRequest)
        assert create_request.template_name == template_call.args[2]
        assert create_request.version_label == "my-app-1.2.0"
        assert len(create_request.environment_name) == 23

        control_plane.swap_environment_cnames.assert_awaited_once_with("my-app-blue", "my-app12345678901234")
        control_plane.update_environment.assert_not_called()
        assert not any("terminate" in name for name in called_methods(control_plane))

        # Probe the new environment, then the original CNAME after the swap.
        assert [c.args[0] for c in prober.probe.await_args_list] == [new_ready, current_env]
        # Swap polling: 20 s interval.
        assert sleep.calls == [20]

        assert outcome.environment == new_ready
        assert outcome.previous_environment == current_env
        assert outcome.template_name == template_call.args[2]

    @pytest.mark.asyncio
    async def test_failed_probe_prevents_swap(self, options, control_plane, current_env, prober, sleep, clock):
        options["deployType"] = "swapToNew"
        prober.probe.side_effect = ConvergenceTimeoutError("health page", 300)
        strategy = SwapToNewStrategy(control_plane, resolve_request(options), prober, sleep=sleep, clock=clock)

        with pytest.raises(ConvergenceTimeoutError):
            await strategy.execute(current_env)
        control_plane.swap_environment_cnames.assert_not_called()
