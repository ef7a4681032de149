"""
Tests for the ebdeploy CLI.
"""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, patch

import pytest
from rich.errors import MarkupError
from typer.testing import CliRunner

from ebdeploy.cli.app import app
from ebdeploy.cli.deploy import merge_options
from ebdeploy.core.errors import RemoteOperationError
from ebdeploy.deploy.results import DeploymentResult, StageResult

from conftest import make_env

runner = CliRunner()


@pytest.fixture(autouse=True)
def _no_logging_setup():
    with patch("ebdeploy.cli.app.configure_logging"):
        yield


def make_result(error: Exception | None = None) -> DeploymentResult:
    result = DeploymentResult(
        run_id="run-1",
        application="my-app",
        environment_cname="my-app.example.com",
        stages=[StageResult(name="check_application", status="failed" if error else "passed")],
    )
    result.mark_complete(error)
    return result


class TestRootApp:
    def test_help(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "deploy" in result.output
        assert "status" in result.output

    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert "ebdeploy" in result.output

    def test_no_args_shows_help(self):
        result = runner.invoke(app, [])
        assert result.exit_code in (0, 2)


class TestMergeOptions:
    def test_flags_override_file_values(self):
        merged = merge_options(
            {"applicationName": "from-file", "region": "eu-west-1", "s3": {"bucket": "b"}},
            applicationName="from-flag",
            region=None,
            key="k.zip",
        )
        assert merged == {
            "applicationName": "from-flag",
            "region": "eu-west-1",
            "s3": {"bucket": "b", "key": "k.zip"},
        }


class TestDeployCommand:
    def test_success(self):
        with patch("ebdeploy.cli.deploy.run_deploy_task", new=AsyncMock(return_value=make_result())) as task:
            result = runner.invoke(
                app,
                ["deploy", "-a", "my-app", "-e", "my-app.example.com", "-r", "us-east-1", "-s", "b.zip",
                 "--deploy-type", "swapToNew", "--s3-bucket", "artifacts"],
            )

        assert result.exit_code == 0, result.output
        options = task.await_args.args[0]
        assert options["applicationName"] == "my-app"
        assert options["deployType"] == "swapToNew"
        assert options["s3"] == {"bucket": "artifacts"}
        assert "healthPage" not in options

    def test_failure_exits_non_zero(self):
        failed = make_result(RemoteOperationError("DescribeApplications"))
        with patch("ebdeploy.cli.deploy.run_deploy_task", new=AsyncMock(return_value=failed)):
            result = runner.invoke(app, ["deploy", "-a", "my-app"])

        assert result.exit_code == 1

    def test_config_file(self, tmp_path):
        config = tmp_path / "deploy.json"
        config.write_text(json.dumps({"applicationName": "my-app", "region": "us-east-1", "healthPage": "/h"}))

        with patch("ebdeploy.cli.deploy.run_deploy_task", new=AsyncMock(return_value=make_result())) as task:
            result = runner.invoke(app, ["deploy", "--config", str(config), "-r", "eu-west-1", "--json"])

        assert result.exit_code == 0, result.output
        options = task.await_args.args[0]
        assert options["region"] == "eu-west-1"
        assert options["healthPage"] == "/h"
        assert json.loads(result.stdout)["overall_status"] == "PASSED"

    def test_unreadable_config(self, tmp_path):
        result = runner.invoke(app, ["deploy", "--config", str(tmp_path / "missing.json")])
        assert result.exit_code == 2


    def test_polling_flags(self):
        with patch("ebdeploy.cli.deploy.run_deploy_task", new=AsyncMock(return_value=make_result())) as task:
            result = runner.invoke(
                app,
                ["deploy", "-a", "my-app", "--swap-timeout", "1200", "--health-interval", "2"],
            )

        assert result.exit_code == 0, result.output
        options = task.await_args.args[0]
        assert options["swapTimeout"] == 1200.0
        assert options["healthInterval"] == 2.0
        assert "deployTimeout" not in options

    def test_error_text_with_brackets_is_printed_literally(self):
        failed = make_result(RemoteOperationError("PutObject", "PutObject failed: [/bold] in key [x]"))
        with patch("ebdeploy.cli.deploy.run_deploy_task", new=AsyncMock(return_value=failed)):
            result = runner.invoke(app, ["deploy", "-a", "my-app"])

        assert result.exit_code == 1
        assert not isinstance(result.exception, MarkupError)
        assert "[/bold] in key [x]" in result.output


class TestLogLevelOption:
    def test_unknown_log_level_rejected(self):
        result = runner.invoke(app, ["--log-level", "LOUD", "status", "-a", "my-app", "-r", "us-east-1"])
        assert result.exit_code == 2

    def test_lowercase_log_level_accepted(self):
        with patch("ebdeploy.cli.deploy.run_deploy_task", new=AsyncMock(return_value=make_result())):
            result = runner.invoke(app, ["--log-level", "debug", "deploy", "-a", "my-app"])
        assert result.exit_code == 0, result.output

    def test_invalid_environment_setting(self, monkeypatch):
        monkeypatch.setenv("EBDEPLOY_LOG_LEVEL", "LOUD")
        result = runner.invoke(app, ["deploy", "-a", "my-app"])
        assert result.exit_code == 2


class TestStatusCommand:
    def test_lists_environments(self):
        with patch("ebdeploy.cli.deploy.Boto3ControlPlane") as plane_cls:
            plane_cls.return_value.describe_environments = AsyncMock(return_value=[make_env()])
            result = runner.invoke(app, ["status", "-a", "my-app", "-r", "us-east-1"])

        assert result.exit_code == 0, result.output
        assert "my-app-blue" in result.output
        plane_cls.assert_called_once_with("us-east-1")

    def test_remote_error(self):
        with patch("ebdeploy.cli.deploy.Boto3ControlPlane") as plane_cls:
            plane_cls.return_value.describe_environments = AsyncMock(
                side_effect=RemoteOperationError("DescribeEnvironments")
            )
            result = runner.invoke(app, ["status", "-a", "my-app", "-r", "us-east-1"])

        assert result.exit_code == 1
