"""Tests for option resolution and precondition checks."""

from __future__ import annotations

import re

import pytest
from pydantic import ValidationError

from ebdeploy.core.errors import (
    ConfigurationError,
    MissingCredentialsError,
    MissingOptionError,
    SourceBundleError,
    UnknownDeployTypeError,
)
from ebdeploy.core.settings import AwsEnvironmentCredentials
from ebdeploy.deploy.config import (
    DEFAULT_DEPLOY_POLLING,
    DEFAULT_HEALTH_POLLING,
    DEFAULT_SWAP_POLLING,
    DeployType,
    PollingConfig,
    resolve_request,
)


class TestRequiredOptions:
    @pytest.mark.parametrize(
        "missing", ["applicationName", "environmentCNAME", "region", "sourceBundle"]
    )
    def test_missing_required_option(self, options, missing):
        del options[missing]
        with pytest.raises(MissingOptionError) as exc_info:
            resolve_request(options)
        assert str(exc_info.value) == f'Missing "{missing}"'

    def test_empty_string_counts_as_missing(self, options):
        options["region"] = "  "
        with pytest.raises(MissingOptionError, match="region"):
            resolve_request(options)

    def test_source_bundle_must_exist(self, options, tmp_path):
        options["sourceBundle"] = str(tmp_path / "nope.zip")
        with pytest.raises(SourceBundleError) as exc_info:
            resolve_request(options)
        assert "non-existent" in str(exc_info.value)
        assert exc_info.value.context.metadata["source_bundle"].endswith("nope.zip")

    def test_source_bundle_directory_rejected(self, options, tmp_path):
        options["sourceBundle"] = str(tmp_path)
        with pytest.raises(SourceBundleError):
            resolve_request(options)


class TestDefaults:
    def test_minimal_request(self, options, bundle):
        request = resolve_request(options)

        assert request.application_name == "my-app"
        assert request.deploy_type is DeployType.IN_PLACE
        assert request.version_label == "my-app-1.2.0"
        assert request.version_description == ""
        assert request.s3.bucket == "my-app"
        assert request.s3.key == bundle.name
        assert str(request.s3) == f"my-app/{bundle.name}"
        assert request.health_page_contents is None

    def test_default_polling(self, options):
        request = resolve_request(options)
        assert request.deploy_polling == DEFAULT_DEPLOY_POLLING
        assert request.swap_polling == DEFAULT_SWAP_POLLING
        assert request.health_polling == DEFAULT_HEALTH_POLLING
        assert (DEFAULT_DEPLOY_POLLING.interval_seconds, DEFAULT_DEPLOY_POLLING.timeout_seconds) == (5, 120)
        assert (DEFAULT_SWAP_POLLING.interval_seconds, DEFAULT_SWAP_POLLING.timeout_seconds) == (20, 600)
        assert (DEFAULT_HEALTH_POLLING.interval_seconds, DEFAULT_HEALTH_POLLING.timeout_seconds) == (5, 300)

    def test_polling_override_keeps_other_default(self, options):
        options["swapTimeout"] = 1200
        request = resolve_request(options)
        assert request.swap_polling == PollingConfig(interval_seconds=20, timeout_seconds=1200)

    def test_partial_s3_override(self, options, bundle):
        options["s3"] = {"bucket": "artifacts"}
        request = resolve_request(options)
        assert request.s3.bucket == "artifacts"
        assert request.s3.key == bundle.name

    def test_explicit_version(self, options):
        options.update(versionLabel="v42", versionDescription="release 42")
        request = resolve_request(options)
        assert request.version_label == "v42"
        assert request.version_description == "release 42"

    def test_request_is_frozen(self, options):
        request = resolve_request(options)
        with pytest.raises(ValidationError):
            request.region = "eu-west-1"


class TestHealthPage:
    def test_leading_slash_added(self, options):
        options["healthPage"] = "health"
        assert resolve_request(options).health_page == "/health"

    def test_leading_slash_kept(self, options):
        assert resolve_request(options).health_page == "/health"

    def test_missing_health_page_is_allowed(self, options):
        del options["healthPage"]
        assert resolve_request(options).health_page is None

    def test_literal_contents(self, options):
        options["healthPageContents"] = "OK"
        assert resolve_request(options).health_page_contents == "OK"

    def test_empty_contents_means_no_expectation(self, options):
        options["healthPageContents"] = ""
        assert resolve_request(options).health_page_contents is None

    def test_regex_contents(self, options):
        options["healthPageRegex"] = r"status.*up"
        contents = resolve_request(options).health_page_contents
        assert isinstance(contents, re.Pattern)
        assert contents.pattern == r"status.*up"

    def test_invalid_regex(self, options):
        options["healthPageRegex"] = "("
        with pytest.raises(ConfigurationError, match="healthPageRegex"):
            resolve_request(options)


class TestDeployType:
    def test_swap_to_new(self, options):
        options["deployType"] = "swapToNew"
        assert resolve_request(options).deploy_type is DeployType.SWAP_TO_NEW

    def test_unknown(self, options):
        options["deployType"] = "rolling"
        with pytest.raises(UnknownDeployTypeError):
            resolve_request(options)


class TestCredentials:
    def test_explicit_keys(self, options):
        request = resolve_request(options)
        assert request.credentials.access_key_id == "AKIAEXAMPLE"
        assert request.credentials.secret_access_key.get_secret_value() == "secret"

    def test_environment_fallback(self, options):
        del options["accessKeyId"]
        del options["secretAccessKey"]
        env = AwsEnvironmentCredentials(aws_access_key_id="AKIAENV", aws_secret_access_key="env-secret")

        request = resolve_request(options, env_credentials=env)
        assert request.credentials.access_key_id == "AKIAENV"
        assert request.credentials.secret_access_key.get_secret_value() == "env-secret"

    def test_missing_access_key(self, options, no_env_credentials):
        del options["accessKeyId"]
        with pytest.raises(MissingCredentialsError, match="accessKeyId"):
            resolve_request(options, env_credentials=no_env_credentials)

    def test_missing_secret_key(self, options, no_env_credentials):
        del options["secretAccessKey"]
        with pytest.raises(MissingCredentialsError, match="secretAccessKey"):
            resolve_request(options, env_credentials=no_env_credentials)

    def test_secret_not_in_repr(self, options):
        assert "secret'" not in repr(resolve_request(options).credentials)
