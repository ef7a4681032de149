"""Configuration models and precondition checks for a deployment run.

A run is configured by the option mapping a task host supplies (the same
camelCase names a JSON config file uses). ``resolve_request()`` validates
it before any remote call is made and produces an immutable
``DeploymentRequest``:

- ``applicationName``, ``environmentCNAME``, ``region`` and ``sourceBundle``
  are required; ``sourceBundle`` must be a readable file
- ``healthPage`` is normalized to start with ``/``; when absent the run
  proceeds without application-level verification and a warning is logged
- ``accessKeyId`` / ``secretAccessKey`` fall back to ``AWS_ACCESS_KEY_ID`` /
  ``AWS_SECRET_ACCESS_KEY``
- ``deployType`` must name a known strategy

Key Concepts:
    DeployType: ``inPlace`` (default) or ``swapToNew``.
    PollingConfig: interval/timeout pair for one convergence wait.
    S3Location: bucket/key of the uploaded bundle. Defaults to the
        application name and the bundle file name; a partial override keeps
        the default for the omitted field.
    DeploymentRequest: frozen pydantic model for the whole run.

Any violation raises a ``ConfigurationError`` subclass.
"""

from __future__ import annotations

import os
import re
from collections.abc import Mapping
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, SecretStr, ValidationError

from ebdeploy.core.errors import (
    ConfigurationError,
    MissingCredentialsError,
    MissingOptionError,
    SourceBundleError,
    UnknownDeployTypeError,
)
from ebdeploy.core.logging import get_logger
from ebdeploy.core.settings import AwsEnvironmentCredentials

logger = get_logger(__name__)

REQUIRED_OPTIONS = ("applicationName", "environmentCNAME", "region", "sourceBundle")


class DeployType(str, Enum):
    """Deployment topology."""

    IN_PLACE = "inPlace"  # Update the running environment
    SWAP_TO_NEW = "swapToNew"  # Provision a new environment, then swap CNAMEs


class PollingConfig(BaseModel):
    """Interval and overall timeout of one convergence wait."""

    model_config = ConfigDict(frozen=True)

    interval_seconds: float = Field(ge=0, description="Delay before each check")
    timeout_seconds: float = Field(ge=0, description="Cumulative deadline for the wait")


DEFAULT_DEPLOY_POLLING = PollingConfig(interval_seconds=5, timeout_seconds=2 * 60)
DEFAULT_SWAP_POLLING = PollingConfig(interval_seconds=20, timeout_seconds=10 * 60)
DEFAULT_HEALTH_POLLING = PollingConfig(interval_seconds=5, timeout_seconds=5 * 60)


class S3Location(BaseModel):
    model_config = ConfigDict(frozen=True)

    bucket: str
    key: str

    def __str__(self) -> str:
        return f"{self.bucket}/{self.key}"


class AwsCredentials(BaseModel):
    model_config = ConfigDict(frozen=True)

    access_key_id: str
    secret_access_key: SecretStr


class DeploymentRequest(BaseModel):
    """Immutable input of one deployment run.

    Field aliases are the option names accepted from a config mapping, so
    ``DeploymentRequest.model_validate({...})`` and keyword construction
    both work. Prefer ``resolve_request()``, which also applies defaults and
    precondition checks.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    application_name: str = Field(alias="applicationName", min_length=1)
    environment_cname: str = Field(alias="environmentCNAME", min_length=1)
    region: str = Field(min_length=1)
    source_bundle: Path = Field(alias="sourceBundle")
    version_label: str = Field(alias="versionLabel", min_length=1)
    version_description: str = Field(default="", alias="versionDescription")
    deploy_type: DeployType = Field(default=DeployType.IN_PLACE, alias="deployType")
    s3: S3Location
    health_page: str | None = Field(default=None, alias="healthPage")
    health_page_contents: str | re.Pattern[str] | None = Field(
        default=None,
        alias="healthPageContents",
        description="Exact expected body (str) or a pattern searched in the body",
    )
    credentials: AwsCredentials

    deploy_polling: PollingConfig = DEFAULT_DEPLOY_POLLING
    swap_polling: PollingConfig = DEFAULT_SWAP_POLLING
    health_polling: PollingConfig = DEFAULT_HEALTH_POLLING


def _option(options: Mapping[str, Any], name: str) -> Any:
    """Get an option, treating empty strings like missing values."""
    value = options.get(name)
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _polling(options: Mapping[str, Any], prefix: str, default: PollingConfig) -> PollingConfig:
    interval = _option(options, f"{prefix}Interval")
    timeout = _option(options, f"{prefix}Timeout")
    if interval is None and timeout is None:
        return default
    return PollingConfig(
        interval_seconds=default.interval_seconds if interval is None else float(interval),
        timeout_seconds=default.timeout_seconds if timeout is None else float(timeout),
    )


def _health_contents(options: Mapping[str, Any]) -> str | re.Pattern[str] | None:
    regex = _option(options, "healthPageRegex")
    if regex is not None:
        try:
            return re.compile(regex)
        except re.error as exc:
            raise ConfigurationError(f'"healthPageRegex" is not a valid pattern: {exc}', cause=exc) from exc
    contents = _option(options, "healthPageContents")
    if contents is None or isinstance(contents, re.Pattern):
        return contents
    return str(contents)


def _credentials(
    options: Mapping[str, Any],
    env_credentials: AwsEnvironmentCredentials | None,
) -> AwsCredentials:
    env_credentials = env_credentials or AwsEnvironmentCredentials()
    access_key_id = _option(options, "accessKeyId") or env_credentials.aws_access_key_id
    secret_access_key = _option(options, "secretAccessKey") or env_credentials.aws_secret_access_key

    if not access_key_id:
        raise MissingCredentialsError('Missing "accessKeyId"')
    if not secret_access_key:
        raise MissingCredentialsError('Missing "secretAccessKey"')
    return AwsCredentials(access_key_id=access_key_id, secret_access_key=secret_access_key)


def resolve_request(
    options: Mapping[str, Any],
    *,
    env_credentials: AwsEnvironmentCredentials | None = None,
) -> DeploymentRequest:
    """Validate task options and build the request for one run.

    Parameters
    ----------
    options
        Option mapping (``applicationName``, ``environmentCNAME``, ...).
    env_credentials
        Credential fallback; read from the process environment when None.

    Raises
    ------
    ConfigurationError
        On any missing or invalid option. No remote call has been made.
    """
    for name in REQUIRED_OPTIONS:
        if _option(options, name) is None:
            raise MissingOptionError(name)

    application_name = str(options["applicationName"])
    source_bundle = Path(options["sourceBundle"])
    if not source_bundle.is_file() or not os.access(source_bundle, os.R_OK):
        raise SourceBundleError(
            '"sourceBundle" points to a non-existent file'
        ).with_context(source_bundle=str(source_bundle))

    health_page = _option(options, "healthPage")
    if health_page is None:
        logger.warning(
            "config.health_page_missing",
            message='"healthPage" is not set, it is recommended to set one',
        )
    elif not health_page.startswith("/"):
        health_page = "/" + health_page

    deploy_type = _option(options, "deployType") or DeployType.IN_PLACE.value
    try:
        deploy_type = DeployType(deploy_type)
    except ValueError:
        raise UnknownDeployTypeError(str(deploy_type)) from None

    s3_options = options.get("s3") or {}
    s3 = S3Location(
        bucket=_option(s3_options, "bucket") or application_name,
        key=_option(s3_options, "key") or source_bundle.name,
    )

    credentials = _credentials(options, env_credentials)

    try:
        return DeploymentRequest(
            application_name=application_name,
            environment_cname=str(options["environmentCNAME"]),
            region=str(options["region"]),
            source_bundle=source_bundle,
            version_label=_option(options, "versionLabel") or source_bundle.stem,
            version_description=options.get("versionDescription") or "",
            deploy_type=deploy_type,
            s3=s3,
            health_page=health_page,
            health_page_contents=_health_contents(options),
            credentials=credentials,
            deploy_polling=_polling(options, "deploy", DEFAULT_DEPLOY_POLLING),
            swap_polling=_polling(options, "swap", DEFAULT_SWAP_POLLING),
            health_polling=_polling(options, "health", DEFAULT_HEALTH_POLLING),
        )
    except (ValidationError, ValueError, TypeError) as exc:
        raise ConfigurationError(f"Invalid deployment options: {exc}", cause=exc) from exc
