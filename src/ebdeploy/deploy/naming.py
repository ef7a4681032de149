"""Names for the resources a swap-to-new deploy creates."""

from __future__ import annotations

import time

from ebdeploy.core.logging import get_logger

logger = get_logger(__name__)

MAX_ENVIRONMENT_NAME_LENGTH = 23
UNIQUE_SUFFIX_MARGIN = 3


def create_environment_name(application_name: str, now_ns: int | None = None) -> str:
    """Application name followed by the low-order digits of the current time.

    The time digits fill the name up to 23 characters. An application name
    longer than 20 characters leaves too few digits to keep names unique, so
    a warning is logged; the name is still produced (the bare application
    name once there is no room left).
    """
    if len(application_name) > MAX_ENVIRONMENT_NAME_LENGTH - UNIQUE_SUFFIX_MARGIN:
        logger.warning(
            "environment_name.not_unique",
            application=application_name,
            message=(
                "application name is too long to guarantee a unique environment name, "
                f"maximum length {MAX_ENVIRONMENT_NAME_LENGTH} characters"
            ),
        )

    available = MAX_ENVIRONMENT_NAME_LENGTH - len(application_name)
    if available <= 0:
        return application_name

    digits = str(time.time_ns() if now_ns is None else now_ns)
    return application_name + digits.rjust(available, "0")[-available:]


def create_template_name(application_name: str, now_ms: int | None = None) -> str:
    """Configuration template name: ``<application>-<epoch milliseconds>``."""
    if now_ms is None:
        now_ms = time.time_ns() // 1_000_000
    return f"{application_name}-{now_ms}"
