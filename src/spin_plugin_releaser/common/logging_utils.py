from __future__ import annotations

import logging
import os
import sys


log = logging.getLogger("spin_plugin_releaser")


def default_log_level() -> str:
    # Set by the Actions runner when step debug logging is enabled.
    if os.environ.get("RUNNER_DEBUG", "").strip() == "1":
        return "DEBUG"
    return "INFO"


def configure_logging(level: str | None = None) -> None:
    level = level or default_log_level()
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        handlers=[logging.StreamHandler()],
    )


def _escape_command_data(message: str) -> str:
    return message.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


def report_failure(message: str) -> None:
    """Log the failure and surface it as an Actions error annotation."""
    log.error("Release failed: %s", message)
    sys.stdout.write(f"::error::{_escape_command_data(message)}\n")
    sys.stdout.flush()
