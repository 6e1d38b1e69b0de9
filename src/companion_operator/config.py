"""Operator configuration loaded from the environment."""

import os
from typing import List

from pydantic import BaseModel, Field


def _env_bool(value):
    return str(value).strip().lower() in ("1", "true", "yes", "on")


class OperatorConfig(BaseModel):
    """Runtime settings for the companion operator."""

    log_level: str = Field(default="INFO", description="Root logging level")
    namespaces: List[str] = Field(
        default_factory=list,
        description="Namespaces to watch; empty means cluster-wide",
    )
    watch_deployments: bool = Field(default=True, description="Run the Deployment loop")
    watch_jobs: bool = Field(default=True, description="Run the Job loop")
    resync_interval: float = Field(
        default=300,
        ge=10,
        description="Seconds between full sweeps over all watched objects",
    )
    retry_delay: float = Field(
        default=30,
        gt=0,
        description="Initial delay before a failed reconcile is retried",
    )
    request_timeout: float = Field(
        default=30,
        gt=0,
        description="Timeout for a single API server request",
    )
    max_workers: int = Field(default=4, ge=1, description="Handler thread pool size")

    @classmethod
    def from_env(cls, environ=None):
        """Build a config from environment variables, using defaults for unset ones."""
        environ = os.environ if environ is None else environ
        values = {}

        if "LOG_LEVEL" in environ:
            values["log_level"] = environ["LOG_LEVEL"].upper()
        if environ.get("WATCH_NAMESPACES"):
            values["namespaces"] = [
                ns.strip() for ns in environ["WATCH_NAMESPACES"].split(",") if ns.strip()
            ]
        if "WATCH_DEPLOYMENTS" in environ:
            values["watch_deployments"] = _env_bool(environ["WATCH_DEPLOYMENTS"])
        if "WATCH_JOBS" in environ:
            values["watch_jobs"] = _env_bool(environ["WATCH_JOBS"])
        if "RESYNC_INTERVAL_SECONDS" in environ:
            values["resync_interval"] = environ["RESYNC_INTERVAL_SECONDS"]
        if "RETRY_DELAY_SECONDS" in environ:
            values["retry_delay"] = environ["RETRY_DELAY_SECONDS"]
        if "REQUEST_TIMEOUT_SECONDS" in environ:
            values["request_timeout"] = environ["REQUEST_TIMEOUT_SECONDS"]
        if "MAX_WORKERS" in environ:
            values["max_workers"] = environ["MAX_WORKERS"]

        return cls(**values)
