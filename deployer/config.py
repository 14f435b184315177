"""Configuration for the Order Management System deployment tool."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from deployer.errors import ConfigurationError


# Defaults
DEFAULT_PROJECT_NAME = "order-management-system"
DEFAULT_REGION = "us-east-1"
DEFAULT_TABLE_NAME = "orders"
DEFAULT_BUCKET_PREFIX = "order-management-invoices"
DEFAULT_TOPIC_NAME = "order-notifications"
DEFAULT_BACKEND_START_DELAY_SECONDS = 10

# Fixed names
TABLE_KEY = "orderId"
ENVIRONMENT_NAME = "order-management-backend"
INSTANCE_TYPE = "t3.micro"
BACKEND_PORT = 8080
FRONTEND_PORT = 3000

# Files written under the project root
ENV_FILE = ".env.aws"
BACKEND_PID_FILE = ".backend.pid"
FRONTEND_PID_FILE = ".frontend.pid"
BACKEND_LOG_FILE = "backend.log"
FRONTEND_LOG_FILE = "frontend.log"


@dataclass(frozen=True)
class Settings:
    """Resolved deployment settings."""

    root: Path
    project_name: str = DEFAULT_PROJECT_NAME
    region: str = DEFAULT_REGION
    table_name: str = DEFAULT_TABLE_NAME
    bucket_prefix: str = DEFAULT_BUCKET_PREFIX
    topic_name: str = DEFAULT_TOPIC_NAME
    backend_start_delay: float = DEFAULT_BACKEND_START_DELAY_SECONDS
    table_key: str = TABLE_KEY
    environment_name: str = ENVIRONMENT_NAME
    instance_type: str = INSTANCE_TYPE

    @classmethod
    def from_env(
        cls, environ: Optional[Mapping[str, str]] = None, root: Optional[Path] = None
    ) -> "Settings":
        """Build settings from environment variables.

        Args:
            environ: Mapping to read from (defaults to os.environ).
            root: Project root; falls back to OMS_PROJECT_ROOT, then the cwd.

        Returns:
            Settings with every unset value at its default.
        """
        env = os.environ if environ is None else environ

        if root is None:
            root = Path(env.get("OMS_PROJECT_ROOT") or os.getcwd())

        return cls(
            root=Path(root),
            project_name=env.get("OMS_PROJECT_NAME") or DEFAULT_PROJECT_NAME,
            region=env.get("AWS_REGION") or DEFAULT_REGION,
            table_name=env.get("DYNAMODB_TABLE") or DEFAULT_TABLE_NAME,
            bucket_prefix=env.get("S3_BUCKET_PREFIX") or DEFAULT_BUCKET_PREFIX,
            topic_name=env.get("SNS_TOPIC_NAME") or DEFAULT_TOPIC_NAME,
            backend_start_delay=_parse_delay(env.get("OMS_BACKEND_START_DELAY")),
        )

    @property
    def backend_dir(self) -> Path:
        return self.root / "order-service"

    @property
    def frontend_dir(self) -> Path:
        return self.root / "order-ui"

    @property
    def frontend_build_dir(self) -> Path:
        return self.frontend_dir / "build"

    @property
    def env_file(self) -> Path:
        return self.root / ENV_FILE

    @property
    def backend_pid_file(self) -> Path:
        return self.root / BACKEND_PID_FILE

    @property
    def frontend_pid_file(self) -> Path:
        return self.root / FRONTEND_PID_FILE

    @property
    def backend_log(self) -> Path:
        return self.root / BACKEND_LOG_FILE

    @property
    def frontend_log(self) -> Path:
        return self.root / FRONTEND_LOG_FILE


def _parse_delay(value: Optional[str]) -> float:
    """Parse a non-negative number of seconds; empty means the default."""
    if not value:
        return DEFAULT_BACKEND_START_DELAY_SECONDS
    try:
        delay = float(value)
    except ValueError:
        raise ConfigurationError(
            f"OMS_BACKEND_START_DELAY must be a number of seconds, got {value!r}"
        ) from None
    if delay < 0:
        raise ConfigurationError(
            f"OMS_BACKEND_START_DELAY must not be negative, got {value!r}"
        )
    return delay
