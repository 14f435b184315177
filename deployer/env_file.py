"""Read and write the KEY=VALUE file that carries provisioned identifiers."""

from pathlib import Path
from typing import Dict, Mapping, Optional


BUCKET_NAME_KEY = "S3_BUCKET_NAME"
TOPIC_ARN_KEY = "SNS_TOPIC_ARN"


def read_env_file(path: Path) -> Dict[str, str]:
    """Parse a KEY=VALUE file. A missing file reads as empty."""
    path = Path(path)
    if not path.exists():
        return {}

    values = {}
    for line in path.read_text().splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        values[key.strip()] = value.strip()
    return values


def write_env_file(path: Path, values: Mapping[str, str]) -> None:
    """Replace the file with one KEY=VALUE line per entry."""
    lines = [f"{key}={value}" for key, value in values.items()]
    Path(path).write_text("\n".join(lines) + "\n")


def get_value(path: Path, key: str) -> Optional[str]:
    return read_env_file(path).get(key) or None
