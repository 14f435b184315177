"""Check that the external tools the deployment relies on are installed."""

import shutil
from typing import Callable, Dict, List, Optional

from deployer import console
from deployer.errors import MissingToolsError


# Executable name -> name shown to the user
REQUIRED_TOOLS: Dict[str, str] = {
    "java": "Java 17",
    "mvn": "Maven",
    "node": "Node.js",
    "npm": "npm",
    "aws": "AWS CLI",
}


def find_missing(
    tools: Dict[str, str] = REQUIRED_TOOLS,
    which: Callable[[str], Optional[str]] = shutil.which,
) -> List[str]:
    """Return display names of tools that are not on the PATH, in order."""
    return [label for executable, label in tools.items() if not which(executable)]


def check_prerequisites(
    tools: Dict[str, str] = REQUIRED_TOOLS,
    which: Callable[[str], Optional[str]] = shutil.which,
) -> None:
    """Verify every required tool is installed.

    Args:
        tools: Mapping of executable name to display name.
        which: Lookup used to resolve an executable on the PATH.

    Raises:
        MissingToolsError: If any tool is missing. All missing tools are
            reported together.
    """
    console.info("Checking prerequisites...")

    missing = find_missing(tools, which)
    if missing:
        raise MissingToolsError(missing)

    console.success("All prerequisites are installed")
