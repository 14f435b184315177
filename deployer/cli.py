"""Command dispatch for the Order Management System deployment tool."""

import os
import sys
from typing import Callable, Dict, List, Mapping, Optional

from deployer import console
from deployer.config import Settings
from deployer.errors import DeployError, MissingToolsError
from deployer.prereqs import check_prerequisites
from deployer.provision import Provisioner
from deployer.release import Releaser
from deployer.services import ServiceManager


USAGE = """\
Order Management System Deployment Script

Usage: {prog} [OPTION]

Options:
  setup       Setup AWS resources (DynamoDB, S3, SNS)
  build       Build both backend and frontend
  test        Run all tests
  start       Start services locally
  stop        Stop local services
  deploy      Deploy to AWS
  clean       Clean up local resources
  all         Run complete setup and deployment
  help        Show this help message

Environment Variables:
  AWS_ACCESS_KEY_ID     AWS access key
  AWS_SECRET_ACCESS_KEY AWS secret key
  AWS_REGION            AWS region (default: us-east-1)
"""


COMMANDS = ("setup", "build", "test", "start", "stop", "deploy", "clean", "all")


def print_usage(prog: str) -> None:
    print(USAGE.format(prog=prog), end="")


class Commands:
    """One method per command; each runs its steps in order."""

    def __init__(self, settings: Settings, environ: Mapping[str, str], prog: str):
        self.settings = settings
        self.environ = environ
        self.prog = prog
        self.services = ServiceManager(settings)

    def setup(self) -> None:
        check_prerequisites()
        Provisioner(self.settings).setup()

    def build(self) -> None:
        check_prerequisites()
        self.services.build_backend()
        self.services.build_frontend()

    def test(self) -> None:
        check_prerequisites()
        self.services.run_tests()

    def start(self) -> None:
        check_prerequisites()
        self.services.start()

    def stop(self) -> None:
        self.services.stop()

    def deploy(self) -> None:
        check_prerequisites()
        Releaser(self.settings, environ=self.environ).deploy()

    def clean(self) -> None:
        self.services.clean()

    def all(self) -> None:
        check_prerequisites()
        Provisioner(self.settings).setup()
        self.services.build_backend()
        self.services.build_frontend()
        self.services.run_tests()
        self.services.start()
        console.info("Complete setup finished. Services are running locally.")
        console.info(f"To deploy to AWS, run: {self.prog} deploy")

    def dispatch(self) -> Dict[str, Callable[[], None]]:
        return {
            "setup": self.setup,
            "build": self.build,
            "test": self.test,
            "start": self.start,
            "stop": self.stop,
            "deploy": self.deploy,
            "clean": self.clean,
            "all": self.all,
        }


def main(
    argv: Optional[List[str]] = None, environ: Optional[Mapping[str, str]] = None
) -> int:
    """Run one command and return the process exit code.

    No argument, "help" or an unrecognised argument prints the usage and
    succeeds.
    """
    argv = sys.argv if argv is None else argv
    prog = argv[0] if argv else "deploy.py"
    command = argv[1] if len(argv) > 1 else "help"

    if command not in COMMANDS:
        print_usage(prog)
        return 0

    environ = os.environ if environ is None else environ

    try:
        settings = Settings.from_env(environ)
        commands = Commands(settings, environ, prog)
        commands.dispatch()[command]()
    except DeployError as e:
        console.error(str(e))
        if isinstance(e, MissingToolsError):
            console.info("Please install the missing tools and try again.")
        return e.exit_code
    return 0


if __name__ == "__main__":
    sys.exit(main())
