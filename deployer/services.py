"""Build, test, start and stop the backend and frontend projects."""

import time
from types import ModuleType
from typing import Callable, NamedTuple

from deployer import console, processes
from deployer.config import BACKEND_PORT, FRONTEND_PORT, Settings


# Build tool commands
BACKEND_BUILD = ["mvn", "clean", "package", "-DskipTests"]
BACKEND_TEST = ["mvn", "test"]
BACKEND_RUN = ["mvn", "spring-boot:run"]
FRONTEND_INSTALL = ["npm", "install"]
FRONTEND_BUILD = ["npm", "run", "build"]
FRONTEND_TEST = ["npm", "test", "--", "--watchAll=false", "--coverage"]
FRONTEND_RUN = ["npm", "start"]


class LocalServices(NamedTuple):
    backend_pid: int
    frontend_pid: int


class ServiceManager:
    """Drives the Maven backend and npm frontend as local processes."""

    def __init__(
        self,
        settings: Settings,
        runner: ModuleType = processes,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.settings = settings
        self.runner = runner
        self.sleep = sleep

    def build_backend(self) -> None:
        console.info("Building Spring Boot backend...")
        self.runner.run(BACKEND_BUILD, cwd=self.settings.backend_dir)
        console.success("Backend built successfully")

    def build_frontend(self) -> None:
        console.info("Building React frontend...")
        self.runner.run(FRONTEND_INSTALL, cwd=self.settings.frontend_dir)
        self.runner.run(FRONTEND_BUILD, cwd=self.settings.frontend_dir)
        console.success("Frontend built successfully")

    def run_tests(self) -> None:
        console.info("Running tests...")
        self.runner.run(BACKEND_TEST, cwd=self.settings.backend_dir)
        self.runner.run(FRONTEND_TEST, cwd=self.settings.frontend_dir)
        console.success("All tests passed")

    def _has_recorded_pids(self) -> bool:
        return (
            self.settings.backend_pid_file.exists()
            or self.settings.frontend_pid_file.exists()
        )

    def start(self) -> LocalServices:
        """Start backend then frontend in the background and record their pids.

        Processes left over from an earlier start are stopped first, so the
        pid files always describe the pair that is actually running.

        Returns:
            The pids of the started backend and frontend.
        """
        if self._has_recorded_pids():
            console.warning("Services from a previous start are still recorded")
            self.stop()

        console.info("Starting services locally...")

        console.info(f"Starting Spring Boot backend on port {BACKEND_PORT}...")
        backend_pid = self.runner.spawn(
            BACKEND_RUN,
            cwd=self.settings.backend_dir,
            log_path=self.settings.backend_log,
        )
        self.runner.write_pid(self.settings.backend_pid_file, backend_pid)

        # Give the backend a head start; readiness is not checked
        self.sleep(self.settings.backend_start_delay)

        console.info(f"Starting React frontend on port {FRONTEND_PORT}...")
        frontend_pid = self.runner.spawn(
            FRONTEND_RUN,
            cwd=self.settings.frontend_dir,
            log_path=self.settings.frontend_log,
        )
        self.runner.write_pid(self.settings.frontend_pid_file, frontend_pid)

        console.success("Services started locally")
        console.info(f"Backend: http://localhost:{BACKEND_PORT}")
        console.info(f"Frontend: http://localhost:{FRONTEND_PORT}")
        console.info(f"Swagger UI: http://localhost:{BACKEND_PORT}/swagger-ui.html")

        return LocalServices(backend_pid=backend_pid, frontend_pid=frontend_pid)

    def stop(self) -> None:
        """Terminate recorded processes. Without pid files this does nothing."""
        console.info("Stopping local services...")

        pid_files = (self.settings.backend_pid_file, self.settings.frontend_pid_file)
        for pid_file in pid_files:
            if not pid_file.exists():
                continue
            pid = self.runner.read_pid(pid_file)
            try:
                if pid is not None and not self.runner.terminate(pid):
                    console.warning(f"Process {pid} was not running")
            except PermissionError:
                console.warning(f"Not permitted to stop process {pid}, forgetting it")
            pid_file.unlink()

        console.success("Local services stopped")

    def clean(self) -> None:
        console.info("Cleaning up...")

        self.stop()

        for log_file in (self.settings.backend_log, self.settings.frontend_log):
            if log_file.exists():
                log_file.unlink()

        console.success("Cleanup completed")
