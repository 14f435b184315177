"""Unit tests for the local build and run orchestration."""

import time
from pathlib import Path
from unittest.mock import MagicMock, call

import pytest

from deployer import processes
from deployer.config import Settings
from deployer.errors import CommandFailedError
from deployer.services import ServiceManager


@pytest.fixture
def settings(tmp_path):
    return Settings.from_env({"OMS_BACKEND_START_DELAY": "10"}, root=tmp_path)


@pytest.fixture
def mock_runner():
    """Mock runner that spawns fake pids and keeps real pid file handling."""
    runner = MagicMock()
    runner.spawn.side_effect = [101, 202, 303, 404]
    runner.terminate.return_value = True
    runner.write_pid.side_effect = processes.write_pid
    runner.read_pid.side_effect = processes.read_pid
    return runner


@pytest.fixture
def manager(settings, mock_runner):
    return ServiceManager(settings, runner=mock_runner, sleep=MagicMock())


def test_build_backend(manager, mock_runner, settings):
    """Test the backend build skips tests and runs in order-service."""
    # Act
    manager.build_backend()

    # Assert
    mock_runner.run.assert_called_once_with(
        ["mvn", "clean", "package", "-DskipTests"], cwd=settings.backend_dir
    )


def test_build_frontend(manager, mock_runner, settings):
    """Test the frontend installs dependencies before building."""
    # Act
    manager.build_frontend()

    # Assert
    assert mock_runner.run.call_args_list == [
        call(["npm", "install"], cwd=settings.frontend_dir),
        call(["npm", "run", "build"], cwd=settings.frontend_dir),
    ]


def test_build_failure_is_fatal(manager, mock_runner):
    """Test that a failing build stops before the next step."""
    # Arrange
    mock_runner.run.side_effect = CommandFailedError(["npm", "install"], 1)

    # Act / Assert
    with pytest.raises(CommandFailedError):
        manager.build_frontend()
    assert mock_runner.run.call_count == 1


def test_run_tests(manager, mock_runner, settings):
    """Test backend then frontend test suites are run non-interactively."""
    # Act
    manager.run_tests()

    # Assert
    assert mock_runner.run.call_args_list == [
        call(["mvn", "test"], cwd=settings.backend_dir),
        call(
            ["npm", "test", "--", "--watchAll=false", "--coverage"],
            cwd=settings.frontend_dir,
        ),
    ]


def test_start_records_pids(manager, mock_runner, settings, capsys):
    """Test starting records both pids and waits between the two launches."""
    # Act
    services = manager.start()

    # Assert
    assert services.backend_pid == 101
    assert services.frontend_pid == 202
    assert processes.read_pid(settings.backend_pid_file) == 101
    assert processes.read_pid(settings.frontend_pid_file) == 202

    assert mock_runner.spawn.call_args_list == [
        call(
            ["mvn", "spring-boot:run"],
            cwd=settings.backend_dir,
            log_path=settings.backend_log,
        ),
        call(["npm", "start"], cwd=settings.frontend_dir, log_path=settings.frontend_log),
    ]
    manager.sleep.assert_called_once_with(10)

    out = capsys.readouterr().out
    assert "http://localhost:8080" in out
    assert "http://localhost:3000" in out
    assert "http://localhost:8080/swagger-ui.html" in out


def test_start_twice_stops_first_pair(manager, mock_runner, settings):
    """Test that a second start stops the first pair and records the new one."""
    # Arrange
    manager.start()

    # Act
    services = manager.start()

    # Assert
    assert mock_runner.terminate.call_args_list == [call(101), call(202)]
    assert services == (303, 404)
    assert processes.read_pid(settings.backend_pid_file) == 303
    assert processes.read_pid(settings.frontend_pid_file) == 404


def test_stop_without_start_is_noop(manager, mock_runner, capsys):
    """Test that stopping with nothing recorded succeeds and does nothing."""
    # Act
    manager.stop()

    # Assert
    mock_runner.terminate.assert_not_called()
    assert "Local services stopped" in capsys.readouterr().out


def test_stop_terminates_and_removes_pid_files(manager, mock_runner, settings):
    """Test stop signals each recorded pid and removes its file."""
    # Arrange
    processes.write_pid(settings.backend_pid_file, 11)
    processes.write_pid(settings.frontend_pid_file, 22)

    # Act
    manager.stop()

    # Assert
    assert mock_runner.terminate.call_args_list == [call(11), call(22)]
    assert not settings.backend_pid_file.exists()
    assert not settings.frontend_pid_file.exists()


def test_stop_tolerates_dead_and_corrupt_entries(manager, mock_runner, settings):
    """Test stop succeeds when a process already exited or a file is garbage."""
    # Arrange
    processes.write_pid(settings.backend_pid_file, 11)
    settings.frontend_pid_file.write_text("garbage")
    mock_runner.terminate.return_value = False

    # Act
    manager.stop()

    # Assert
    mock_runner.terminate.assert_called_once_with(11)
    assert not settings.backend_pid_file.exists()
    assert not settings.frontend_pid_file.exists()


def test_stop_twice(manager, mock_runner, settings):
    """Test that a repeated stop is a no-op."""
    # Arrange
    manager.start()
    manager.stop()

    # Act
    manager.stop()

    # Assert
    assert mock_runner.terminate.call_count == 2


def test_clean_stops_and_removes_logs(manager, mock_runner, settings):
    """Test clean stops services and deletes both log files."""
    # Arrange
    processes.write_pid(settings.backend_pid_file, 11)
    settings.backend_log.write_text("backend output")
    settings.frontend_log.write_text("frontend output")

    # Act
    manager.clean()

    # Assert
    mock_runner.terminate.assert_called_once_with(11)
    assert not settings.backend_log.exists()
    assert not settings.frontend_log.exists()


def test_clean_without_anything_to_clean(manager, capsys):
    """Test clean succeeds on a fresh checkout."""
    manager.clean()
    assert "Cleanup completed" in capsys.readouterr().out


def test_stop_tolerates_process_owned_by_another_user(manager, mock_runner, settings, capsys):
    """Test a reused pid that cannot be signalled is forgotten and stop continues."""
    # Arrange
    processes.write_pid(settings.backend_pid_file, 11)
    processes.write_pid(settings.frontend_pid_file, 22)
    mock_runner.terminate.side_effect = [PermissionError, True]

    # Act
    manager.stop()

    # Assert
    assert mock_runner.terminate.call_args_list == [call(11), call(22)]
    assert not settings.backend_pid_file.exists()
    assert not settings.frontend_pid_file.exists()
    assert "Not permitted to stop process 11" in capsys.readouterr().out


@pytest.mark.parametrize("content", ["-1", "0"])
def test_stop_never_signals_process_groups(manager, mock_runner, settings, content):
    """Test a pid file holding a group address is discarded without signalling."""
    # Arrange
    settings.backend_pid_file.write_text(f"{content}\n")

    # Act
    manager.stop()

    # Assert
    mock_runner.terminate.assert_not_called()
    assert not settings.backend_pid_file.exists()


@pytest.mark.skipif(not Path("/proc/self/stat").exists(), reason="needs /proc")
def test_stop_ends_real_service_and_its_children(settings):
    """Test stop terminates a started service including processes it forked."""
    # Arrange
    child_pid_file = settings.root / "child.pid"
    pid = processes.spawn(
        ["sh", "-c", f"sleep 30 & echo $! > {child_pid_file}; wait"],
        cwd=settings.root,
        log_path=settings.backend_log,
    )
    processes.write_pid(settings.backend_pid_file, pid)
    for _ in range(50):
        if child_pid_file.exists() and child_pid_file.read_text().strip():
            break
        time.sleep(0.1)
    child_pid = int(child_pid_file.read_text())

    # Act
    ServiceManager(settings).stop()

    # Assert
    for _ in range(50):
        if not child_is_running(child_pid):
            break
        time.sleep(0.1)
    assert not child_is_running(child_pid)
    assert not settings.backend_pid_file.exists()


def child_is_running(pid):
    """Check /proc for a live (non-zombie) process."""
    try:
        stat = Path(f"/proc/{pid}/stat").read_text()
    except FileNotFoundError:
        return False
    return stat.rsplit(")", 1)[1].split()[0] != "Z"
