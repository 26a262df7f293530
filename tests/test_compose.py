"""
chiralnat/tests/test_compose.py

Tests for the docker / docker compose command wrappers.
"""

import sys

import pytest
import trio

from chiralnat.docker import compose as compose_module
from chiralnat.docker.compose import DockerCompose, detect_compose_command
from chiralnat.docker.runner import CommandResult, CommandRunner
from chiralnat.errors import CommandFailure, CommandUnsuccessful


COMPOSE_FILE = "docker-compose.nat-test.yml"
V2 = ["docker", "compose"]


def make_compose(runner, command=V2):
    return DockerCompose(runner, COMPOSE_FILE, compose_command=command)


class TestCommandRunner:
    """Tests for the real trio-backed runner."""

    @pytest.mark.timeout(30)
    def test_captures_output(self):
        async def run_test():
            return await CommandRunner().run(
                [sys.executable, "-c", "import sys; print('out'); sys.stderr.write('err')"]
            )

        result = trio.run(run_test)
        assert result.ok
        assert result.stdout.strip() == "out"
        assert result.stderr == "err"
        assert result.output.startswith("out")
        assert result.output.endswith("err")

    @pytest.mark.timeout(30)
    def test_nonzero_exit(self):
        args = [sys.executable, "-c", "import sys; sys.exit(3)"]

        async def run_test():
            return await CommandRunner().run(args)

        result = trio.run(run_test)
        assert not result.ok
        assert result.returncode == 3

    @pytest.mark.timeout(30)
    def test_check_raises(self):
        args = [sys.executable, "-c", "import sys; sys.exit(2)"]

        async def run_test():
            await CommandRunner().run(args, check=True)

        with pytest.raises(CommandUnsuccessful) as exc_info:
            trio.run(run_test)
        assert exc_info.value.returncode == 2

    @pytest.mark.timeout(30)
    def test_missing_binary(self):
        async def run_test():
            await CommandRunner().run(["definitely-not-a-real-binary-chiralnat"])

        with pytest.raises(CommandFailure):
            trio.run(run_test)


class TestDetectComposeCommand:
    """Tests for v1/v2 compose detection."""

    def test_prefers_v1_binary(self, fake_runner, monkeypatch):
        monkeypatch.setattr(
            compose_module.shutil, "which",
            lambda name: "/usr/bin/docker-compose" if name == "docker-compose" else None,
        )
        assert trio.run(detect_compose_command, fake_runner) == ["docker-compose"]
        assert fake_runner.calls == []

    def test_falls_back_to_plugin(self, fake_runner, monkeypatch):
        monkeypatch.setattr(
            compose_module.shutil, "which",
            lambda name: "/usr/bin/docker" if name == "docker" else None,
        )
        fake_runner.on(["docker", "compose", "version"], stdout="Docker Compose version v2.29.1")
        assert trio.run(detect_compose_command, fake_runner) == V2

    def test_nothing_installed(self, fake_runner, monkeypatch):
        monkeypatch.setattr(
            compose_module.shutil, "which",
            lambda name: "/usr/bin/docker" if name == "docker" else None,
        )
        fake_runner.on(["docker", "compose"], returncode=1, stderr="unknown command")
        with pytest.raises(CommandFailure):
            trio.run(detect_compose_command, fake_runner)


class TestDockerCompose:
    """Tests for command construction and failure handling."""

    def test_unresolved_command(self, fake_runner):
        compose = DockerCompose(fake_runner, COMPOSE_FILE)
        with pytest.raises(RuntimeError):
            compose.compose_command

    def test_from_command_string(self, fake_runner):
        compose = DockerCompose.from_command_string(fake_runner, COMPOSE_FILE, "docker-compose")
        assert compose.compose_command == ["docker-compose"]
        assert compose.compose_command_display == f"docker-compose -f {COMPOSE_FILE}"

    def test_resolve_keeps_override(self, fake_runner):
        compose = make_compose(fake_runner, ["docker-compose"])
        assert trio.run(compose.resolve_command) == ["docker-compose"]
        assert fake_runner.calls == []

    def test_up_service(self, fake_runner):
        compose = make_compose(fake_runner)
        trio.run(compose.up, "bootstrap")
        assert fake_runner.calls == [
            ["docker", "compose", "-f", COMPOSE_FILE, "up", "-d", "bootstrap"]
        ]

    def test_up_all_failure(self, fake_runner):
        fake_runner.on(["docker", "compose"], returncode=1, stderr="network conflict")
        compose = make_compose(fake_runner)
        with pytest.raises(CommandUnsuccessful) as exc_info:
            trio.run(compose.up)
        assert exc_info.value.step == "Starting all services"
        assert exc_info.value.stderr == "network conflict"

    def test_down_is_best_effort(self, fake_runner):
        fake_runner.on(["docker", "compose"], returncode=1)
        compose = make_compose(fake_runner)
        result = trio.run(compose.down)
        assert not result.ok
        assert fake_runner.calls[0][-2:] == ["down", "-v"]

    def test_build_image(self, fake_runner):
        compose = make_compose(fake_runner)
        trio.run(compose.build_image, "Dockerfile.nat-test", "chiral-network-nat-test", ".")
        assert fake_runner.calls == [
            ["docker", "build", "-f", "Dockerfile.nat-test", "-t", "chiral-network-nat-test", "."]
        ]

    def test_build_failure(self, fake_runner):
        fake_runner.on(["docker", "build"], returncode=1, stderr="no such file")
        compose = make_compose(fake_runner)
        with pytest.raises(CommandUnsuccessful) as exc_info:
            trio.run(compose.build_image, "Dockerfile.nat-test", "img", ".")
        assert exc_info.value.step == "Docker build"

    def test_started_at(self, fake_runner):
        fake_runner.on(
            ["docker", "inspect", "--format", "{{.State.StartedAt}}", "chiral-bootstrap"],
            stdout="2026-10-19T10:00:00.123456789Z\n",
        )
        compose = make_compose(fake_runner)
        assert trio.run(compose.started_at, "chiral-bootstrap") == "2026-10-19T10:00:00.123456789Z"

    def test_inspect_failure_returns_empty(self, fake_runner):
        fake_runner.on(["docker", "inspect"], returncode=1, stderr="No such object")
        compose = make_compose(fake_runner)
        assert trio.run(compose.command_line, "chiral-peer1") == ""

    def test_logs_combines_streams(self, fake_runner):
        fake_runner.on(
            ["docker", "logs"],
            func=lambda args: CommandResult(args, 0, "stdout line\n", "stderr line\n"),
        )
        compose = make_compose(fake_runner)
        assert trio.run(compose.logs, "chiral-peer1") == "stdout line\nstderr line\n"
        assert fake_runner.calls == [["docker", "logs", "chiral-peer1"]]

    def test_logs_since(self, fake_runner):
        compose = make_compose(fake_runner)
        trio.run(compose.logs, "chiral-bootstrap", "2026-10-19T10:00:00Z")
        assert fake_runner.calls == [
            ["docker", "logs", "--since", "2026-10-19T10:00:00Z", "chiral-bootstrap"]
        ]

    def test_logs_failure(self, fake_runner):
        fake_runner.on(["docker", "logs"], returncode=1, stderr="No such container")
        compose = make_compose(fake_runner)
        assert trio.run(compose.logs, "ghost") == ""

        async def checked():
            await compose.logs("ghost", check=True)

        with pytest.raises(CommandUnsuccessful):
            trio.run(checked)

    def test_cleanup_commands(self, fake_runner):
        compose = make_compose(fake_runner)
        trio.run(compose.remove_container, "chiral-bootstrap")
        trio.run(compose.prune_networks)
        assert fake_runner.calls == [
            ["docker", "rm", "-f", "chiral-bootstrap"],
            ["docker", "network", "prune", "-f"],
        ]


class TestPrerequisites:
    """Tests for the docker availability check."""

    def test_docker_missing(self, fake_runner, monkeypatch):
        monkeypatch.setattr(compose_module.shutil, "which", lambda name: None)
        compose = make_compose(fake_runner)
        with pytest.raises(CommandFailure):
            trio.run(compose.check_prerequisites)

    def test_daemon_unreachable(self, fake_runner, monkeypatch):
        monkeypatch.setattr(compose_module.shutil, "which", lambda name: "/usr/bin/" + name)
        fake_runner.on(["docker", "ps"], returncode=1, stderr="permission denied")
        compose = make_compose(fake_runner)
        with pytest.raises(CommandUnsuccessful) as exc_info:
            trio.run(compose.check_prerequisites)
        assert exc_info.value.step == "docker ps"

    def test_all_good(self, fake_runner, monkeypatch):
        monkeypatch.setattr(compose_module.shutil, "which", lambda name: "/usr/bin/" + name)
        compose = make_compose(fake_runner)
        trio.run(compose.check_prerequisites)
        assert ["docker", "ps"] in fake_runner.calls
