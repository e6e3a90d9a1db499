"""Tests for the smart-docker-build command line."""

import json

import pytest
from click.testing import CliRunner

from conftest import SHA, FakeGitHubClient
from smartbuild.cli import cli, write_outputs
from smartbuild.model import BuildInstruction


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def event_file(tmp_path):
    def _event(ref="refs/heads/main", **extra):
        payload = {
            "ref": ref,
            "after": SHA,
            "repository": {"name": "my-repo", "owner": {"login": "octocat"}},
        }
        payload.update(extra)
        path = tmp_path / "event.json"
        path.write_text(json.dumps(payload), encoding="utf-8")
        return str(path)
    return _event


@pytest.fixture
def fake_github(monkeypatch):
    client = FakeGitHubClient(changed=["Dockerfile"])
    monkeypatch.setattr("smartbuild.cli.GitHubClient", lambda token: client)
    return client


def run_plan(runner, *args):
    return runner.invoke(cli, ["plan", *args], catch_exceptions=False)


class TestWriteOutputs:
    def test_appends_to_github_output(self, tmp_path):
        output = tmp_path / "out"
        output.write_text("previous=1\n", encoding="utf-8")

        write_outputs([BuildInstruction("Dockerfile", "app", "v1")], str(output))

        lines = output.read_text(encoding="utf-8").splitlines()
        assert lines[0] == "previous=1"
        assert json.loads(lines[1].split("=", 1)[1]) == [
            {"dockerfilePath": "Dockerfile", "imageName": "app", "imageTag": "v1"}
        ]
        assert lines[2] == "has_builds=true"

    def test_empty_plan(self, tmp_path):
        output = tmp_path / "out"

        write_outputs([], str(output))

        assert output.read_text(encoding="utf-8") == "build_args=[]\nhas_builds=false\n"


class TestPlanCommand:
    def test_branch_push_writes_outputs(self, runner, tmp_path, write_file, event_file, fake_github):
        write_file("repo/Dockerfile", "FROM alpine\n")
        output = tmp_path / "github_output"

        result = run_plan(
            runner,
            "--token", "ghs_token",
            "--event-path", event_file(),
            "--workspace", str(tmp_path / "repo"),
            "--github-output", str(output),
        )

        assert result.exit_code == 0, result.output
        outputs = dict(line.split("=", 1) for line in output.read_text(encoding="utf-8").splitlines())
        build_args = json.loads(outputs["build_args"])
        assert [a["imageTag"] for a in build_args][1] == "latest"
        assert build_args[0]["imageTag"].startswith("main-")
        assert build_args[0]["imageTag"].endswith("-abcdef1")
        assert outputs["has_builds"] == "true"
        assert "BUILD PLAN" in result.output

    def test_prints_outputs_without_github_output(self, runner, tmp_path, write_file, event_file, fake_github, monkeypatch):
        monkeypatch.delenv("GITHUB_OUTPUT", raising=False)
        write_file("repo/Dockerfile", "# image: app\n")

        result = run_plan(
            runner,
            "--token", "ghs_token",
            "--event-path", event_file(ref="refs/tags/v1.0"),
            "--workspace", str(tmp_path / "repo"),
        )

        assert result.exit_code == 0, result.output
        assert 'build_args=[{"dockerfilePath": "Dockerfile", "imageName": "app", "imageTag": "v1.0"}]' in result.output
        assert "has_builds=true" in result.output

    def test_reads_token_from_environment(self, runner, tmp_path, write_file, event_file, fake_github, monkeypatch):
        monkeypatch.setenv("INPUT_TOKEN", "ghs_env")
        monkeypatch.delenv("GITHUB_OUTPUT", raising=False)
        write_file("repo/Dockerfile")

        result = run_plan(runner, "--event-path", event_file(), "--workspace", str(tmp_path / "repo"))

        assert result.exit_code == 0, result.output

    def test_missing_token_exits_1(self, runner, tmp_path, write_file, event_file, fake_github, monkeypatch):
        monkeypatch.delenv("INPUT_TOKEN", raising=False)
        write_file("repo/Dockerfile")

        result = run_plan(runner, "--event-path", event_file(), "--workspace", str(tmp_path / "repo"))

        assert result.exit_code == 1
        assert "Token is required but not provided" in result.output
        assert fake_github.compare_calls == []

    def test_collision_exits_1_without_outputs(self, runner, tmp_path, write_file, event_file, monkeypatch):
        client = FakeGitHubClient(published={"app": ["v1.0"]})
        monkeypatch.setattr("smartbuild.cli.GitHubClient", lambda token: client)
        write_file("repo/Dockerfile", "# image: app\n")
        output = tmp_path / "github_output"

        result = run_plan(
            runner,
            "--token", "ghs_token",
            "--event-path", event_file(ref="refs/tags/v1.0"),
            "--workspace", str(tmp_path / "repo"),
            "--github-output", str(output),
        )

        assert result.exit_code == 1
        assert "Image tag 'app:v1.0' already exists in registry" in result.output
        assert not output.exists()

    def test_force_overwrite(self, runner, tmp_path, write_file, event_file, monkeypatch):
        client = FakeGitHubClient(published={"app": ["v1.0"]})
        monkeypatch.setattr("smartbuild.cli.GitHubClient", lambda token: client)
        monkeypatch.delenv("GITHUB_OUTPUT", raising=False)
        write_file("repo/Dockerfile", "# image: app\n")

        result = run_plan(
            runner,
            "--token", "ghs_token",
            "--event-path", event_file(ref="refs/tags/v1.0"),
            "--workspace", str(tmp_path / "repo"),
            "--force-overwrite",
        )

        assert result.exit_code == 0, result.output
        assert client.version_calls == []

    def test_unreadable_event_exits_1(self, runner, tmp_path):
        result = run_plan(
            runner,
            "--token", "ghs_token",
            "--event-path", str(tmp_path / "missing.json"),
            "--workspace", str(tmp_path),
        )

        assert result.exit_code == 1
        assert "input error" in result.output

    def test_debug_flag_shows_debug_lines(self, runner, tmp_path, write_file, event_file, fake_github, monkeypatch):
        monkeypatch.delenv("GITHUB_OUTPUT", raising=False)
        write_file("repo/smart-docker-build.yml", "watchFiles: ['**/*']\n")
        write_file("repo/Dockerfile")

        result = runner.invoke(
            cli,
            [
                "--debug", "plan",
                "--token", "ghs_token",
                "--event-path", event_file(),
                "--workspace", str(tmp_path / "repo"),
            ],
            catch_exceptions=False,
        )

        assert result.exit_code == 0, result.output
        assert "[DEBUG]" in result.output
