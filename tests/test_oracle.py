"""Tests for oracle.py - changed files and registry tag checks."""

import subprocess

import pytest

from conftest import SHA, FakeGitHubClient, make_event
from smartbuild.errors import BuildPlanError
from smartbuild.github.api_client import APIError
from smartbuild.github.models import NULL_SHA
from smartbuild.model import ChangedFile
from smartbuild.oracle import LocalGitChanges, RegistryOracle, get_repository_changes, package_name_of


class TestGetRepositoryChanges:
    def test_diffs_against_parent_without_before(self):
        client = FakeGitHubClient(changed=["Dockerfile", "src/app.py"])

        files = get_repository_changes(client, make_event())

        assert files == [ChangedFile("Dockerfile", "modified"), ChangedFile("src/app.py", "modified")]
        assert client.compare_calls == [("octocat", "my-repo", f"{SHA}^", SHA)]

    def test_uses_before_sha_when_present(self):
        client = FakeGitHubClient()

        get_repository_changes(client, make_event(before="1111111"))

        assert client.compare_calls[0][2] == "1111111"

    def test_null_before_sha_falls_back_to_parent(self):
        client = FakeGitHubClient()

        get_repository_changes(client, make_event(before=NULL_SHA))

        assert client.compare_calls[0][2] == f"{SHA}^"

    def test_api_failure_is_fatal(self):
        class Broken(FakeGitHubClient):
            def compare_commits(self, owner, repo, base, head):
                raise APIError("API request failed: 500 Server Error.", status=500)

        with pytest.raises(BuildPlanError) as excinfo:
            get_repository_changes(Broken(), make_event())
        assert excinfo.value.kind == "changes"


class TestLocalGitChanges:
    def test_reads_git_diff(self, monkeypatch, tmp_path):
        calls = []

        def fake_changed_files(base, head, cwd=None):
            calls.append((base, head, cwd))
            return ["Dockerfile"]

        monkeypatch.setattr("smartbuild.oracle.git.changed_files", fake_changed_files)

        files = LocalGitChanges(tmp_path).changed_files(make_event())

        assert files == [ChangedFile("Dockerfile")]
        assert calls == [(f"{SHA}^", SHA, tmp_path)]

    def test_git_failure_is_fatal(self, monkeypatch, tmp_path):
        def failing(base, head, cwd=None):
            raise subprocess.CalledProcessError(128, ["git", "diff"])

        monkeypatch.setattr("smartbuild.oracle.git.changed_files", failing)

        with pytest.raises(BuildPlanError) as excinfo:
            LocalGitChanges(tmp_path).changed_files(make_event())
        assert excinfo.value.kind == "changes"


class TestCheckImageTagExists:
    def test_package_name_is_last_segment(self):
        assert package_name_of("octocat/my-app") == "my-app"
        assert package_name_of("my-app") == "my-app"

    def test_published_tag(self):
        registry = RegistryOracle(FakeGitHubClient(published={"my-app": ["v1.0"]}))

        assert registry.check_image_tag_exists("my-app", "v1.0")
        assert not registry.check_image_tag_exists("my-app", "v2.0")

    def test_not_found_means_free(self):
        registry = RegistryOracle(FakeGitHubClient())
        assert not registry.check_image_tag_exists("new-app", "v1.0")

    def test_other_failures_are_fatal_when_strict(self):
        client = FakeGitHubClient(errors={"my-app": APIError("API request failed: 403 Forbidden.", status=403)})
        registry = RegistryOracle(client, policy="strict")

        with pytest.raises(BuildPlanError) as excinfo:
            registry.check_image_tag_exists("my-app", "v1.0")
        assert excinfo.value.kind == "registry"

    def test_other_failures_are_free_when_lenient(self):
        client = FakeGitHubClient(errors={"my-app": APIError("Network error: timed out")})
        registry = RegistryOracle(client, policy="lenient")

        assert not registry.check_image_tag_exists("my-app", "v1.0")

    def test_unknown_policy(self):
        with pytest.raises(ValueError):
            RegistryOracle(FakeGitHubClient(), policy="sometimes")


class TestEnsureUniqueTags:
    def test_collision_names_image_and_tag(self):
        registry = RegistryOracle(FakeGitHubClient(published={"my-app": ["v1.0"]}))

        with pytest.raises(BuildPlanError) as excinfo:
            registry.ensure_unique_tags(["{tag}", "latest"], {"tag": "v1.0"}, "my-app")

        err = excinfo.value
        assert err.kind == "collision"
        assert "my-app:v1.0" in err.message
        assert "{timestamp}" in err.suggestion

    def test_latest_is_always_allowed(self):
        client = FakeGitHubClient(published={"my-app": ["v1.0", "latest"]})
        registry = RegistryOracle(client)

        assert registry.ensure_unique_tags(["latest"], {"tag": "v1.0"}, "my-app") == ["latest"]
        assert client.version_calls == []

    def test_returns_rendered_tags(self):
        registry = RegistryOracle(FakeGitHubClient(published={"my-app": ["v0.9"]}))

        tags = registry.ensure_unique_tags(["{tag}", "latest"], {"tag": "v1.0"}, "my-app")

        assert tags == ["v1.0", "latest"]

    def test_force_overwrite_skips_lookup(self):
        client = FakeGitHubClient(published={"my-app": ["v1.0"]})
        registry = RegistryOracle(client, force_overwrite=True)

        assert registry.ensure_unique_tags(["{tag}"], {"tag": "v1.0"}, "my-app") == ["v1.0"]
        assert client.version_calls == []
