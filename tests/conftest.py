"""Shared fixtures: in-memory GitHub client and small repository trees."""

from datetime import datetime, timezone

import pytest

from smartbuild.github.api_client import APIError
from smartbuild.github.models import PushEvent, Repository
from smartbuild.ui.console import Console, set_console

SHA = "abcdef1234567890abcdef1234567890abcdef12"
FIXED_NOW = datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)


class FakeGitHubClient:
    """Stands in for GitHubClient; records every call."""

    def __init__(self, changed=None, published=None, errors=None):
        self.changed = list(changed or [])
        # package name -> list of tags already published
        self.published = dict(published or {})
        # package name -> APIError to raise
        self.errors = dict(errors or {})
        self.compare_calls = []
        self.version_calls = []

    def compare_commits(self, owner, repo, base, head):
        self.compare_calls.append((owner, repo, base, head))
        return {"files": [{"filename": f, "status": "modified"} for f in self.changed]}

    def list_package_versions(self, package_name):
        self.version_calls.append(package_name)
        if package_name in self.errors:
            raise self.errors[package_name]
        if package_name not in self.published:
            raise APIError("API request failed: 404 Not Found.", status=404)
        return [{"id": 1, "metadata": {"container": {"tags": list(self.published[package_name])}}}]


@pytest.fixture(autouse=True)
def quiet_console():
    set_console(Console(debug=False))
    yield


@pytest.fixture
def fake_client():
    return FakeGitHubClient()


@pytest.fixture
def write_file(tmp_path):
    def _write(relative, content=""):
        path = tmp_path / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path
    return _write


def make_event(ref="refs/heads/main", after=SHA, before=None, name="my-repo", owner="octocat"):
    return PushEvent(
        repository=Repository(name=name, owner=owner) if name else None,
        ref=ref,
        after=after,
        before=before,
    )
