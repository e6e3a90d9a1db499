# oracle.py
from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Dict, Iterable, List, Protocol

from . import settings
from .errors import BuildPlanError
from .git_facts import git
from .github.api_client import APIError, GitHubClient
from .github.models import PushEvent
from .model import ChangedFile
from .templates import render_tags
from .ui.console import get_console

# Always allowed to be overwritten.
MOVING_TAGS = frozenset({"latest"})

REGISTRY_POLICIES = ("strict", "lenient")


# ---------------------------------------------------------------------
# Changed files
# ---------------------------------------------------------------------

class ChangeSource(Protocol):
    def changed_files(self, event: PushEvent) -> List[ChangedFile]: ...


def get_repository_changes(client: GitHubClient, event: PushEvent) -> List[ChangedFile]:
    """
    Files touched by a push, from the GitHub compare API.

    Diffs `before..after` when the payload has a real `before` SHA,
    otherwise `after^..after`.

    Raises:
        BuildPlanError: kind="changes" if the compare call fails
    """
    repo = event.repository
    base, head = event.diff_base, event.after
    try:
        compare = client.compare_commits(repo.owner, repo.name, base, head)
    except APIError as e:
        raise BuildPlanError(
            kind="changes",
            message=f"Could not compare {base}...{head} in {repo.owner}/{repo.name}",
            details={"error": str(e)},
            suggestion="Check that the token can read repository contents.",
        ) from e
    return [ChangedFile.from_dict(f) for f in compare.get("files") or []]


class GitHubChanges:
    """Changed files from the GitHub compare API."""

    def __init__(self, client: GitHubClient):
        self.client = client

    def changed_files(self, event: PushEvent) -> List[ChangedFile]:
        return get_repository_changes(self.client, event)


class LocalGitChanges:
    """Changed files from `git diff` in a local checkout."""

    def __init__(self, repo_root: str | Path):
        self.repo_root = Path(repo_root)

    def changed_files(self, event: PushEvent) -> List[ChangedFile]:
        base, head = event.diff_base, event.after
        try:
            names = git.changed_files(base, head, cwd=self.repo_root)
        except (subprocess.CalledProcessError, FileNotFoundError) as e:
            raise BuildPlanError(
                kind="changes",
                message=f"git diff {base}..{head} failed in {self.repo_root}",
                details={"error": str(e)},
                suggestion="Fetch enough history (e.g. actions/checkout with fetch-depth: 2) or use --changes-from github.",
            ) from e
        return [ChangedFile(filename=name) for name in names]


# ---------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------

def package_name_of(image_name: str) -> str:
    """ "owner/my-app" -> "my-app" """
    return image_name.rsplit("/", 1)[-1]


class RegistryOracle:
    """
    Answers "is this tag already published?" from the container registry.

    policy:
      strict   a failed lookup aborts the run, unless it is a 404
      lenient  any failed lookup counts as "tag does not exist"
    """

    def __init__(
        self,
        client: GitHubClient,
        *,
        policy: str = settings.REGISTRY_FAILURE_POLICY,
        force_overwrite: bool = False,
    ):
        if policy not in REGISTRY_POLICIES:
            raise ValueError(f"Unknown registry failure policy: {policy!r} (expected one of {REGISTRY_POLICIES})")
        self.client = client
        self.policy = policy
        self.force_overwrite = force_overwrite

    def check_image_tag_exists(self, image_name: str, tag: str) -> bool:
        package = package_name_of(image_name)
        try:
            versions = self.client.list_package_versions(package)
        except APIError as e:
            if e.not_found:
                get_console().print_debug(f"Package {package} not found in registry")
                return False
            if self.policy == "lenient":
                get_console().print_warning(f"Registry lookup for {image_name}:{tag} failed, assuming tag is free: {e}")
                return False
            raise BuildPlanError(
                kind="registry",
                message=f"Could not check whether {image_name}:{tag} already exists",
                details={"error": str(e)},
                suggestion=(
                    "Make sure the token has read:packages permission, or set "
                    "--registry-policy lenient to treat lookup failures as 'tag is free'."
                ),
            ) from e

        return any(tag in _tags_of(v) for v in versions)

    def ensure_unique_tags(
        self,
        templates: Iterable[str],
        variables: Dict[str, str],
        image_name: str,
    ) -> List[str]:
        """
        Render templates and refuse any tag that is already published.

        `latest` may always be overwritten.

        Returns:
            The rendered tags, in template order.

        Raises:
            BuildPlanError: kind="collision" naming image:tag
        """
        tags = render_tags(templates, variables)
        if self.force_overwrite:
            return tags

        for tag in tags:
            if tag in MOVING_TAGS:
                continue
            if self.check_image_tag_exists(image_name, tag):
                raise BuildPlanError(
                    kind="collision",
                    message=f"Image tag '{image_name}:{tag}' already exists in registry",
                    details={"image": image_name, "tag": tag},
                    suggestion=(
                        "Solutions:\n"
                        "   - Update the tag in the Dockerfile comment or smart-docker-build.yml\n"
                        "   - Use unique variables like {timestamp} or {sha}\n"
                        "   - Use --force-overwrite if overwriting is intentional"
                    ),
                )
        return tags


def _tags_of(version: Dict) -> List[str]:
    metadata = version.get("metadata") or {}
    container = metadata.get("container") or {}
    return container.get("tags") or []
