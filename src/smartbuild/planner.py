# planner.py
from __future__ import annotations

import os
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from pathlib import Path
from typing import Dict, List, NamedTuple, Optional, Sequence, Tuple

from .config import load_project_config, resolve_image_spec
from .discovery import DiscoveredImage, find_dockerfiles, resolve_explicit_images, resolve_image_names
from .errors import BuildPlanError
from .github.api_client import GitHubClient
from .github.models import PushEvent
from .model import BuildInstruction, ChangedFile, GitRef, ImageBuildSpec, ProjectConfig, TagTemplates
from .oracle import ChangeSource, GitHubChanges, RegistryOracle
from .patterns import is_build_required
from .templates import create_template_variables, validate_template_variables
from .ui.console import get_console

BRANCH_PREFIX = "refs/heads/"
TAG_PREFIX = "refs/tags/"


def parse_git_ref(ref: str) -> GitRef:
    """
    refs/heads/<name> -> branch, refs/tags/<name> -> tag.

    Raises:
        BuildPlanError: kind="input" for any other ref
    """
    if ref.startswith(BRANCH_PREFIX):
        return GitRef(branch=ref[len(BRANCH_PREFIX):])
    if ref.startswith(TAG_PREFIX):
        return GitRef(tag=ref[len(TAG_PREFIX):])
    raise BuildPlanError(
        kind="input",
        message=f"Unsupported ref: {ref}",
        suggestion="Run on push events for branches (refs/heads/*) or tags (refs/tags/*).",
    )


# ----------------------------------------------------------------------
# Steps
# ----------------------------------------------------------------------

def _validate_inputs(token: str, event: PushEvent) -> GitRef:
    if not token or not token.strip():
        raise BuildPlanError(kind="input", message="Token is required but not provided")

    if event.repository is None or not event.after or not event.ref:
        missing = [
            name
            for name, value in (("repository", event.repository), ("after", event.after), ("ref", event.ref))
            if not value
        ]
        raise BuildPlanError(
            kind="input",
            message="Missing required GitHub context information (repository, after, ref)",
            details={"missing": ", ".join(missing)},
        )
    return parse_git_ref(event.ref)


def _templates_of(*groups: TagTemplates) -> List[str]:
    return [t for group in groups if group for t in group]


def discover_images(project: ProjectConfig, repository_name: str, root_dir: str | Path) -> List[DiscoveredImage]:
    """Explicit `images` from the config win; otherwise walk the tree."""
    if project.images:
        return resolve_explicit_images(project.images, root_dir)

    dockerfiles = find_dockerfiles(root_dir)
    if not dockerfiles:
        raise BuildPlanError(
            kind="discovery",
            message="No Dockerfiles found in the repository",
            path=str(root_dir),
            suggestion="Add a Dockerfile (or Dockerfile.<variant>) to the repository.",
        )
    return resolve_image_names(dockerfiles, repository_name, root_dir)


def resolve_specs(
    project: ProjectConfig,
    repository_name: str,
    root_dir: str | Path,
) -> List[ImageBuildSpec]:
    """One validated ImageBuildSpec per image, in discovery order."""
    validate_template_variables(_templates_of(project.image_tags_on_tag_pushed, project.image_tags_on_branch_pushed))

    specs: List[ImageBuildSpec] = []
    for image in discover_images(project, repository_name, root_dir):
        spec = resolve_image_spec(image.dockerfile_path, image.image_name, project, image.directives)
        try:
            validate_template_variables(_templates_of(spec.tag_templates_on_tag, spec.tag_templates_on_branch))
        except BuildPlanError as e:
            e.path = spec.dockerfile_path
            raise
        specs.append(spec)
    return specs


class Selection(NamedTuple):
    spec: ImageBuildSpec
    templates: Tuple[str, ...]


def select_images(
    specs: Sequence[ImageBuildSpec],
    git_ref: GitRef,
    changed: Sequence[ChangedFile],
) -> List[Selection]:
    """Keep the images whose trigger is enabled (and, on branches, whose watched files changed)."""
    console = get_console()
    selected: List[Selection] = []

    for spec in specs:
        if git_ref.is_tag:
            templates = spec.tag_templates_on_tag
            if templates is None:
                console.print_image_skipped(spec.dockerfile_path, "disabled on tag push")
                continue
        else:
            templates = spec.tag_templates_on_branch
            if templates is None:
                console.print_image_skipped(spec.dockerfile_path, "disabled on branch push")
                continue
            if not is_build_required(spec.watch_files, changed):
                console.print_image_skipped(spec.dockerfile_path, f"no changes match {list(spec.watch_files)}")
                continue

        selected.append(Selection(spec, templates))
    return selected


def _check_registry(
    registry: RegistryOracle,
    selected: Sequence[Selection],
    variables: Dict[str, str],
    max_workers: Optional[int],
) -> List[List[str]]:
    """
    Gate every selected image on tag uniqueness.

    Checks for different images are independent and may overlap; results
    come back in selection order and the first failure (in that order)
    is raised.
    """
    if max_workers is None:
        c = os.cpu_count() or 2
        max_workers = max(1, c - 1)

    def check(sel: Selection) -> List[str]:
        return registry.ensure_unique_tags(sel.templates, variables, sel.spec.image_name)

    if max_workers == 1 or len(selected) <= 1:
        return [check(sel) for sel in selected]

    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        futures = [pool.submit(check, sel) for sel in selected]
        return [fut.result() for fut in futures]


# ----------------------------------------------------------------------
# Public API
# ----------------------------------------------------------------------

def generate_build_instructions(
    token: str,
    timezone: Optional[str],
    event: PushEvent,
    root_dir: str | Path,
    *,
    client: Optional[GitHubClient] = None,
    change_source: Optional[ChangeSource] = None,
    registry: Optional[RegistryOracle] = None,
    max_workers: Optional[int] = None,
    now: Optional[datetime] = None,
) -> List[BuildInstruction]:
    """
    Decide what to build for one push.

    Either every instruction is returned or a BuildPlanError is raised;
    nothing is emitted for images checked before a failure.

    Returns:
        Instructions in discovery order, one per rendered tag (possibly empty)
    """
    git_ref = _validate_inputs(token, event)
    console = get_console()

    if client is None:
        client = GitHubClient(token)
    if change_source is None:
        change_source = GitHubChanges(client)
    if registry is None:
        registry = RegistryOracle(client)

    project = load_project_config(root_dir)
    specs = resolve_specs(project, event.repository.name, root_dir)
    console.print_plan_started(
        repository=f"{event.repository.owner}/{event.repository.name}",
        ref=event.ref,
        dockerfile_count=len(specs),
    )

    variables = create_template_variables(git_ref, event.after, timezone, now)

    changed: List[ChangedFile] = []
    needs_diff = any(s.tag_templates_on_branch is not None and s.watch_files for s in specs)
    if git_ref.is_branch and needs_diff:
        changed = change_source.changed_files(event)
        console.print_debug(f"{len(changed)} changed file(s) between {event.diff_base} and {event.after}")

    selected = select_images(specs, git_ref, changed)
    rendered = _check_registry(registry, selected, variables, max_workers)

    instructions: List[BuildInstruction] = []
    for sel, tags in zip(selected, rendered):
        console.print_image_selected(sel.spec.dockerfile_path, sel.spec.image_name, tags)
        for tag in tags:
            instructions.append(BuildInstruction(sel.spec.dockerfile_path, sel.spec.image_name, tag))
    return instructions
