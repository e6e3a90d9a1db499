# discovery.py
from __future__ import annotations

import os
from pathlib import Path, PurePosixPath
from typing import Iterable, List, NamedTuple

from . import settings
from .config import extract_dockerfile_directives
from .errors import BuildPlanError
from .model import DockerfileDirectives, ImageEntry
from .ui.console import get_console


class DiscoveredImage(NamedTuple):
    dockerfile_path: str
    image_name: str
    directives: DockerfileDirectives


def is_dockerfile(name: str) -> bool:
    return name == "Dockerfile" or name.startswith("Dockerfile.")


def find_dockerfiles(root_dir: str | Path) -> List[str]:
    """
    Recursively find Dockerfiles under root_dir.

    Skips vendored/generated directories (settings.SKIP_DIRS) and any
    directory that cannot be listed. Entries are visited in sorted order
    so the result is stable across runs.

    Returns:
        POSIX paths relative to root_dir, e.g. ["Dockerfile", "api/Dockerfile.prod"]
    """
    root = Path(root_dir)
    found: List[str] = []

    def search(directory: Path) -> None:
        try:
            entries = sorted(os.scandir(directory), key=lambda e: e.name)
        except OSError as e:
            # unreadable directory: skip and keep walking
            get_console().print_debug(f"Skipping unreadable directory {directory}: {e}")
            return

        for entry in entries:
            if entry.is_dir(follow_symlinks=False):
                if entry.name not in settings.SKIP_DIRS:
                    search(Path(entry.path))
            elif is_dockerfile(entry.name):
                found.append(Path(entry.path).relative_to(root).as_posix())

    search(root)
    return found


def resolve_image_names(
    dockerfiles: List[str],
    repository_name: str,
    root_dir: str | Path,
) -> List[DiscoveredImage]:
    """
    Attach an image name to every discovered Dockerfile.

    A single Dockerfile may omit `# image:` and is then named after the
    repository. With several Dockerfiles every one must declare its name.

    Raises:
        BuildPlanError: kind="config" for the first Dockerfile without a name
    """
    images: List[DiscoveredImage] = []

    if len(dockerfiles) == 1:
        path = dockerfiles[0]
        directives = extract_dockerfile_directives(path, root_dir)
        images.append(DiscoveredImage(path, directives.image_name or repository_name, directives))
        return images

    for path in dockerfiles:
        directives = extract_dockerfile_directives(path, root_dir)
        if not directives.image_name:
            raise BuildPlanError(
                kind="config",
                message=f"Multiple Dockerfiles found but no image name specified for {path}",
                path=path,
                suggestion=(
                    "Solutions:\n"
                    "   - Add comment: # image: my-image-name\n"
                    f"   - List the images explicitly under 'images:' in {settings.CONFIG_FILENAME}"
                ),
            )
        images.append(DiscoveredImage(path, directives.image_name, directives))

    return images


def resolve_explicit_images(
    entries: Iterable[ImageEntry],
    root_dir: str | Path,
) -> List[DiscoveredImage]:
    """
    Use the images listed in the project config instead of discovery.

    The configured name wins over any `# image:` directive; the other
    directives still apply.

    Raises:
        BuildPlanError: kind="config" when a listed Dockerfile does not exist
    """
    images: List[DiscoveredImage] = []
    for entry in entries:
        path = PurePosixPath(entry.dockerfile).as_posix()
        if not (Path(root_dir) / path).is_file():
            raise BuildPlanError(
                kind="config",
                message=f"Dockerfile {path} listed in {settings.CONFIG_FILENAME} does not exist",
                path=path,
                suggestion="Paths in 'images' are relative to the repository root.",
            )
        directives = extract_dockerfile_directives(path, root_dir)
        images.append(DiscoveredImage(path, entry.name, directives))
    return images
