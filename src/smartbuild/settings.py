from __future__ import annotations
import os

CONFIG_FILENAME = "smart-docker-build.yml"
DIRECTIVE_SCAN_LINES = 10
SKIP_DIRS = frozenset({"node_modules", ".git", ".github", "dist", "build"})

GITHUB_API_URL = os.environ.get("GITHUB_API_URL", "https://api.github.com")
DEFAULT_TIMEZONE = os.environ.get("SMART_DOCKER_BUILD_TIMEZONE", "UTC")
# strict | lenient
REGISTRY_FAILURE_POLICY = os.environ.get("SMART_DOCKER_BUILD_REGISTRY_POLICY", "strict")
