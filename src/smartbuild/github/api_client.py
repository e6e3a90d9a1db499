# github/api_client.py
from __future__ import annotations

import json
import urllib.error
import urllib.request
from typing import Any, Dict, List, Optional
from urllib.parse import quote, urlencode, urljoin

from smartbuild import settings

PER_PAGE = 100


class APIError(Exception):
    """Raised when GitHub API requests fail."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status

    @property
    def not_found(self) -> bool:
        return self.status == 404


class GitHubClient:
    """HTTP client for the few GitHub REST endpoints the planner needs."""

    def __init__(self, token: str, base_url: str = settings.GITHUB_API_URL, timeout: float = 30.0):
        """
        Initialize API client.

        Args:
            token: Token sent as a Bearer credential
            base_url: API root (GitHub Enterprise sets GITHUB_API_URL)
            timeout: Socket timeout in seconds for each request
        """
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout

    def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """
        Make an HTTP request to the API.

        Args:
            method: HTTP method (GET, POST, etc.)
            path: API path (e.g., "/repos/o/r/compare/a...b")
            params: Optional query string parameters

        Returns:
            Parsed JSON response

        Raises:
            APIError: If the request fails
        """
        url = urljoin(self.base_url + "/", path.lstrip("/"))
        if params:
            url = f"{url}?{urlencode(params)}"

        req_headers = {
            "Accept": "application/vnd.github+json",
            "Authorization": f"Bearer {self.token}",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": "smart-docker-build",
        }
        req = urllib.request.Request(url, headers=req_headers, method=method)

        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as response:
                response_data = response.read().decode("utf-8")
                if response_data:
                    return json.loads(response_data)
                return None
        except urllib.error.HTTPError as e:
            error_body = e.read().decode("utf-8") if e.fp else ""
            raise APIError(f"API request failed: {e.code} {e.reason}. {error_body}".strip(), status=e.code)
        except urllib.error.URLError as e:
            raise APIError(f"Network error: {e.reason}")
        except json.JSONDecodeError as e:
            raise APIError(f"Invalid JSON response: {e}")

    def compare_commits(self, owner: str, repo: str, base: str, head: str) -> Dict[str, Any]:
        """
        Compare two commits.

        Returns:
            The compare payload; files are under "files" as [{"filename": ...}, ...]
        """
        path = f"/repos/{quote(owner)}/{quote(repo)}/compare/{quote(base, safe='^~')}...{quote(head)}"
        return self._request("GET", path) or {}

    def list_package_versions(self, package_name: str) -> List[Dict[str, Any]]:
        """
        List every version of a container package owned by the token's user.

        Each version carries its tags under metadata.container.tags.
        """
        versions: List[Dict[str, Any]] = []
        page = 1
        while True:
            batch = self._request(
                "GET",
                f"/user/packages/container/{quote(package_name, safe='')}/versions",
                params={"per_page": PER_PAGE, "page": page},
            ) or []
            versions.extend(batch)
            if len(batch) < PER_PAGE:
                return versions
            page += 1
