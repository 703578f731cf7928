"""
GitHub API client with rate limit handling and caching.

All calls target a single account. Responses are cached in a CacheStore
under ``github:*`` keys with their own TTL, independent of the project
cache, so bursts of reads do not exhaust the rate limit.
"""

from __future__ import annotations

import logging
import os
import subprocess
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any

import requests

from folio.cache.store import CacheKeys, CacheStore
from folio.core.config import DEFAULT_COMMIT_REPO_LIMIT, DEFAULT_REQUEST_TIMEOUT, GITHUB_CACHE_TTL
from folio.core.errors import UpstreamError
from folio.projects.models import RemoteRepository

logger = logging.getLogger(__name__)

GITHUB_API = "https://api.github.com"
PER_PAGE = 100


def _get_gh_auth_token() -> str | None:
    """Try to get token from GitHub CLI (gh auth token).

    Returns:
        Token string or None if gh CLI not available/authenticated
    """
    try:
        result = subprocess.run(
            ["gh", "auth", "token"],
            capture_output=True,
            text=True,
            timeout=5,
        )
        if result.returncode == 0 and result.stdout.strip():
            return result.stdout.strip()
    except (subprocess.SubprocessError, FileNotFoundError):
        pass
    return None


@dataclass(frozen=True)
class GitHubStats:
    """Aggregate statistics for the account."""

    total_repos: int = 0
    total_stars: int = 0
    total_forks: int = 0
    total_commits: int = 0
    most_starred_repo: dict[str, Any] | None = None
    recent_activity: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        return {
            "totalRepos": data["total_repos"],
            "totalStars": data["total_stars"],
            "totalForks": data["total_forks"],
            "totalCommits": data["total_commits"],
            "mostStarredRepo": data["most_starred_repo"],
            "recentActivity": data["recent_activity"] or "Unknown",
        }


class GitHubClient:
    """GitHub API client for one account."""

    def __init__(
        self,
        username: str,
        token: str | None = None,
        cache: CacheStore | None = None,
        cache_ttl: float = GITHUB_CACHE_TTL,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        commit_repo_limit: int = DEFAULT_COMMIT_REPO_LIMIT,
    ):
        """Initialize client.

        Token resolution order:
        1. Explicit token parameter
        2. GITHUB_TOKEN environment variable
        3. gh auth token (GitHub CLI)

        Without a token requests go out unauthenticated (60 requests/hour).

        Args:
            username: Account whose repositories are fetched
            token: GitHub personal access token
            cache: Shared cache store (a private one is created if omitted)
            cache_ttl: TTL in seconds for cached API responses
            timeout: Per-request timeout in seconds
            commit_repo_limit: How many repositories get commit counts
        """
        self.username = username
        self.token = token or os.environ.get("GITHUB_TOKEN") or _get_gh_auth_token()
        self.cache = cache if cache is not None else CacheStore(default_ttl=cache_ttl)
        self.cache_ttl = cache_ttl
        self.timeout = timeout
        self.commit_repo_limit = commit_repo_limit
        self.rate_limit_remaining: str | None = None
        self.rate_limit_reset: str | None = None
        self._session = requests.Session()
        self._session.headers.update({
            "Accept": "application/vnd.github.v3+json",
            "User-Agent": "folio-portfolio/1.0",
        })

    def _headers(self) -> dict[str, str]:
        if self.token:
            return {"Authorization": f"Bearer {self.token}"}
        return {}

    def _request(self, path: str, params: dict[str, Any] | None = None) -> Any:
        """GET a GitHub API path and return the decoded JSON.

        Raises:
            UpstreamError: On network errors, timeouts, rate limiting or
                any non-success status
        """
        url = f"{GITHUB_API}/{path.lstrip('/')}"
        try:
            response = self._session.request(
                "GET",
                url,
                params=params,
                headers=self._headers(),
                timeout=self.timeout,
            )
        except requests.Timeout as e:
            raise UpstreamError(f"GitHub API timed out after {self.timeout}s: {path}") from e
        except requests.RequestException as e:
            raise UpstreamError(f"GitHub API request failed: {e}") from e

        self.rate_limit_remaining = response.headers.get("X-RateLimit-Remaining")
        self.rate_limit_reset = response.headers.get("X-RateLimit-Reset")

        if response.status_code in (403, 429) and self.rate_limit_remaining == "0":
            reset = self.rate_limit_reset
            when = datetime.fromtimestamp(int(reset)).strftime("%H:%M:%S") if reset else "unknown"
            raise UpstreamError(
                f"GitHub rate limit exceeded (resets at {when})",
                upstream_status=response.status_code,
            )

        if not response.ok:
            raise UpstreamError(
                f"GitHub API error: {response.status_code}",
                upstream_status=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise UpstreamError(f"GitHub API returned invalid JSON for {path}") from e

    def _cached(self, key: str, loader: Any, fresh: bool = False) -> Any:
        """Return the cached value for key, loading and storing it on a miss."""
        if not fresh:
            cached = self.cache.get(key)
            if cached is not None:
                return cached
        value = loader()
        self.cache.set(key, value, self.cache_ttl)
        return value

    def get_rate_limit(self) -> dict[str, Any] | None:
        """Get current rate limit status, or None if unavailable."""
        try:
            result = self._request("rate_limit")
        except UpstreamError as e:
            logger.warning("Could not fetch rate limit: %s", e)
            return None
        return result if isinstance(result, dict) else None

    def list_repository_payloads(self, fresh: bool = False) -> list[dict[str, Any]]:
        """Fetch raw repository payloads, most recently updated first.

        Args:
            fresh: Skip the cache read (the result is still cached)

        Raises:
            UpstreamError: If any page fails
        """
        def load() -> tuple[dict[str, Any], ...]:
            repos: list[dict[str, Any]] = []
            page = 1
            while True:
                data = self._request(
                    f"users/{self.username}/repos",
                    params={"sort": "updated", "per_page": PER_PAGE, "page": page, "type": "owner"},
                )
                if not isinstance(data, list):
                    raise UpstreamError("GitHub API returned an unexpected repository listing")
                repos.extend(data)
                if len(data) < PER_PAGE:
                    break
                page += 1
            return tuple(repos)

        return list(self._cached(CacheKeys.github_repos(self.username), load, fresh=fresh))

    def list_repositories(self, fresh: bool = False) -> list[RemoteRepository]:
        """Fetch the account's repositories as snapshots.

        Malformed entries are skipped with a warning.

        Raises:
            UpstreamError: If the listing cannot be fetched
        """
        repositories = []
        for payload in self.list_repository_payloads(fresh=fresh):
            try:
                repositories.append(RemoteRepository.from_api(payload))
            except ValueError as e:
                logger.warning("Skipping malformed repository payload: %s", e)
        return repositories

    def get_user(self) -> dict[str, Any]:
        """Fetch the account profile.

        Raises:
            UpstreamError: If the call fails
        """
        def load() -> dict[str, Any]:
            data = self._request(f"users/{self.username}")
            if not isinstance(data, dict):
                raise UpstreamError("GitHub API returned an unexpected user payload")
            return data

        return dict(self._cached(CacheKeys.github_user(self.username), load))

    def get_repo_languages(self, repo: str) -> dict[str, float]:
        """Get language breakdown for a repository.

        Best-effort: failures return an empty dict.

        Args:
            repo: Repository name

        Returns:
            Dict mapping language name to percentage
        """
        def load() -> dict[str, float]:
            data = self._request(f"repos/{self.username}/{repo}/languages")
            if not isinstance(data, dict):
                return {}
            total = sum(data.values())
            if total == 0:
                return {}
            return {lang: (bytes_count / total) * 100 for lang, bytes_count in data.items()}

        try:
            return dict(self._cached(CacheKeys.github_languages(self.username, repo), load))
        except UpstreamError as e:
            logger.debug("Language breakdown unavailable for %s: %s", repo, e)
            return {}

    def get_commit_count(self, repo: str) -> int:
        """Count the account's commits in a repository (first page, max 100).

        Best-effort: failures count as 0 and are only logged.
        """
        def load() -> int:
            data = self._request(
                f"repos/{self.username}/{repo}/commits",
                params={"author": self.username, "per_page": PER_PAGE},
            )
            return len(data) if isinstance(data, list) else 0

        try:
            return int(self._cached(CacheKeys.github_commits(self.username, repo), load))
        except UpstreamError as e:
            logger.warning("Failed to fetch commits for %s: %s", repo, e)
            return 0

    def get_stats(self) -> GitHubStats:
        """Aggregate stars, forks and commits across the account.

        Commit counts are fetched for the ``commit_repo_limit`` most recently
        updated repositories only.

        Raises:
            UpstreamError: If the user profile or repository listing fails
        """
        def load() -> GitHubStats:
            user = self.get_user()
            repos = self.list_repositories()

            counted = repos[: self.commit_repo_limit]
            total_commits = 0
            if counted:
                with ThreadPoolExecutor(max_workers=min(8, len(counted))) as executor:
                    total_commits = sum(executor.map(self.get_commit_count, [r.name for r in counted]))

            most_starred = max(repos, key=lambda r: r.stars, default=None)
            pushed = [r.pushed_at for r in repos if r.pushed_at]

            return GitHubStats(
                total_repos=int(user.get("public_repos", len(repos))),
                total_stars=sum(r.stars for r in repos),
                total_forks=sum(r.forks for r in repos),
                total_commits=total_commits,
                most_starred_repo={
                    "name": most_starred.name,
                    "stars": most_starred.stars,
                    "description": most_starred.description or "No description available",
                    "language": most_starred.primary_language or "Unknown",
                } if most_starred else None,
                recent_activity=max(pushed) if pushed else None,
            )

        stats: GitHubStats = self._cached(CacheKeys.github_stats(self.username), load)
        return stats
