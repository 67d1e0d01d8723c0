"""GitHub REST client for the repository / pull request browser.

Plain reads with a fixed page size of 100. No pagination beyond the first
page and no retries; any failure is logged and surfaces as GitHubError.
"""

import os
from datetime import datetime

import requests
import structlog
from pydantic import BaseModel, ConfigDict

logger = structlog.get_logger(__name__)

GITHUB_API_URL = os.environ.get("GITHUB_API_URL", "https://api.github.com")
PAGE_SIZE = 100
JSON_MEDIA_TYPE = "application/vnd.github+json"
DIFF_MEDIA_TYPE = "application/vnd.github.v3.diff"


class GitHubError(Exception):
    """A provider call failed. The message is safe to show to the user."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class _GitHubModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class GitHubUser(_GitHubModel):
    login: str
    avatar_url: str | None = None
    name: str | None = None


class RepositoryOwner(_GitHubModel):
    login: str


class Repository(_GitHubModel):
    id: int
    name: str
    full_name: str
    owner: RepositoryOwner
    description: str | None = None
    private: bool = False
    updated_at: datetime | None = None


class BranchRef(_GitHubModel):
    ref: str
    sha: str


class PullRequest(_GitHubModel):
    id: int
    number: int
    title: str
    body: str | None = None
    state: str
    user: GitHubUser
    created_at: datetime
    updated_at: datetime
    head: BranchRef
    base: BranchRef


class PullRequestFile(_GitHubModel):
    filename: str
    status: str
    additions: int = 0
    deletions: int = 0
    changes: int = 0
    patch: str | None = None


class GitHubClient:
    """Token-bound wrapper over a requests.Session."""

    def __init__(self, access_token: str, base_url: str = GITHUB_API_URL,
                 session: requests.Session | None = None):
        self.base_url = base_url.rstrip("/")
        self._session = session or requests.Session()
        self._session.headers.update({
            "Authorization": f"token {access_token}",
            "Accept": JSON_MEDIA_TYPE,
        })

    def _get(self, path: str, failure: str, params: dict | None = None,
             accept: str | None = None) -> requests.Response:
        headers = {"Accept": accept} if accept else None
        try:
            resp = self._session.get(f"{self.base_url}{path}", params=params, headers=headers)
        except requests.RequestException as e:
            logger.error("github.request_failed", path=path, error=str(e))
            raise GitHubError(failure) from e

        if not resp.ok:
            logger.error("github.error_status", path=path, status=resp.status_code,
                         body=resp.text[:500])
            raise GitHubError(failure, status_code=resp.status_code)

        logger.debug("github.ok", path=path)
        return resp

    def get_authenticated_user(self) -> GitHubUser:
        resp = self._get("/user", "Failed to fetch user profile")
        return GitHubUser.model_validate(resp.json())

    def list_repositories(self) -> list[Repository]:
        """Repositories the user can see (owned, member, forks), most recently updated first."""
        resp = self._get(
            "/user/repos",
            "Failed to fetch repositories",
            params={"sort": "updated", "per_page": PAGE_SIZE, "type": "all"},
        )
        return [Repository.model_validate(r) for r in resp.json()]

    def list_pull_requests(self, owner: str, repo: str, state: str = "open") -> list[PullRequest]:
        resp = self._get(
            f"/repos/{owner}/{repo}/pulls",
            "Failed to fetch pull requests",
            params={"state": state, "sort": "updated", "direction": "desc", "per_page": PAGE_SIZE},
        )
        return [PullRequest.model_validate(pr) for pr in resp.json()]

    def get_pull_request(self, owner: str, repo: str, number: int) -> PullRequest:
        resp = self._get(f"/repos/{owner}/{repo}/pulls/{number}",
                         "Failed to fetch pull request details")
        return PullRequest.model_validate(resp.json())

    def list_pull_request_files(self, owner: str, repo: str, number: int) -> list[PullRequestFile]:
        resp = self._get(
            f"/repos/{owner}/{repo}/pulls/{number}/files",
            "Failed to fetch pull request files",
            params={"per_page": PAGE_SIZE},
        )
        return [PullRequestFile.model_validate(f) for f in resp.json()]

    def get_pull_request_diff(self, owner: str, repo: str, number: int) -> str:
        """Whole-PR unified diff as text."""
        resp = self._get(
            f"/repos/{owner}/{repo}/pulls/{number}",
            "Failed to fetch pull request diff",
            accept=DIFF_MEDIA_TYPE,
        )
        return resp.text
