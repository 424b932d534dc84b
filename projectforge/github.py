"""Publish generated documentation to a new GitHub repository.

Uses httpx for async HTTP requests against the GitHub REST API.
"""

import asyncio
import base64
import re
from typing import Dict, List

import httpx

from .config import GITHUB_API_URL, GITHUB_INIT_DELAY, GITHUB_REPO_PRIVATE, GITHUB_TOKEN
from .errors import ConfigurationError, UpstreamError
from .log import get_logger
from .models import Artifacts, Interpretation, PublishResult

logger = get_logger(__name__)

DISCLAIMER = (
    "> **Note**: This is an AI-generated zero-shot implementation scaffold. "
    "Ready to run with placeholder functionality.\n\n"
)


def slugify(text: str) -> str:
    """Lowercase, runs of non-alphanumerics become a single hyphen, no edge hyphens."""
    return re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")


def build_repo_files(artifacts: Artifacts) -> List[Dict[str, str]]:
    """Files to upload as {path, content}; empty optional docs are left out."""
    files = [
        {"path": "README.md", "content": DISCLAIMER + (artifacts.readme or "# Project\n\nNo README content generated.")},
        {"path": "docs/paper.md", "content": DISCLAIMER + (artifacts.paper_draft or "# Paper\n\nNo paper content generated.")},
    ]
    optional_docs = [
        ("docs/API.md", artifacts.api_documentation),
        ("docs/DEPLOYMENT.md", artifacts.deployment_guide),
        ("docs/TESTING.md", artifacts.testing_strategy),
        ("docs/ARCHITECTURE.md", artifacts.code_structure),
    ]
    files.extend({"path": path, "content": content} for path, content in optional_docs if content)
    return files


class GitHubPublisher:
    """Creates a repository for the authenticated user and uploads files into it."""

    def __init__(self, token: str, api_url: str = GITHUB_API_URL):
        self.api_url = api_url.rstrip("/")
        self._headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github.v3+json",
        }

    async def get_owner(self, client: httpx.AsyncClient) -> str:
        resp = await client.get(f"{self.api_url}/user", headers=self._headers)
        if resp.status_code >= 400:
            raise UpstreamError(f"GitHub API error getting user: {resp.text}", status_code=resp.status_code)
        return resp.json()["login"]

    async def create_repo(self, client: httpx.AsyncClient, name: str, description: str) -> dict:
        resp = await client.post(
            f"{self.api_url}/user/repos",
            headers=self._headers,
            json={
                "name": name,
                "description": description,
                "private": GITHUB_REPO_PRIVATE,
                "auto_init": True,
            },
        )
        if resp.status_code >= 400:
            raise UpstreamError(f"GitHub API error creating repo: {resp.text}", status_code=resp.status_code)
        repo = resp.json()
        logger.info(f"Created repo {name}: {repo.get('html_url')}")
        return repo

    async def upload_file(self, client: httpx.AsyncClient, owner: str, repo_name: str, path: str, content: str) -> bool:
        """Upload one file. Returns False (after logging) instead of raising."""
        try:
            resp = await client.put(
                f"{self.api_url}/repos/{owner}/{repo_name}/contents/{path}",
                headers=self._headers,
                json={
                    "message": f"Add {path}",
                    "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
                },
            )
        except httpx.HTTPError as e:
            logger.error(f"Error creating file {path}: {e}")
            return False

        if resp.status_code >= 400:
            logger.error(f"GitHub API error creating {path}: {resp.text}")
            return False
        return True

    async def publish(self, interpretation: Interpretation, artifacts: Artifacts) -> str:
        """
        Create the repository and upload every document.

        Returns:
            The repository's html_url

        Raises:
            UpstreamError: Resolving the user or creating the repository failed
        """
        repo_name = slugify(interpretation.title)
        description = interpretation.objectives[0] if interpretation.objectives else "AI-generated project"

        async with httpx.AsyncClient(timeout=30) as client:
            owner = await self.get_owner(client)
            repo = await self.create_repo(client, repo_name, description)

            # auto_init creates the default branch asynchronously
            await asyncio.sleep(GITHUB_INIT_DELAY)

            files = build_repo_files(artifacts)
            uploaded = 0
            for file in files:
                if await self.upload_file(client, owner, repo_name, file["path"], file["content"]):
                    uploaded += 1
            logger.info(f"Uploaded {uploaded}/{len(files)} files to {owner}/{repo_name}")

        return repo["html_url"]


async def publish_to_github(interpretation: Interpretation, artifacts: Artifacts) -> PublishResult:
    """Publish to GitHub; any failure is returned as a failed PublishResult."""
    try:
        if not GITHUB_TOKEN:
            raise ConfigurationError("GITHUB_TOKEN not configured")
        url = await GitHubPublisher(GITHUB_TOKEN).publish(interpretation, artifacts)
        return PublishResult.success("github", url)
    except Exception as e:
        logger.warning(f"GitHub publish failed: {e}")
        return PublishResult.failure("github", str(e))
