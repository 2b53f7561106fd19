"""
GitHub Knowledge Unit Store

Responsibilities:
- Repository scanning for knowledge unit markdown files
- Frontmatter parsing (id, title, library, status, keywords, scope)
- Scope from frontmatter `scope:` or a "## Scope Definition" section

Units whose scope cannot be parsed are logged and skipped.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from github import Github
from github.GithubException import GithubException, UnknownObjectException
from github.Repository import Repository

from kbsync.ai_core.parsing import parse_scope_markdown, sanitize_scope
from kbsync.errors import MalformedScopeError, ProviderError
from kbsync.models.knowledge import KnowledgeUnit, ScopeDefinition
from kbsync.services.credential_store import CredentialStore
from kbsync.utils.helpers import extract_frontmatter, flatten_list

logger = logging.getLogger(__name__)


class GitHubUnitStore:
    """Reads knowledge units from markdown files in a GitHub repository."""

    def __init__(
        self,
        credentials: Optional[CredentialStore] = None,
        repo: Optional[Repository] = None,
    ):
        self.credentials = credentials or CredentialStore()
        self._repo = repo
        self.default_branch = self.credentials.get("github_default_branch", "main")

    @property
    def repo(self) -> Repository:
        if self._repo is not None:
            return self._repo
        owner = self.credentials.get("github_repo_owner")
        name = self.credentials.get("github_repo_name")
        if not owner or not name:
            raise ProviderError("GitHub repository is not configured")
        client = Github(self.credentials.get("github_token"))
        return client.get_repo(f"{owner}/{name}")

    async def list_active_units(self, library_id: Optional[str] = None) -> List[KnowledgeUnit]:
        """
        Scan the repository and return its active knowledge units.

        Args:
            library_id: Only return units whose frontmatter `library` matches

        Returns:
            Parsed units; files without a usable scope are skipped
        """
        units = await asyncio.to_thread(self.read_units)
        return [
            unit
            for unit in units
            if unit.status == "active" and (library_id is None or unit.library_id == library_id)
        ]

    def read_units(self) -> List[KnowledgeUnit]:
        try:
            logger.info("Reading knowledge unit repository...")
            repo = self.repo
            contents = repo.get_contents("", ref=self.default_branch)
            units = self._scan_directory(repo, contents)
            logger.info(f"Found {len(units)} knowledge units in repository")
            return units

        except UnknownObjectException:
            # Repository is empty or the branch doesn't exist
            logger.info("Repository is empty or branch doesn't exist")
            return []
        except GithubException as e:
            logger.error(f"GitHub API error reading repository: {e}", exc_info=True)
            raise ProviderError(f"GitHub API error: {e}") from e

    def _scan_directory(self, repo: Repository, contents) -> List[KnowledgeUnit]:
        """Recursively scan directory contents for unit markdown files."""
        units = []

        for content in contents:
            if content.type == "dir":
                subcontents = repo.get_contents(content.path, ref=self.default_branch)
                units.extend(self._scan_directory(repo, subcontents))
            elif content.type == "file" and content.name.endswith(".md"):
                unit = self.parse_unit(
                    content.path, content.decoded_content.decode("utf-8")
                )
                if unit:
                    units.append(unit)

        return units

    def parse_unit(self, path: str, raw: str) -> Optional[KnowledgeUnit]:
        """
        Parse one markdown file into a knowledge unit.

        Returns:
            KnowledgeUnit, or None if the file has no usable scope
        """
        frontmatter, body = extract_frontmatter(raw)
        frontmatter = frontmatter or {}

        try:
            scope = self._parse_scope(frontmatter, body)
        except MalformedScopeError as e:
            logger.warning(f"Skipping {path}: {e}")
            return None

        if scope is None:
            logger.debug(f"Skipping {path}: no scope definition")
            return None

        keywords = flatten_list(frontmatter.get("keywords"))
        if keywords and not scope.keywords:
            scope = scope.model_copy(update={"keywords": keywords})

        file_stem = path.rsplit("/", 1)[-1][: -len(".md")]
        return KnowledgeUnit(
            id=str(frontmatter.get("id") or path),
            title=str(frontmatter.get("title") or file_stem),
            scope=scope,
            library_id=str(frontmatter["library"]) if frontmatter.get("library") else None,
            status=str(frontmatter.get("status", "active")),
        )

    @staticmethod
    def _parse_scope(frontmatter: Dict[str, Any], body: str) -> Optional[ScopeDefinition]:
        if "scope" in frontmatter:
            return sanitize_scope(frontmatter["scope"])
        return parse_scope_markdown(body)
