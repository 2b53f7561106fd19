"""
GitHub Integration Module

Reads knowledge units from a GitHub repository.
"""

from kbsync.integrations.github.client import GitHubUnitStore

__all__ = ["GitHubUnitStore"]
