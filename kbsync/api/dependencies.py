"""
Service wiring for the API.

Services are built once per app and kept on app.state; routes reach them
through the getters below.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Request

from kbsync.ai_core.matching.semantic_matcher import LLMSemanticMatcher
from kbsync.config import Settings, get_settings
from kbsync.integrations.base import AdapterRegistry
from kbsync.integrations.github import GitHubUnitStore
from kbsync.integrations.slack import SlackChannelAdapter
from kbsync.integrations.zendesk import ZendeskTicketAdapter
from kbsync.services.credential_store import CredentialStore
from kbsync.services.discovery import DiscoveryService
from kbsync.services.discovery_state import DiscoveryStateStore
from kbsync.services.matching_orchestrator import MatchingOrchestrator
from kbsync.services.staging_store import InMemoryStagingStore
from kbsync.services.unit_store import KnowledgeUnitStore


@dataclass
class Services:
    credentials: CredentialStore
    staging: InMemoryStagingStore
    units: KnowledgeUnitStore
    adapters: AdapterRegistry
    matching: MatchingOrchestrator
    discovery: DiscoveryService


def build_services(settings: Optional[Settings] = None) -> Services:
    """Build the production service graph from settings."""
    settings = settings or get_settings()
    credentials = CredentialStore(settings)
    staging = InMemoryStagingStore()
    adapters = AdapterRegistry(
        [SlackChannelAdapter(credentials), ZendeskTicketAdapter(credentials)]
    )
    return Services(
        credentials=credentials,
        staging=staging,
        units=GitHubUnitStore(credentials),
        adapters=adapters,
        matching=MatchingOrchestrator(LLMSemanticMatcher()),
        discovery=DiscoveryService(adapters, staging, DiscoveryStateStore()),
    )


def get_services(request: Request) -> Services:
    return request.app.state.services
