"""
Tests for the HTTP API, wired to in-memory services.
"""

from typing import Dict, List

import pytest
from fastapi.testclient import TestClient

from kbsync.api.dependencies import Services
from kbsync.config import Settings
from kbsync.errors import ProviderError, RemoteUnavailableError
from kbsync.integrations.base import AdapterRegistry, ProviderAdapter
from kbsync.main import create_app
from kbsync.models.knowledge import KnowledgeUnit, ScopeDefinition
from kbsync.models.staging import (
    PageRequest,
    PaginationStyle,
    ProviderPage,
    RawItem,
    SourceType,
)
from kbsync.services.credential_store import CredentialStore
from kbsync.services.discovery import DiscoveryPaginator, DiscoveryService
from kbsync.services.discovery_state import DiscoveryStateStore
from kbsync.services.matching_orchestrator import MatchingOrchestrator
from kbsync.services.staging_store import InMemoryStagingStore
from kbsync.services.unit_store import InMemoryUnitStore


class FakeTicketAdapter(ProviderAdapter):
    source_type = SourceType.ZENDESK
    display_name = "Fake Tickets"
    item_label = "tickets"
    pagination = PaginationStyle.PAGE
    page_delay_seconds = 0

    def __init__(self):
        self.pages: List[ProviderPage] = []
        self.connection: Dict[str, object] = {"success": True}
        self.fail = False

    async def list_items(self, request: PageRequest) -> ProviderPage:
        if self.fail:
            raise ProviderError("Zendesk API error: 503")
        if not self.pages:
            return ProviderPage(items=[], has_more=False)
        return self.pages.pop(0)

    async def test_connection(self) -> Dict[str, object]:
        return self.connection


class UnavailableSemanticMatcher:
    async def match(self, request):
        raise RemoteUnavailableError("semantic service down")


UNITS = [
    KnowledgeUnit(
        id="sso",
        title="SSO Setup",
        library_id="it",
        scope=ScopeDefinition(covers="SSO configuration, SAML setup"),
    ),
    KnowledgeUnit(
        id="vpn",
        title="VPN Access",
        library_id="it",
        scope=ScopeDefinition(covers="VPN client installation"),
    ),
    KnowledgeUnit(id="bare", title="No Scope", library_id="it"),
]


@pytest.fixture
def adapter():
    return FakeTicketAdapter()


@pytest.fixture
def services(adapter):
    credentials = CredentialStore(Settings())
    staging = InMemoryStagingStore()
    adapters = AdapterRegistry([adapter])
    return Services(
        credentials=credentials,
        staging=staging,
        units=InMemoryUnitStore(UNITS),
        adapters=adapters,
        matching=MatchingOrchestrator(UnavailableSemanticMatcher()),
        discovery=DiscoveryService(
            adapters,
            staging,
            DiscoveryStateStore(),
            DiscoveryPaginator(staging, max_iterations=5, page_delay_seconds=0),
        ),
    )


@pytest.fixture
def client(services):
    return TestClient(create_app(services))


def _tickets(*ids: str) -> List[RawItem]:
    return [RawItem(external_id=i, title=f"Ticket {i}", content=f"SAML issue {i}") for i in ids]


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


class TestMatchingRoutes:
    def test_match_with_library_units(self, client):
        response = client.post(
            "/api/matching/match",
            json={
                "content": {"id": "q1", "label": "Question", "content": "Our SAML setup requires a new certificate"},
                "content_type": "question",
                "library_id": "it",
            },
        )

        assert response.status_code == 200
        body = response.json()
        assert body["mode"] == "execute"
        assert [m["unit_id"] for m in body["matches"]] == ["sso"]

    def test_preview_mode(self, client):
        response = client.post(
            "/api/matching/match",
            json={
                "content": [{"id": "c1", "content": "SAML setup"}],
                "library_id": "it",
                "mode": "preview",
            },
        )

        body = response.json()
        assert body["mode"] == "preview"
        assert body["total_units_available"] == 2
        assert len(body["all_units"]) == 2

    def test_forecast_mode(self, client):
        response = client.post(
            "/api/matching/match",
            json={"content": [{"id": "c1", "content": "x"}], "library_id": "it", "mode": "forecast"},
        )
        assert response.json()["estimated_tokens"] == 2 * 3000 + 200 + 500

    def test_no_content_is_bad_request(self, client):
        response = client.post("/api/matching/match", json={"content": [], "library_id": "it"})
        assert response.status_code == 400

    def test_no_units_is_bad_request(self, client):
        response = client.post(
            "/api/matching/match",
            json={"content": [{"id": "c1", "content": "SAML"}], "library_id": "unknown"},
        )
        assert response.status_code == 400

    def test_semantic_failure_is_bad_gateway(self, client):
        response = client.post(
            "/api/matching/match",
            json={"content": [{"id": "c1", "content": "SAML"}], "library_id": "it", "strategy": "semantic"},
        )
        assert response.status_code == 502

    def test_hybrid_degrades_to_keyword(self, client):
        response = client.post(
            "/api/matching/match",
            json={
                "content": [{"id": "c1", "content": "SAML setup"}],
                "library_id": "it",
                "strategy": "hybrid",
            },
        )
        assert response.status_code == 200
        assert response.json()["matches"][0]["strategy"] == "keyword"

    def test_suggest_new_unit(self, client):
        assert client.post("/api/matching/suggest-new-unit", json={"matches": []}).json() == {
            "suggest_new_unit": True
        }


class TestDiscoveryRoutes:
    def test_list_adapters(self, client):
        response = client.get("/api/discovery/adapters")
        assert response.json() == {
            "adapters": [{"source_type": "zendesk", "display_name": "Fake Tickets"}]
        }

    def test_run_stages_and_stores_state(self, client, adapter):
        adapter.pages = [ProviderPage(items=_tickets("1", "2"), has_more=True)]

        response = client.post("/api/discovery/zendesk/run", json={"library_id": "it", "window_days": 7})

        body = response.json()
        assert response.status_code == 200
        assert body["status"] == "completed"
        assert body["staged"] == 2
        assert body["has_more"] is True

        state = client.get("/api/discovery/zendesk/state", params={"library_id": "it"}).json()
        assert state["page"] == 2

        staged = client.get("/api/staged", params={"library_id": "it"}).json()
        assert staged["total"] == 2

    def test_reset_state(self, client, adapter):
        adapter.pages = [ProviderPage(items=_tickets("1"), has_more=True)]
        client.post("/api/discovery/zendesk/run", json={"library_id": "it"})

        response = client.delete("/api/discovery/zendesk/state", params={"library_id": "it"})

        assert response.json() == {"success": True}
        state = client.get("/api/discovery/zendesk/state", params={"library_id": "it"}).json()
        assert state["page"] is None
        assert state["since"] is None

    def test_exhausted_run(self, client):
        response = client.post("/api/discovery/zendesk/run", json={"library_id": "it"})
        body = response.json()
        assert body["status"] == "exhausted"
        assert body["message"] == "No new tickets found in this time range"

    def test_unsupported_source_type(self, client):
        response = client.post("/api/discovery/slack/run", json={"library_id": "it"})
        assert response.status_code == 400

    def test_unknown_source_type(self, client):
        response = client.post("/api/discovery/myspace/run", json={"library_id": "it"})
        assert response.status_code == 422

    def test_provider_failure(self, client, adapter):
        adapter.fail = True
        response = client.post("/api/discovery/zendesk/run", json={"library_id": "it"})
        assert response.status_code == 502


class TestStagedRoutes:
    def test_get_and_incorporate(self, client, adapter):
        adapter.pages = [ProviderPage(items=_tickets("1"), has_more=False)]
        client.post("/api/discovery/zendesk/run", json={"library_id": "it"})
        item_id = client.get("/api/staged").json()["items"][0]["id"]

        item = client.get(f"/api/staged/{item_id}").json()
        assert item["external_id"] == "1"
        assert item["incorporated_at"] is None

        incorporated = client.post(f"/api/staged/{item_id}/incorporate").json()
        assert incorporated["incorporated_at"] is not None
        assert client.get("/api/staged", params={"pending_only": True}).json()["total"] == 0

    def test_missing_item(self, client):
        assert client.get("/api/staged/missing").status_code == 404
        assert client.post("/api/staged/missing/incorporate").status_code == 404


def test_list_units(client):
    body = client.get("/api/units", params={"library_id": "it"}).json()
    assert body["total"] == 3
    assert body["matchable"] == 2


class TestCredentialRoutes:
    def test_store_and_validate(self, client, services):
        response = client.post(
            "/api/credentials/zendesk",
            json={"values": {"subdomain": " acme ", "email": "agent@acme.test"}},
        )

        assert response.status_code == 200
        assert response.json()["success"] is True
        assert services.credentials.get("zendesk_subdomain") == "acme"

    def test_failed_validation_clears_credentials(self, client, services, adapter):
        adapter.connection = {"success": False, "error": "401 Unauthorized"}

        response = client.post("/api/credentials/zendesk", json={"values": {"subdomain": "acme"}})

        assert response.json()["success"] is False
        assert "401 Unauthorized" in response.json()["message"]
        assert not services.credentials.has("zendesk_subdomain")

    def test_unknown_provider(self, client):
        assert client.post("/api/credentials/gong", json={"values": {}}).status_code == 404

    def test_unknown_field(self, client):
        response = client.post("/api/credentials/zendesk", json={"values": {"password": "x"}})
        assert response.status_code == 400

    def test_disconnect(self, client, services):
        services.credentials.set("zendesk_subdomain", "acme")
        response = client.delete("/api/credentials/zendesk")
        assert response.json()["success"] is True
        assert not services.credentials.has("zendesk_subdomain")
