from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from github import Github
from github.GithubException import GithubException, BadCredentialsException
from typing import Dict, Optional
import logging

from kbsync.api.dependencies import Services, get_services
from kbsync.models.staging import SourceType
from kbsync.services.credential_store import PROVIDER_KEYS

logger = logging.getLogger(__name__)
router = APIRouter()


class CredentialsRequest(BaseModel):
    """Credentials sent from the UI to store on the backend."""

    values: Dict[str, str] = Field(
        ...,
        description="Field names without the provider prefix, e.g. {'bot_token': 'xoxb-...'}",
    )


class CredentialsResponse(BaseModel):
    success: bool
    message: str
    details: Optional[Dict[str, object]] = None


def _validate_github(services: Services) -> CredentialsResponse:
    credentials = services.credentials
    owner = credentials.get("github_repo_owner")
    name = credentials.get("github_repo_name")
    try:
        gh_client = Github(credentials.get("github_token"))
        repo = gh_client.get_repo(f"{owner}/{name}")
        logger.info(f"Verified access to repository: {repo.full_name}")
    except BadCredentialsException:
        return CredentialsResponse(
            success=False,
            message="Invalid GitHub token. Please check your personal access token and try again.",
        )
    except GithubException as gh_err:
        if gh_err.status == 404:
            return CredentialsResponse(
                success=False,
                message=f"Repository '{owner}/{name}' not found or token doesn't have access to it.",
            )
        logger.error(f"GitHub API error during repository verification: {gh_err}")
        return CredentialsResponse(success=False, message=f"GitHub API error: {gh_err}")

    return CredentialsResponse(
        success=True,
        message=f"Successfully connected to {owner}/{name}",
        details={"repo_full_name": repo.full_name},
    )


@router.post("/credentials/{provider}", response_model=CredentialsResponse)
async def set_credentials(
    provider: str,
    request: CredentialsRequest,
    services: Services = Depends(get_services),
):
    """
    Store credentials for a provider and validate the connection.

    Values are kept in the in-memory credential store and override .env settings.
    On a failed validation the provider's stored credentials are cleared again.
    """
    allowed = PROVIDER_KEYS.get(provider)
    if allowed is None:
        raise HTTPException(status_code=404, detail=f"Unknown provider: {provider}")

    keys = {f"{provider}_{name}": value for name, value in request.values.items()}
    unknown = sorted(key for key in keys if key not in allowed)
    if unknown:
        raise HTTPException(
            status_code=400, detail=f"Unknown credential fields for {provider}: {unknown}"
        )

    for key, value in keys.items():
        services.credentials.set(key, value.strip())

    if provider == "github":
        response = _validate_github(services)
    else:
        adapter = services.adapters.get(SourceType(provider))
        result = await adapter.test_connection()
        response = CredentialsResponse(
            success=bool(result.get("success")),
            message=(
                f"Successfully connected to {adapter.display_name}"
                if result.get("success")
                else f"{adapter.display_name} connection failed: {result.get('error')}"
            ),
            details=result,
        )

    if not response.success:
        # Don't keep bad state
        services.credentials.clear(f"{provider}_")
        logger.warning(f"{provider} credentials rejected: {response.message}")
    else:
        logger.info(f"{provider} credentials stored")

    return response


@router.delete("/credentials/{provider}", response_model=CredentialsResponse)
async def clear_provider_credentials(provider: str, services: Services = Depends(get_services)):
    if provider not in PROVIDER_KEYS:
        raise HTTPException(status_code=404, detail=f"Unknown provider: {provider}")
    services.credentials.clear(f"{provider}_")
    logger.info(f"{provider} credentials cleared")
    return CredentialsResponse(success=True, message=f"Disconnected from {provider}")
