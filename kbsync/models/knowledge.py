"""
Knowledge Unit Models

This module defines knowledge units and the scope each one declares.
Knowledge units are read-only to the matching engine.
"""

from typing import List, Optional
from pydantic import BaseModel, Field


class ScopeDefinition(BaseModel):
    """
    Structured declaration of what a knowledge unit covers.
    """

    covers: str = Field(
        "", description="Comma/semicolon-delimited topic terms the unit covers"
    )
    future_additions: List[str] = Field(
        default_factory=list, description="Topics the unit will cover later"
    )
    not_included: List[str] = Field(
        default_factory=list, description="Topics the unit explicitly excludes"
    )
    keywords: Optional[List[str]] = Field(
        None, description="Pre-extracted keywords used for overlap scoring"
    )


class KnowledgeUnit(BaseModel):
    """A stored, reusable piece of curated content with a declared scope."""

    id: str = Field(..., description="Unique unit identifier")
    title: str = Field(..., description="Unit title")
    scope: ScopeDefinition = Field(
        default_factory=ScopeDefinition, description="Declared scope"
    )
    library_id: Optional[str] = Field(None, description="Owning library")
    status: str = Field("active", description="Status: active, draft, archived")

    @property
    def is_matchable(self) -> bool:
        """Units without a covers declaration never enter candidate sets."""
        return bool(self.scope.covers and self.scope.covers.strip())
