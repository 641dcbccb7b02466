from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from groundwork.models.sources import GroundingSource, Provider


# --- Requests ---


class SourcesRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    topic: str = Field(min_length=1)
    providers: list[Provider] | None = None
    model: str | None = None
    threshold: float | None = Field(default=None, ge=0.0, le=1.0)
    max_sources: int | None = Field(default=None, ge=0)


# --- Responses ---


class SourcesResponse(BaseModel):
    topic: str
    sources: list[GroundingSource]


class ProviderInfo(BaseModel):
    id: Provider
    description: str
    default_limit: int


class ProvidersResponse(BaseModel):
    providers: list[ProviderInfo]
