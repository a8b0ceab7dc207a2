"""Pydantic envelopes for the HTTP API layer."""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class Envelope(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Link(BaseModel):
    """HATEOAS link to a related resource."""

    rel: str
    href: str
    method: str = "GET"


class SuccessEnvelope(Envelope):
    """Response for a single added or retrieved entity."""

    is_ok: Literal[True] = Field(default=True, alias="isOk")
    status: int
    links: Dict[str, Link]
    result: Dict[str, Any]


class PagedItem(BaseModel):
    result: Dict[str, Any]
    links: Dict[str, Link]


class PagedEnvelope(Envelope):
    """Response for one page of find results, with ``next``/``prev`` links."""

    is_ok: Literal[True] = Field(default=True, alias="isOk")
    status: int
    links: Dict[str, Link]
    result: List[PagedItem]


class ErrorDetail(BaseModel):
    code: str
    message: str
    field: Optional[str] = None


class ErrorEnvelope(Envelope):
    """Response carrying every error detected for a failed request."""

    is_ok: Literal[False] = Field(default=False, alias="isOk")
    status: int
    errors: List[ErrorDetail]
