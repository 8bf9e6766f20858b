"""Pydantic v2 models for application specs.

Defines the data model hierarchy for a declarative application description:
metadata, the component tree, routes, and API endpoints.  Input documents use
camelCase keys (``requiresAuth``, ``cacheControl``); snake_case names are
accepted as well.
"""

from __future__ import annotations

from collections.abc import Iterator
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

_SPEC_MODEL_CONFIG = ConfigDict(extra="forbid", populate_by_name=True)


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class HTTPMethod(str, Enum):
    """Supported HTTP methods for API endpoints."""
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    PATCH = "PATCH"


class ConditionOperator(str, Enum):
    """Comparison used by a conditional-rendering rule."""
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    CONTAINS = "contains"
    EXISTS = "exists"


# ---------------------------------------------------------------------------
# Metadata
# ---------------------------------------------------------------------------

class AppMetadata(BaseModel):
    """Application identity."""
    model_config = _SPEC_MODEL_CONFIG

    name: str = Field(
        ...,
        min_length=1,
        max_length=50,
        pattern=r"^[a-z][a-z0-9-]*$",
        description="Application name (lowercase, alphanumeric with hyphens)",
    )
    version: str = Field(
        ...,
        min_length=1,
        pattern=r"^\d+\.\d+\.\d+(-[a-zA-Z0-9-]+)?$",
        description="Semantic version, e.g. 1.0.0 or 1.0.0-beta",
    )
    description: Optional[str] = Field(default=None, max_length=200)
    author: Optional[str] = Field(default=None, max_length=100)
    license: Optional[str] = Field(default=None, max_length=50)


# ---------------------------------------------------------------------------
# Components
# ---------------------------------------------------------------------------

class Condition(BaseModel):
    """A conditional-rendering rule on a component."""
    model_config = _SPEC_MODEL_CONFIG

    field: str = Field(..., min_length=1)
    operator: ConditionOperator
    value: Any = None


class ComponentNode(BaseModel):
    """One node in the component tree.

    ``type`` is a registry key but is not checked here; whether it exists is
    decided while planning.
    """
    model_config = _SPEC_MODEL_CONFIG

    id: str = Field(..., min_length=1, max_length=50, pattern=r"^[a-zA-Z][a-zA-Z0-9_-]*$")
    type: str = Field(..., min_length=1, max_length=50)
    props: dict[str, Any] = Field(default_factory=dict)
    children: list[ComponentNode] = Field(default_factory=list)
    conditions: Optional[list[Condition]] = None


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

class RouteMeta(BaseModel):
    """Page-level metadata for a route."""
    model_config = _SPEC_MODEL_CONFIG

    title: Optional[str] = Field(default=None, max_length=100)
    description: Optional[str] = Field(default=None, max_length=200)
    keywords: Optional[list[str]] = Field(default=None, max_length=20)
    requires_auth: Optional[bool] = Field(default=None, alias="requiresAuth")
    cache_control: Optional[str] = Field(default=None, alias="cacheControl")
    data_handler: Optional[bool] = Field(default=None, alias="dataHandler")


class RouteNode(BaseModel):
    """A page route.  ``component`` and ``layout`` reference component ids."""
    model_config = _SPEC_MODEL_CONFIG

    path: str = Field(..., min_length=1, pattern=r"^/[a-zA-Z0-9/_:*.\-]*$")
    component: str = Field(..., min_length=1, max_length=50)
    layout: Optional[str] = Field(default=None, max_length=50)
    middleware: Optional[list[str]] = Field(default=None, max_length=10)
    props: Optional[dict[str, Any]] = None
    meta: Optional[RouteMeta] = None


# ---------------------------------------------------------------------------
# API
# ---------------------------------------------------------------------------

class ApiEndpoint(BaseModel):
    """A single API endpoint served by the generated project."""
    model_config = _SPEC_MODEL_CONFIG

    path: str = Field(..., min_length=1, pattern=r"^/[a-zA-Z0-9/_:*.\-]*$")
    methods: list[HTTPMethod] = Field(..., min_length=1)
    handler: str = Field(..., min_length=1)
    description: Optional[str] = None


class ApiSpec(BaseModel):
    """Collection of API endpoints."""
    model_config = _SPEC_MODEL_CONFIG

    endpoints: list[ApiEndpoint] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------

class AppSpec(BaseModel):
    """Root of a declarative application description."""
    model_config = _SPEC_MODEL_CONFIG

    metadata: AppMetadata
    components: list[ComponentNode] = Field(default_factory=list)
    routes: list[RouteNode]
    api: Optional[ApiSpec] = None
    theme: Optional[dict[str, Any]] = None

    def iter_components(self) -> Iterator[ComponentNode]:
        """Yield every component in the tree, depth first, parents first."""
        stack = list(reversed(self.components))
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def component_ids(self) -> set[str]:
        return {node.id for node in self.iter_components()}

    @property
    def has_api(self) -> bool:
        return self.api is not None and len(self.api.endpoints) > 0


ComponentNode.model_rebuild()
