"""appcompiler spec parser.

Parses declarative app spec documents (JSON or YAML) into validated
Pydantic models, reporting every structural problem as a diagnostic.

Usage::

    from appcompiler.parser import SpecParser

    result = await SpecParser().parse_file("app.json")
    if result.success:
        print(result.spec.metadata.name)
"""

from appcompiler.parser.models import (
    ApiEndpoint,
    ApiSpec,
    AppMetadata,
    AppSpec,
    ComponentNode,
    Condition,
    RouteMeta,
    RouteNode,
)
from appcompiler.parser.spec_parser import ParseOptions, ParseResult, SpecParser

__all__ = [
    "SpecParser",
    "ParseOptions",
    "ParseResult",
    "AppSpec",
    "AppMetadata",
    "ComponentNode",
    "Condition",
    "RouteNode",
    "RouteMeta",
    "ApiSpec",
    "ApiEndpoint",
]
