"""Project file generators.

Turn the validated spec into source files: the component manifest and
import statements, page routes with their layouts and middleware, and API
handler modules.
"""

from appcompiler.generators.api import ApiGenerationResult, ApiRouteGenerator
from appcompiler.generators.components import (
    ComponentGenerationResult,
    ComponentGenerator,
    ComponentImport,
    ImportGenerator,
    render_jsx,
)
from appcompiler.generators.routes import (
    RouteGenerationResult,
    RouteGenerator,
    normalize_route_path,
    route_component_name,
)

__all__ = [
    "ApiRouteGenerator",
    "ApiGenerationResult",
    "ComponentGenerator",
    "ComponentGenerationResult",
    "ComponentImport",
    "ImportGenerator",
    "RouteGenerator",
    "RouteGenerationResult",
    "normalize_route_path",
    "route_component_name",
    "render_jsx",
]
