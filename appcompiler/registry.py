"""Component registry.

The registry maps component type names (``Button``, ``Card``) to a
:class:`RegistryEntry` describing the component's dependencies, its prop
schema and where it is imported from in the generated project.  The
compiler treats it as read-only.
"""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any, Iterator, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field

from appcompiler.utils import get_logger

logger = get_logger("registry")

_TYPE_CHECKS: dict[str, Any] = {
    "string": lambda v: isinstance(v, str),
    "number": lambda v: isinstance(v, (int, float)) and not isinstance(v, bool),
    "boolean": lambda v: isinstance(v, bool),
    "array": lambda v: isinstance(v, list),
    "object": lambda v: isinstance(v, dict),
    "function": lambda v: isinstance(v, str),
    "any": lambda v: True,
}

# Props every component accepts without declaring them.
_UNIVERSAL_PROPS = {"id", "class", "className", "style", "children"}


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------

class PropSpec(BaseModel):
    """Schema for a single component prop."""
    model_config = ConfigDict(populate_by_name=True)

    type: str = Field(default="any", description="string|number|boolean|array|object|function|any")
    required: bool = False
    enum: Optional[list[Any]] = None
    pattern: Optional[str] = None
    min_length: Optional[int] = Field(default=None, alias="minLength")
    max_length: Optional[int] = Field(default=None, alias="maxLength")
    min: Optional[float] = None
    max: Optional[float] = None
    default: Any = None
    description: Optional[str] = None


class RegistryEntry(BaseModel):
    """A registered component type."""
    model_config = ConfigDict(populate_by_name=True)

    dependencies: list[str] = Field(default_factory=list)
    category: str = Field(default="layout")
    prop_schema: dict[str, PropSpec] = Field(default_factory=dict, alias="propSchema")
    description: str = ""
    import_path: Optional[str] = Field(default=None, alias="importPath")
    island: bool = False


class PropIssue(BaseModel):
    """One problem found while validating props."""

    field: str
    message: str
    suggestion: Optional[str] = None


class PropValidationResult(BaseModel):
    valid: bool = True
    errors: list[PropIssue] = Field(default_factory=list)
    warnings: list[PropIssue] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

class ComponentRegistry:
    """Read-only lookup table of component types."""

    def __init__(
        self,
        entries: dict[str, RegistryEntry] | None = None,
        *,
        source_path: Path | None = None,
    ) -> None:
        self._entries: dict[str, RegistryEntry] = dict(entries or {})
        self.source_path = source_path

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def lookup(self, name: str) -> Optional[RegistryEntry]:
        return self._entries.get(name)

    def names(self) -> list[str]:
        return list(self._entries)

    def validate_props(self, name: str, props: dict[str, Any]) -> PropValidationResult:
        """Validate *props* against the prop schema of component *name*.

        Missing required props and type, enum, pattern, length and range
        violations are errors.  Props the schema does not declare are
        warnings.  A component without a schema accepts anything.
        """
        entry = self._entries.get(name)
        if entry is None:
            return PropValidationResult(
                valid=False,
                errors=[PropIssue(field="type", message=f"Unknown component type '{name}'")],
            )

        schema = entry.prop_schema
        if not schema:
            return PropValidationResult()

        errors: list[PropIssue] = []
        warnings: list[PropIssue] = []

        for prop_name, spec in schema.items():
            if spec.required and prop_name not in props:
                errors.append(
                    PropIssue(field=prop_name, message=f"Required prop '{prop_name}' is missing")
                )

        for prop_name, value in props.items():
            spec = schema.get(prop_name)
            if spec is None:
                if prop_name in _UNIVERSAL_PROPS:
                    continue
                close = _closest(prop_name, list(schema))
                warnings.append(
                    PropIssue(
                        field=prop_name,
                        message=f"Unknown prop '{prop_name}'",
                        suggestion=(
                            f"Did you mean '{close}'?"
                            if close
                            else "Check component documentation for valid props"
                        ),
                    )
                )
                continue
            errors.extend(_check_value(prop_name, value, spec))

        return PropValidationResult(valid=not errors, errors=errors, warnings=warnings)

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_dict(cls, data: dict[str, Any], *, source_path: Path | None = None) -> "ComponentRegistry":
        """Build a registry from ``{"components": {name: entry}}`` or ``{name: entry}``."""
        raw = data.get("components", data) if isinstance(data, dict) else {}
        if not isinstance(raw, dict):
            raise ValueError("Registry document must map component names to entries")
        entries = {name: RegistryEntry.model_validate(entry or {}) for name, entry in raw.items()}
        return cls(entries, source_path=source_path)

    @classmethod
    def from_file(cls, path: str | Path) -> "ComponentRegistry":
        """Load a registry from a JSON or YAML file."""
        file_path = Path(path)
        text = file_path.read_text(encoding="utf-8")
        if file_path.suffix.lower() in {".yaml", ".yml"}:
            data = yaml.safe_load(text) or {}
        else:
            data = json.loads(text)
        registry = cls.from_dict(data, source_path=file_path.resolve())
        logger.debug("Loaded %d component(s) from %s", len(registry), file_path)
        return registry

    @classmethod
    def default(cls) -> "ComponentRegistry":
        """The built-in component set."""
        return cls.from_dict(_DEFAULT_COMPONENTS)


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------

def _check_value(name: str, value: Any, spec: PropSpec) -> list[PropIssue]:
    check = _TYPE_CHECKS.get(spec.type, _TYPE_CHECKS["any"])
    if not check(value):
        return [
            PropIssue(
                field=name,
                message=f"Invalid type for prop '{name}'. Expected {spec.type}, got {type(value).__name__}",
            )
        ]

    issues: list[PropIssue] = []
    if spec.enum is not None and value not in spec.enum:
        allowed = ", ".join(str(option) for option in spec.enum)
        issues.append(
            PropIssue(field=name, message=f"Invalid value for prop '{name}'. Must be one of: {allowed}")
        )
    if isinstance(value, str):
        if spec.pattern and not re.search(spec.pattern, value):
            issues.append(
                PropIssue(field=name, message=f"String value for prop '{name}' does not match required pattern")
            )
        if spec.min_length is not None and len(value) < spec.min_length:
            issues.append(
                PropIssue(field=name, message=f"Prop '{name}' is too short. Minimum length: {spec.min_length}")
            )
        if spec.max_length is not None and len(value) > spec.max_length:
            issues.append(
                PropIssue(field=name, message=f"Prop '{name}' is too long. Maximum length: {spec.max_length}")
            )
    if spec.type == "number":
        if spec.min is not None and value < spec.min:
            issues.append(PropIssue(field=name, message=f"Prop '{name}' is too small. Minimum: {spec.min}"))
        if spec.max is not None and value > spec.max:
            issues.append(PropIssue(field=name, message=f"Prop '{name}' is too large. Maximum: {spec.max}"))
    if spec.type == "array":
        if spec.min is not None and len(value) < spec.min:
            issues.append(PropIssue(field=name, message=f"Prop '{name}' has too few items. Minimum: {spec.min:g}"))
        if spec.max is not None and len(value) > spec.max:
            issues.append(PropIssue(field=name, message=f"Prop '{name}' has too many items. Maximum: {spec.max:g}"))
    return issues


def _closest(name: str, candidates: list[str]) -> Optional[str]:
    lowered = name.lower()
    for candidate in candidates:
        if candidate.lower() == lowered:
            return candidate
    for candidate in candidates:
        if lowered in candidate.lower() or candidate.lower() in lowered:
            return candidate
    return None


# ---------------------------------------------------------------------------
# Built-in components
# ---------------------------------------------------------------------------

_VARIANTS = ["primary", "secondary", "outline", "ghost", "danger"]
_SIZES = ["sm", "md", "lg"]

_DEFAULT_COMPONENTS: dict[str, Any] = {
    "Layout": {
        "category": "layout",
        "dependencies": ["Header", "Footer"],
        "description": "Page shell with header and footer",
        "propSchema": {"title": {"type": "string"}},
    },
    "Container": {
        "category": "layout",
        "description": "Centered content wrapper",
        "propSchema": {"maxWidth": {"type": "string", "enum": ["sm", "md", "lg", "xl", "full"]}},
    },
    "Header": {
        "category": "navigation",
        "dependencies": ["Navigation"],
        "propSchema": {"title": {"type": "string"}, "sticky": {"type": "boolean"}},
    },
    "Footer": {
        "category": "layout",
        "propSchema": {"text": {"type": "string"}},
    },
    "Navigation": {
        "category": "navigation",
        "dependencies": ["Link"],
        "propSchema": {"items": {"type": "array"}},
    },
    "Link": {
        "category": "navigation",
        "propSchema": {"href": {"type": "string", "required": True}, "text": {"type": "string"}},
    },
    "HomePage": {
        "category": "page",
        "description": "Landing page",
        "propSchema": {"title": {"type": "string"}, "subtitle": {"type": "string"}},
    },
    "AboutPage": {
        "category": "page",
        "propSchema": {"title": {"type": "string"}, "content": {"type": "string"}},
    },
    "Card": {
        "category": "display",
        "propSchema": {
            "title": {"type": "string"},
            "content": {"type": "string"},
            "variant": {"type": "string", "enum": ["default", "outlined", "elevated"]},
        },
    },
    "Text": {
        "category": "display",
        "propSchema": {"content": {"type": "string"}},
    },
    "Heading": {
        "category": "display",
        "propSchema": {
            "text": {"type": "string"},
            "level": {"type": "number", "min": 1, "max": 6},
        },
    },
    "Image": {
        "category": "display",
        "propSchema": {"src": {"type": "string", "required": True}, "alt": {"type": "string"}},
    },
    "List": {
        "category": "display",
        "propSchema": {"items": {"type": "array"}, "ordered": {"type": "boolean"}},
    },
    "Button": {
        "category": "input",
        "island": True,
        "propSchema": {
            "text": {"type": "string"},
            "variant": {"type": "string", "enum": _VARIANTS},
            "size": {"type": "string", "enum": _SIZES},
            "disabled": {"type": "boolean"},
            "type": {"type": "string", "enum": ["button", "submit", "reset"]},
            "onClick": {"type": "function"},
        },
    },
    "Input": {
        "category": "input",
        "island": True,
        "propSchema": {
            "name": {"type": "string"},
            "label": {"type": "string"},
            "type": {"type": "string"},
            "placeholder": {"type": "string"},
            "required": {"type": "boolean"},
        },
    },
    "Form": {
        "category": "input",
        "island": True,
        "dependencies": ["Input", "Button"],
        "propSchema": {
            "action": {"type": "string"},
            "method": {"type": "string", "enum": ["get", "post"]},
        },
    },
    "Modal": {
        "category": "feedback",
        "island": True,
        "propSchema": {"title": {"type": "string"}, "open": {"type": "boolean"}},
    },
    "Tabs": {
        "category": "navigation",
        "island": True,
        "propSchema": {"tabs": {"type": "array", "min": 1}},
    },
}
