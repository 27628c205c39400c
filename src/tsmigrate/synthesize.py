"""
Type synthesis: map inventory entries to TypeScript types and render the
props interface.

Precedence per prop or state slot: an explicit TS type, then the legacy
PropTypes declaration, then the shape of the default literal, then the
``unknown`` marker. Every ``unknown`` is reported so nothing is silently
guessed.
"""

import json
import logging
import re
from dataclasses import dataclass, field

from .models import (
    UNKNOWN_TYPE,
    ComponentKind,
    ComponentProfile,
    LegacyType,
    PropDescriptor,
    StateDescriptor,
)

log = logging.getLogger(__name__)

FUNCTION_TYPE = "(...args: unknown[]) => unknown"
INDEX_SIGNATURE = "[key: string]: unknown;"

LEGACY_TYPE_MAP: dict[str, str] = {
    "string": "string",
    "number": "number",
    "bool": "boolean",
    "symbol": "symbol",
    "func": FUNCTION_TYPE,
    "array": "unknown[]",
    "object": "Record<string, unknown>",
    "node": "React.ReactNode",
    "element": "React.ReactElement",
    "elementType": "React.ElementType",
    "any": "any",
}

LITERAL_TYPE_MAP: dict[str, str] = {
    "string": "string",
    "number": "number",
    "boolean": "boolean",
    "null": "null",
    "undefined": "undefined",
    "array": "unknown[]",
    "object": "Record<string, unknown>",
    "function": FUNCTION_TYPE,
}

NULLISH_TYPES = frozenset({"null", "undefined"})

_LITERAL_TYPE = re.compile(r"""^(?:'[^'\\]*'|"[^"\\]*"|-?\d+(?:\.\d+)?|true|false|null)$""")
_IDENTIFIER = re.compile(r"^[A-Za-z_$][\w$]*$")


def _group(ts_type: str) -> str:
    return f"({ts_type})" if ("|" in ts_type or "=>" in ts_type) else ts_type


def legacy_to_ts(legacy: LegacyType) -> str | None:
    kind = legacy.kind
    if kind in LEGACY_TYPE_MAP:
        return LEGACY_TYPE_MAP[kind]
    if kind == "arrayOf":
        inner = legacy_to_ts(legacy.args[0]) if legacy.args else None
        return f"{_group(inner or UNKNOWN_TYPE)}[]"
    if kind == "objectOf":
        inner = legacy_to_ts(legacy.args[0]) if legacy.args else None
        return f"Record<string, {inner or UNKNOWN_TYPE}>"
    if kind == "oneOf":
        if legacy.literals and all(_LITERAL_TYPE.match(lit) for lit in legacy.literals):
            return " | ".join(dict.fromkeys(legacy.literals))
        return None
    if kind == "oneOfType":
        members = [legacy_to_ts(arg) or UNKNOWN_TYPE for arg in legacy.args]
        return " | ".join(dict.fromkeys(members)) or None
    if kind in ("shape", "exact"):
        if not legacy.fields:
            return "Record<string, unknown>"
        parts = []
        for name, inner in legacy.fields.items():
            marker = "" if inner.required else "?"
            parts.append(f"{_property_name(name)}{marker}: {legacy_to_ts(inner) or UNKNOWN_TYPE}")
        return "{ " + "; ".join(parts) + " }"
    if kind == "instanceOf":
        return legacy.ref
    return None


def infer_type(
    declared: str | None,
    legacy: LegacyType | None,
    shape: str | None,
) -> str:
    if declared:
        return declared
    if legacy is not None:
        mapped = legacy_to_ts(legacy)
        if mapped:
            return mapped
    if shape:
        mapped = LITERAL_TYPE_MAP.get(shape)
        if mapped:
            return mapped
    return UNKNOWN_TYPE


def infer_prop_type(prop: PropDescriptor) -> str:
    if prop.is_whole or prop.is_rest:
        return UNKNOWN_TYPE
    return infer_type(prop.declared_type, prop.legacy, prop.default_shape)


def infer_state_type(state: StateDescriptor) -> str:
    return infer_type(None, None, state.default_shape)


def state_type_argument(state: StateDescriptor) -> str:
    """Type argument for a state call; nullish initializers widen to ``unknown``."""
    ts_type = state.inferred_type or infer_state_type(state)
    return UNKNOWN_TYPE if ts_type in NULLISH_TYPES else ts_type


def _property_name(name: str) -> str:
    return name if _IDENTIFIER.match(name) else json.dumps(name)


@dataclass
class TypeSynthesis:
    component: str
    interface_name: str | None = None
    fields: list[str] = field(default_factory=list)         # rendered member lines
    state_types: dict[str, str] = field(default_factory=dict)
    mode: str = "inline"
    unknowns: list[str] = field(default_factory=list)

    @property
    def interface_text(self) -> str | None:
        if self.interface_name is None:
            return None
        body = "".join(f"  {line}\n" for line in self.fields)
        return f"interface {self.interface_name} {{\n{body}}}\n"

    @property
    def needs_react_namespace(self) -> bool:
        return any("React." in line for line in self.fields)

    def companion_text(self) -> str | None:
        """Contents of ``<Name>.types.ts`` in external mode."""
        if self.interface_text is None:
            return None
        header = "import type React from 'react';\n\n" if self.needs_react_namespace else ""
        return f"{header}export {self.interface_text}"


def interface_fields(props: list[PropDescriptor]) -> list[str]:
    lines: list[str] = []
    catch_all = False
    for prop in props:
        if prop.is_rest or prop.is_whole:
            catch_all = True
            continue
        marker = "?" if prop.optional else ""
        ts_type = prop.inferred_type or infer_prop_type(prop)
        lines.append(f"{_property_name(prop.name)}{marker}: {ts_type};")
    # a whole-props object with declared members needs no catch-all
    if catch_all and (not lines or any(p.is_rest for p in props)):
        lines.append(INDEX_SIGNATURE)
    return lines


def synthesize(profile: ComponentProfile, mode: str = "inline") -> TypeSynthesis:
    synthesis = TypeSynthesis(component=profile.name, mode=mode)

    if profile.kind in (ComponentKind.FUNCTION_COMPONENT, ComponentKind.CLASS_COMPONENT) and profile.props:
        synthesis.interface_name = f"{profile.name}Props"
        synthesis.fields = interface_fields(profile.props)
        for prop in profile.props:
            if prop.is_whole and len(synthesis.fields) == 1 and synthesis.fields[0] == INDEX_SIGNATURE:
                synthesis.unknowns.append(f"{profile.name}: props object '{prop.name}' has no declared members")
            elif not prop.is_whole and not prop.is_rest and (prop.inferred_type or infer_prop_type(prop)) == UNKNOWN_TYPE:
                synthesis.unknowns.append(f"{profile.name}: prop '{prop.name}' has unknown type")

    for state in profile.state:
        if state.hook != "useState":
            continue
        ts_type = state_type_argument(state)
        synthesis.state_types[state.name] = ts_type
        if ts_type == UNKNOWN_TYPE:
            synthesis.unknowns.append(f"{profile.name}: state '{state.name}' has unknown type")

    if synthesis.unknowns:
        log.debug("%s: %d unknown types", profile.path, len(synthesis.unknowns))
    return synthesis
