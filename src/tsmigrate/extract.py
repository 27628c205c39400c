"""
Inventory extraction from tree-sitter ASTs: props, state, effects, refs,
context, memoized callbacks, custom hooks and imports.

Uses tree-walking (child_by_field_name, node.children) rather than the
Query API, which was removed in tree-sitter 0.25.
"""

import logging
from dataclasses import dataclass, field

from tree_sitter import Node

from .aliases import AliasTable
from .classify import (
    CLASS_TYPES,
    FUNCTION_TYPES,
    HOOK_NAME,
    Classification,
    call_arguments,
)
from .models import (
    CallbackDescriptor,
    ComponentKind,
    ContextUsage,
    EffectDescriptor,
    HookCall,
    ImportRecord,
    LegacyType,
    PropDescriptor,
    RefDescriptor,
    StateDescriptor,
)
from .parse import node_text, string_value, unwrap_parens, walk_tree

log = logging.getLogger(__name__)

STATE_HOOKS = frozenset({"useState", "useReducer"})
EFFECT_HOOKS = frozenset({"useEffect", "useLayoutEffect", "useInsertionEffect"})
CALLBACK_HOOKS = frozenset({"useCallback", "useMemo"})

LIFECYCLE_TRIGGERS: dict[str, str] = {
    "componentDidMount": "mount",
    "componentDidUpdate": "update",
    "componentWillUnmount": "unmount",
}

_PROPS_OBJECTS = ("this.props", "props")


@dataclass
class Inventory:
    props: list[PropDescriptor] = field(default_factory=list)
    state: list[StateDescriptor] = field(default_factory=list)
    effects: list[EffectDescriptor] = field(default_factory=list)
    refs: list[RefDescriptor] = field(default_factory=list)
    contexts: list[ContextUsage] = field(default_factory=list)
    callbacks: list[CallbackDescriptor] = field(default_factory=list)
    hooks: list[HookCall] = field(default_factory=list)
    imports: list[ImportRecord] = field(default_factory=list)


def _key_text(node: Node | None) -> str:
    """Object keys may be identifiers or quoted strings."""
    value = string_value(node)
    return value if value is not None else node_text(node)


def literal_shape(node: Node | None) -> str | None:
    """Classify a literal initializer: "string", "number", "array", ... or None."""
    node = unwrap_parens(node)
    if node is None:
        return None
    t = node.type
    if t in ("string", "template_string"):
        return "string"
    if t == "number":
        return "number"
    if t in ("true", "false"):
        return "boolean"
    if t == "null":
        return "null"
    if t == "undefined" or (t == "identifier" and node_text(node) == "undefined"):
        return "undefined"
    if t == "array":
        return "array"
    if t == "object":
        return "object"
    if t in ("arrow_function", "function_expression", "function"):
        return "function"
    if t == "unary_expression":
        op = node_text(node.child_by_field_name("operator"))
        arg = unwrap_parens(node.child_by_field_name("argument"))
        if op in ("-", "+") and arg is not None and arg.type == "number":
            return "number"
        if op == "!":
            return "boolean"
    return None


# ── Props ────────────────────────────────────────────────────────────────────

def parse_legacy_type(node: Node | None) -> LegacyType | None:
    """``PropTypes.arrayOf(PropTypes.string).isRequired`` → LegacyType."""
    node = unwrap_parens(node)
    if node is None:
        return None
    required = False
    if node.type == "member_expression" and node_text(node.child_by_field_name("property")) == "isRequired":
        required = True
        node = unwrap_parens(node.child_by_field_name("object"))

    if node.type == "member_expression":
        return LegacyType(kind=node_text(node.child_by_field_name("property")), required=required)

    if node.type != "call_expression":
        return None

    fn = node.child_by_field_name("function")
    if fn is not None and fn.type == "member_expression":
        kind = node_text(fn.child_by_field_name("property"))
    else:
        kind = node_text(fn)
    legacy = LegacyType(kind=kind, required=required)
    args = [unwrap_parens(a) for a in call_arguments(node)]
    if not args:
        return legacy

    first = args[0]
    if kind in ("arrayOf", "objectOf"):
        inner = parse_legacy_type(first)
        legacy.args = [inner] if inner else []
    elif kind == "oneOfType" and first.type == "array":
        legacy.args = [t for t in (parse_legacy_type(e) for e in first.named_children) if t]
    elif kind == "oneOf" and first.type == "array":
        legacy.literals = [node_text(e) for e in first.named_children if e.type != "comment"]
    elif kind in ("shape", "exact") and first.type == "object":
        for pair in first.named_children:
            if pair.type == "pair":
                inner = parse_legacy_type(pair.child_by_field_name("value"))
                if inner:
                    legacy.fields[_key_text(pair.child_by_field_name("key"))] = inner
    elif kind == "instanceOf":
        legacy.ref = node_text(first)
    return legacy


def _static_objects(root: Node, prop: str) -> dict[str, Node]:
    """Owner name → object literal for ``Owner.prop = {...}`` and ``static prop = {...}``."""
    found: dict[str, Node] = {}
    for stmt in root.named_children:
        if stmt.type != "expression_statement" or not stmt.named_children:
            continue
        expr = stmt.named_children[0]
        if expr.type != "assignment_expression":
            continue
        left = expr.child_by_field_name("left")
        right = unwrap_parens(expr.child_by_field_name("right"))
        if (left is not None and left.type == "member_expression"
                and node_text(left.child_by_field_name("property")) == prop
                and right is not None and right.type == "object"):
            found[node_text(left.child_by_field_name("object"))] = right

    for node in walk_tree(root):
        if node.type not in CLASS_TYPES:
            continue
        owner = node_text(node.child_by_field_name("name"))
        body = node.child_by_field_name("body")
        if body is None:
            continue
        for member in body.named_children:
            if member.type not in ("field_definition", "public_field_definition"):
                continue
            key = member.child_by_field_name("property") or member.child_by_field_name("name")
            value = unwrap_parens(member.child_by_field_name("value"))
            is_static = any(c.type == "static" for c in member.children)
            if is_static and node_text(key) == prop and value is not None and value.type == "object":
                found[owner] = value
    return found


def _owned_object(table: dict[str, Node], name: str) -> Node | None:
    if name in table:
        return table[name]
    if len(table) == 1:
        return next(iter(table.values()))
    return None


def legacy_props(root: Node, name: str) -> list[PropDescriptor]:
    obj = _owned_object(_static_objects(root, "propTypes"), name)
    if obj is None:
        return []
    props: list[PropDescriptor] = []
    for pair in obj.named_children:
        if pair.type != "pair":
            continue
        legacy = parse_legacy_type(pair.child_by_field_name("value"))
        props.append(PropDescriptor(
            name=_key_text(pair.child_by_field_name("key")),
            optional=not (legacy and legacy.required),
            origin="legacy",
            legacy=legacy,
        ))
    return props


def default_props(root: Node, name: str) -> dict[str, Node]:
    obj = _owned_object(_static_objects(root, "defaultProps"), name)
    if obj is None:
        return {}
    defaults: dict[str, Node] = {}
    for pair in obj.named_children:
        if pair.type == "pair":
            defaults[_key_text(pair.child_by_field_name("key"))] = pair.child_by_field_name("value")
    return defaults


def interface_props(root: Node, name: str) -> list[PropDescriptor]:
    """Members of an existing ``<Name>Props`` interface or object type alias."""
    wanted = f"{name}Props"
    body = None
    for node in walk_tree(root):
        if node.type == "interface_declaration" and node_text(node.child_by_field_name("name")) == wanted:
            body = node.child_by_field_name("body")
            break
        if node.type == "type_alias_declaration" and node_text(node.child_by_field_name("name")) == wanted:
            value = node.child_by_field_name("value")
            if value is not None and value.type == "object_type":
                body = value
            break
    if body is None:
        return []

    props: list[PropDescriptor] = []
    for member in body.named_children:
        if member.type != "property_signature":
            continue
        type_node = member.child_by_field_name("type")
        declared = node_text(type_node).lstrip(":").strip() or None
        props.append(PropDescriptor(
            name=_key_text(member.child_by_field_name("name")),
            optional=any(c.type == "?" for c in member.children),
            origin="interface",
            declared_type=declared,
        ))
    return props


def destructured_props(pattern: Node) -> list[PropDescriptor]:
    props: list[PropDescriptor] = []
    for child in pattern.named_children:
        t = child.type
        if t == "shorthand_property_identifier_pattern":
            props.append(PropDescriptor(name=node_text(child)))
        elif t == "object_assignment_pattern":
            right = child.child_by_field_name("right")
            props.append(PropDescriptor(
                name=node_text(child.child_by_field_name("left")),
                optional=True,
                default_literal=node_text(right),
                default_shape=literal_shape(right),
            ))
        elif t == "pair_pattern":
            key = _key_text(child.child_by_field_name("key"))
            value = child.child_by_field_name("value")
            if value is not None and value.type == "assignment_pattern":
                right = value.child_by_field_name("right")
                props.append(PropDescriptor(
                    name=key, optional=True,
                    default_literal=node_text(right), default_shape=literal_shape(right),
                ))
            else:
                props.append(PropDescriptor(name=key))
        elif t == "rest_pattern":
            inner = child.named_children[0] if child.named_children else None
            props.append(PropDescriptor(
                name="..." + (node_text(inner) or "rest"), optional=True, is_rest=True,
            ))
    return props


def first_parameter(fn: Node) -> Node | None:
    single = fn.child_by_field_name("parameter")
    if single is not None:
        return single
    params = fn.child_by_field_name("parameters")
    if params is None:
        return None
    for p in params.named_children:
        if p.type != "comment":
            return p
    return None


def parameter_pattern(param: Node) -> Node | None:
    """Strip TS parameter wrappers and default values down to the binding pattern."""
    if param.type in ("required_parameter", "optional_parameter"):
        param = param.child_by_field_name("pattern")
    if param is not None and param.type == "assignment_pattern":
        param = param.child_by_field_name("left")
    return param


def class_member_props(cls: Node) -> list[PropDescriptor]:
    found: dict[str, PropDescriptor] = {}
    for node in walk_tree(cls):
        if node.type == "member_expression":
            if node_text(node.child_by_field_name("object")) in _PROPS_OBJECTS:
                name = node_text(node.child_by_field_name("property"))
                if name:
                    found.setdefault(name, PropDescriptor(name=name, origin="member"))
        elif node.type == "variable_declarator":
            pattern = node.child_by_field_name("name")
            value = unwrap_parens(node.child_by_field_name("value"))
            if (pattern is not None and pattern.type == "object_pattern"
                    and node_text(value) in _PROPS_OBJECTS):
                for prop in destructured_props(pattern):
                    prop.origin = "member"
                    found.setdefault(prop.name, prop)
    return list(found.values())


def merge_props(
    declared: list[PropDescriptor],
    observed: list[PropDescriptor],
    defaults: dict[str, Node],
) -> list[PropDescriptor]:
    """
    Merge prop sources: type declarations set type and required-ness,
    observed bindings add missing entries, default values force optional.
    """
    whole = [p for p in observed if p.is_whole]
    merged: dict[str, PropDescriptor] = {}
    for prop in declared:
        merged[prop.name] = prop

    for prop in observed:
        if prop.is_whole:
            continue
        existing = merged.get(prop.name)
        if existing is None:
            merged[prop.name] = prop
        elif prop.default_literal is not None:
            existing.default_literal = prop.default_literal
            existing.default_shape = prop.default_shape
            existing.optional = True

    for name, value in defaults.items():
        existing = merged.get(name)
        if existing is None:
            merged[name] = PropDescriptor(
                name=name, optional=True, origin="default",
                default_literal=node_text(value), default_shape=literal_shape(value),
            )
        else:
            existing.optional = True
            if existing.default_literal is None:
                existing.default_literal = node_text(value)
                existing.default_shape = literal_shape(value)

    return whole + list(merged.values())


def extract_props(root: Node, classification: Classification) -> list[PropDescriptor]:
    node = classification.node
    if node is None or classification.kind not in (
        ComponentKind.FUNCTION_COMPONENT, ComponentKind.CLASS_COMPONENT,
    ):
        return []

    name = classification.declaration or classification.name
    observed: list[PropDescriptor] = []
    if classification.kind == ComponentKind.FUNCTION_COMPONENT:
        param = first_parameter(node)
        pattern = parameter_pattern(param) if param is not None else None
        if pattern is not None and pattern.type == "object_pattern":
            observed = destructured_props(pattern)
        elif pattern is not None and pattern.type == "identifier":
            observed = [PropDescriptor(name=node_text(pattern), origin="whole")]
    else:
        observed = class_member_props(node)

    declared = legacy_props(root, name) + interface_props(root, name)
    return merge_props(declared, observed, default_props(root, name))


# ── Hooks ────────────────────────────────────────────────────────────────────

def hook_name(call: Node) -> str | None:
    """``useX(...)`` or ``React.useX(...)`` → "useX"."""
    fn = call.child_by_field_name("function")
    if fn is None:
        return None
    if fn.type == "identifier":
        name = node_text(fn)
    elif fn.type == "member_expression" and node_text(fn.child_by_field_name("object")) == "React":
        name = node_text(fn.child_by_field_name("property"))
    else:
        return None
    return name if HOOK_NAME.match(name) else None


def binding_of(call: Node) -> Node | None:
    """The binding pattern a call's value is assigned to: ``const <pattern> = call``."""
    child, parent = call, call.parent
    while parent is not None and parent.type in ("parenthesized_expression", "await_expression", "as_expression"):
        child, parent = parent, parent.parent
    if parent is None or parent.type != "variable_declarator":
        return None
    value = parent.child_by_field_name("value")
    if value is None or value.start_byte != child.start_byte or value.end_byte != child.end_byte:
        return None
    return parent.child_by_field_name("name")


def array_elements(pattern: Node) -> list[Node | None]:
    """Positional elements of an array pattern; holes are None."""
    elements: list[Node | None] = []
    current: Node | None = None
    for c in pattern.children:
        if c.type == "[":
            continue
        if c.type in (",", "]"):
            elements.append(current)
            current = None
        elif c.is_named and c.type != "comment":
            current = c
    return elements


def _initial_value(node: Node | None) -> Node | None:
    """Lazy initializers ``() => expr`` count as ``expr``."""
    node = unwrap_parens(node)
    if node is not None and node.type == "arrow_function":
        body = node.child_by_field_name("body")
        if body is not None and body.type != "statement_block":
            return unwrap_parens(body)
    return node


def _dependency_list(node: Node | None) -> tuple[str, list[str] | None]:
    node = unwrap_parens(node)
    if node is None:
        return "every-render", None
    if node.type == "array":
        deps = [node_text(e) for e in node.named_children if e.type != "comment"]
        return ("deps" if deps else "mount"), deps
    return "dynamic", None


def _has_cleanup(fn: Node | None) -> bool:
    fn = unwrap_parens(fn)
    if fn is None or fn.type not in FUNCTION_TYPES:
        return False
    body = fn.child_by_field_name("body")
    if body is None:
        return False
    if body.type != "statement_block":
        return unwrap_parens(body).type in FUNCTION_TYPES
    return any(
        stmt.type == "return_statement" and any(c.type != "comment" for c in stmt.named_children)
        for stmt in body.named_children
    )


def state_descriptor(hook: str, binding: Node | None, args: list[Node]) -> StateDescriptor:
    if hook == "useReducer":
        initial = args[1] if len(args) > 1 else None
    else:
        initial = args[0] if args else None
    initial = _initial_value(initial)

    name, setter = "state", None
    if binding is not None and binding.type == "array_pattern":
        elements = array_elements(binding)
        if elements and elements[0] is not None:
            name = node_text(elements[0])
        if len(elements) > 1 and elements[1] is not None:
            setter = node_text(elements[1])
    elif binding is not None:
        name = node_text(binding)

    return StateDescriptor(
        name=name,
        setter_name=setter,
        default_literal=node_text(initial) if initial is not None else None,
        default_shape=literal_shape(initial),
        hook=hook,
    )


def extract_hooks(root: Node, imports: list[ImportRecord]) -> Inventory:
    inv = Inventory()
    sources = {name: imp.specifier for imp in imports for name in imp.names}
    custom: dict[str, HookCall] = {}

    for node in walk_tree(root):
        if node.type != "call_expression":
            continue
        name = hook_name(node)
        if name is None:
            continue
        args = call_arguments(node)
        binding = binding_of(node)
        bound = node_text(binding) if binding is not None else ""

        if name in STATE_HOOKS:
            inv.state.append(state_descriptor(name, binding, args))
        elif name in EFFECT_HOOKS:
            trigger, deps = _dependency_list(args[1] if len(args) > 1 else None)
            inv.effects.append(EffectDescriptor(
                hook=name, trigger=trigger, dependencies=deps,
                has_cleanup=_has_cleanup(args[0] if args else None),
            ))
        elif name in CALLBACK_HOOKS:
            _, deps = _dependency_list(args[1] if len(args) > 1 else None)
            inv.callbacks.append(CallbackDescriptor(hook=name, name=bound or "anonymous", dependencies=deps))
        elif name == "useRef":
            inv.refs.append(RefDescriptor(
                name=bound or "anonymous",
                initial_literal=node_text(args[0]) if args else None,
            ))
        elif name == "useContext":
            inv.contexts.append(ContextUsage(
                context=node_text(args[0]) if args else "",
                variable=bound,
            ))
        elif name in custom:
            custom[name].count += 1
        else:
            custom[name] = HookCall(name=name, source=sources.get(name, "local"))

    inv.hooks = list(custom.values())
    return inv


def extract_class_members(cls: Node) -> tuple[list[StateDescriptor], list[EffectDescriptor]]:
    """State from ``state = {...}`` / ``this.state = {...}``; effects from lifecycle methods."""
    body = cls.child_by_field_name("body")
    if body is None:
        return [], []

    state_obj: Node | None = None
    effects: list[EffectDescriptor] = []
    for member in body.named_children:
        if member.type in ("field_definition", "public_field_definition"):
            key = member.child_by_field_name("property") or member.child_by_field_name("name")
            value = unwrap_parens(member.child_by_field_name("value"))
            is_static = any(c.type == "static" for c in member.children)
            if node_text(key) == "state" and not is_static and value is not None and value.type == "object":
                state_obj = value
        elif member.type == "method_definition":
            method = node_text(member.child_by_field_name("name"))
            if method in LIFECYCLE_TRIGGERS:
                trigger = LIFECYCLE_TRIGGERS[method]
                effects.append(EffectDescriptor(hook=method, trigger=trigger, has_cleanup=trigger == "unmount"))
            elif method == "constructor" and state_obj is None:
                for node in walk_tree(member):
                    if node.type != "assignment_expression":
                        continue
                    right = unwrap_parens(node.child_by_field_name("right"))
                    if node_text(node.child_by_field_name("left")) == "this.state" and right is not None and right.type == "object":
                        state_obj = right
                        break

    state: list[StateDescriptor] = []
    if state_obj is not None:
        for entry in state_obj.named_children:
            if entry.type == "pair":
                value = entry.child_by_field_name("value")
                state.append(StateDescriptor(
                    name=_key_text(entry.child_by_field_name("key")),
                    setter_name="setState",
                    default_literal=node_text(value),
                    default_shape=literal_shape(value),
                    hook="class",
                ))
            elif entry.type == "shorthand_property_identifier":
                state.append(StateDescriptor(name=node_text(entry), setter_name="setState", hook="class"))
    return state, effects


# ── Imports ──────────────────────────────────────────────────────────────────

def _import_names(stmt: Node) -> list[str]:
    names: list[str] = []
    for clause in stmt.named_children:
        if clause.type != "import_clause":
            continue
        for c in clause.named_children:
            if c.type == "identifier":
                names.append(node_text(c))
            elif c.type == "namespace_import":
                names.extend(node_text(i) for i in c.named_children if i.type == "identifier")
            elif c.type == "named_imports":
                for spec in c.named_children:
                    if spec.type == "import_specifier":
                        alias = spec.child_by_field_name("alias")
                        names.append(node_text(alias or spec.child_by_field_name("name")))
    return names


def _export_names(stmt: Node) -> list[str]:
    names: list[str] = []
    for clause in stmt.named_children:
        if clause.type == "export_clause":
            for spec in clause.named_children:
                if spec.type == "export_specifier":
                    alias = spec.child_by_field_name("alias")
                    names.append(node_text(alias or spec.child_by_field_name("name")))
    return names or ["*"]


def _require_imports(stmt: Node) -> list[tuple[str, list[str]]]:
    found: list[tuple[str, list[str]]] = []
    for declarator in stmt.named_children:
        if declarator.type != "variable_declarator":
            continue
        value = unwrap_parens(declarator.child_by_field_name("value"))
        if value is None or value.type != "call_expression":
            continue
        fn = value.child_by_field_name("function")
        args = call_arguments(value)
        if node_text(fn) != "require" or len(args) != 1:
            continue
        spec = string_value(args[0])
        if spec is None:
            continue
        pattern = declarator.child_by_field_name("name")
        if pattern is not None and pattern.type == "object_pattern":
            names = [p.name for p in destructured_props(pattern) if not p.is_rest]
        else:
            names = [node_text(pattern)]
        found.append((spec, names))
    return found


def extract_imports(root: Node, aliases: AliasTable) -> list[ImportRecord]:
    records: list[ImportRecord] = []

    def add(spec: str | None, names: list[str]) -> None:
        if spec:
            records.append(ImportRecord(specifier=spec, names=names, internal=aliases.is_internal(spec)))

    for stmt in root.named_children:
        if stmt.type == "import_statement":
            add(string_value(stmt.child_by_field_name("source")), _import_names(stmt))
        elif stmt.type == "export_statement" and stmt.child_by_field_name("source") is not None:
            add(string_value(stmt.child_by_field_name("source")), _export_names(stmt))
        elif stmt.type in ("lexical_declaration", "variable_declaration"):
            for spec, names in _require_imports(stmt):
                add(spec, names)
    return records


# ── Entry point ──────────────────────────────────────────────────────────────

def extract(
    path: str,
    root: Node | None,
    classification: Classification,
    aliases: AliasTable,
) -> Inventory:
    """
    Extract the inventory of one module. Never raises: on error, logs a
    warning and returns an empty inventory.
    """
    if root is None:
        return Inventory()
    try:
        imports = extract_imports(root, aliases)
        inv = extract_hooks(root, imports)
        inv.imports = imports
        inv.props = extract_props(root, classification)
        if classification.kind == ComponentKind.CLASS_COMPONENT and classification.node is not None:
            state, effects = extract_class_members(classification.node)
            inv.state = state + inv.state
            inv.effects = effects + inv.effects
        return inv
    except Exception as e:
        log.warning("Extraction failed for %s: %s", path, e, exc_info=True)
        return Inventory()
