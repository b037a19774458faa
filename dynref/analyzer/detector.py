"""Detection of dynamic-import loader calls bound to variables.

Recognized shapes (``dynamic`` standing for any registered loader)::

    const A = dynamic(() => import('./A'))
    const B = dynamic(function () { return import('./B') })
    const C = lazy(() => import('./m').then(m => m.C))
    const D = lazy(() => import('./m').then(m => ({ default: m.D })))
    const E = React.lazy(() => import('./E'))

Only string-literal specifiers are extracted; template literals, computed
specifiers and loader calls without a function argument are ignored.
"""
from dataclasses import dataclass, field, replace
from typing import List, Optional, Tuple

from tree_sitter import Node

from dynref.utils.logger import log

from .matchers import MatcherRegistry
from .parser import ParsedSource
from .scope import Binding, ScopeTree
from .syntax import (
    FUNCTION_VALUE_TYPES,
    call_arguments,
    char_position,
    function_parameters,
    function_result,
    member_parts,
    node_text,
    string_value,
    unwrap_parens,
    walk,
)

logger = log.with_prefix("DETECTOR")

PROMISE_CHAIN_METHODS = frozenset({'then', 'catch', 'finally'})


@dataclass(frozen=True)
class DynamicImportSite:
    """A variable declarator whose value is a recognized loader call."""
    binding_name: Optional[str]
    raw_specifier: str
    declaration_line: int
    call_line: int
    call_column: int
    resolved_path: Optional[str] = None
    accesses_named_export: Optional[str] = None
    declarator: Optional[Node] = field(default=None, compare=False, repr=False)
    binding: Optional[Binding] = field(default=None, compare=False, repr=False)

    def with_resolved_path(self, path: Optional[str]) -> 'DynamicImportSite':
        return replace(self, resolved_path=path)


class DynamicImportDetector:
    def __init__(self, registry: MatcherRegistry):
        self.registry = registry

    def detect(self, parsed: ParsedSource, tree: ScopeTree) -> List[DynamicImportSite]:
        """All dynamic-import sites of a file, in document order."""
        sites = []
        for node in walk(parsed.root):
            if node.type != 'variable_declarator':
                continue
            site = self._site_for(node, parsed.source, tree)
            if site is not None:
                sites.append(site)

        logger.debug(f"{parsed.path}: {len(sites)} dynamic import site(s)")
        return sites

    def is_loader_call(self, call: Node, source: bytes, tree: ScopeTree) -> bool:
        """True if a call expression's callee is a registered loader."""
        callee = unwrap_parens(call.child_by_field_name('function'))
        if callee is None:
            return False

        if callee.type == 'identifier':
            return self.registry.is_direct_call(node_text(callee, source), tree.binding_of(callee))

        if callee.type == 'member_expression':
            obj, prop = member_parts(callee)
            if obj is None or prop is None or obj.type != 'identifier':
                return False
            if prop.type != 'property_identifier':
                return False
            return self.registry.is_member_call(
                node_text(obj, source), tree.binding_of(obj), node_text(prop, source))

        return False

    def _site_for(self, declarator: Node, source: bytes, tree: ScopeTree) -> Optional[DynamicImportSite]:
        call = unwrap_parens(declarator.child_by_field_name('value'))
        if call is None or call.type != 'call_expression':
            return None
        if not self.is_loader_call(call, source, tree):
            return None

        args = call_arguments(call)
        if not args:
            return None
        loader = unwrap_parens(args[0])
        if loader is None or loader.type not in FUNCTION_VALUE_TYPES:
            return None

        traced = trace_import(function_result(loader), source)
        if traced is None:
            return None
        specifier, named_export = traced

        name_node = declarator.child_by_field_name('name')
        binding_name = None
        binding = None
        if name_node is not None and name_node.type == 'identifier':
            binding_name = node_text(name_node, source)
            binding = tree.binding_of(name_node)

        call_line, call_column = char_position(call, source)
        return DynamicImportSite(
            binding_name=binding_name,
            raw_specifier=specifier,
            declaration_line=declarator.start_point[0],
            call_line=call_line,
            call_column=call_column,
            accesses_named_export=named_export,
            declarator=declarator,
            binding=binding,
        )


def trace_import(expression: Optional[Node], source: bytes) -> Optional[Tuple[str, Optional[str]]]:
    """Follow a promise chain down to ``import('...')``.

    Returns:
        (specifier, selected named export or None), or None if the expression
        does not end in a literal dynamic import.
    """
    expression = unwrap_parens(expression)
    if expression is None or expression.type != 'call_expression':
        return None

    callee = unwrap_parens(expression.child_by_field_name('function'))
    if callee is None:
        return None

    if callee.type == 'import':
        args = call_arguments(expression)
        if len(args) != 1:
            return None
        specifier = string_value(args[0], source)
        return (specifier, None) if specifier is not None else None

    if callee.type != 'member_expression':
        return None

    obj, prop = member_parts(callee)
    if prop is None or node_text(prop, source) not in PROMISE_CHAIN_METHODS:
        return None

    inner = trace_import(obj, source)
    if inner is None:
        return None

    specifier, named_export = inner
    if node_text(prop, source) == 'then':
        args = call_arguments(expression)
        if args:
            named_export = selected_export(args[0], source) or named_export
    return specifier, named_export


def selected_export(handler: Node, source: bytes) -> Optional[str]:
    """Named export a ``.then`` handler picks off the module namespace.

    Recognizes ``m => m.X``, ``m => ({ default: m.X })`` and ``({ X }) => X``.
    ``default`` is never reported as a named export.
    """
    handler = unwrap_parens(handler)
    if handler is None or handler.type not in FUNCTION_VALUE_TYPES:
        return None

    params = function_parameters(handler)
    if len(params) != 1:
        return None
    param = params[0]
    if param.type in ('required_parameter', 'optional_parameter'):
        param = param.child_by_field_name('pattern') or param

    body = function_result(handler)
    if body is None:
        return None

    if param.type == 'identifier':
        namespace = node_text(param, source)
        if body.type == 'member_expression':
            selected = _namespace_member(body, namespace, source)
        elif body.type == 'object':
            selected = _default_pair_member(body, namespace, source)
        else:
            selected = None

    elif param.type == 'object_pattern' and body.type == 'identifier':
        selected = _destructured_name(param, node_text(body, source), source)

    else:
        selected = None

    return selected if selected != 'default' else None


def _namespace_member(member: Node, namespace: str, source: bytes) -> Optional[str]:
    obj, prop = member_parts(member)
    if obj is None or prop is None or obj.type != 'identifier':
        return None
    if node_text(obj, source) != namespace or prop.type != 'property_identifier':
        return None
    return node_text(prop, source)


def _default_pair_member(obj: Node, namespace: str, source: bytes) -> Optional[str]:
    for pair in obj.named_children:
        if pair.type != 'pair':
            continue
        key = pair.child_by_field_name('key')
        value = unwrap_parens(pair.child_by_field_name('value'))
        if key is None or value is None:
            continue
        key_text = string_value(key, source) or node_text(key, source)
        if key_text == 'default' and value.type == 'member_expression':
            return _namespace_member(value, namespace, source)
    return None


def _destructured_name(pattern: Node, local: str, source: bytes) -> Optional[str]:
    for prop in pattern.named_children:
        if prop.type == 'shorthand_property_identifier_pattern':
            if node_text(prop, source) == local:
                return local
        elif prop.type == 'pair_pattern':
            key = prop.child_by_field_name('key')
            value = prop.child_by_field_name('value')
            if key is not None and value is not None and value.type == 'identifier':
                if node_text(value, source) == local:
                    return string_value(key, source) or node_text(key, source)
    return None
