"""Small helpers over tree-sitter nodes shared by the analyzers."""
from typing import Iterator, Optional, Tuple

from tree_sitter import Node

NodeKey = Tuple[int, int, str]

FUNCTION_TYPES = frozenset({
    'function_declaration',
    'generator_function_declaration',
    'function_expression',
    'function',  # older tree-sitter-javascript name for function expressions
    'generator_function',
    'arrow_function',
    'method_definition',
})

FUNCTION_VALUE_TYPES = frozenset({'arrow_function', 'function_expression', 'function'})

CLASS_DECLARATION_TYPES = frozenset({'class_declaration', 'abstract_class_declaration'})


def node_key(node: Node) -> NodeKey:
    """Stable identity of a node within one tree."""
    return (node.start_byte, node.end_byte, node.type)


def same_node(a: Optional[Node], b: Optional[Node]) -> bool:
    return a is not None and b is not None and node_key(a) == node_key(b)


def node_text(node: Node, source: bytes) -> str:
    return source[node.start_byte:node.end_byte].decode('utf-8', errors='replace')


def string_value(node: Node, source: bytes) -> Optional[str]:
    """Value of a plain string literal, or None for anything else.

    Template strings are rejected even without substitutions: only literal
    specifiers are resolved.
    """
    if node.type != 'string':
        return None
    text = node_text(node, source)
    if len(text) < 2:
        return None
    return text[1:-1]


def unwrap_parens(node: Optional[Node]) -> Optional[Node]:
    """Strip parenthesized_expression wrappers (and TS non-null/as casts)."""
    while node is not None and node.type in ('parenthesized_expression', 'as_expression',
                                             'satisfies_expression', 'non_null_expression'):
        inner = node.named_children
        if not inner:
            return None
        node = inner[0]
    return node


def call_arguments(call: Node) -> list:
    """Named children of a call's argument list (punctuation and comments dropped)."""
    args = call.child_by_field_name('arguments')
    if args is None:
        return []
    return [child for child in args.named_children if child.type != 'comment']


def first_return_argument(block: Node) -> Optional[Node]:
    """Expression of the first top-level return statement in a statement block."""
    for statement in block.named_children:
        if statement.type == 'return_statement':
            values = [c for c in statement.named_children if c.type != 'comment']
            return values[0] if values else None
    return None


def function_result(func: Node) -> Optional[Node]:
    """The expression a function yields: the arrow's expression body or its sole return."""
    body = func.child_by_field_name('body')
    if body is None:
        return None
    if body.type == 'statement_block':
        return unwrap_parens(first_return_argument(body))
    return unwrap_parens(body)


def function_parameters(func: Node) -> list:
    """Parameter nodes of a function, including the bare arrow parameter form."""
    single = func.child_by_field_name('parameter')
    if single is not None:
        return [single]
    params = func.child_by_field_name('parameters')
    if params is None:
        return []
    return [p for p in params.named_children if p.type != 'comment']


def member_parts(node: Node) -> Tuple[Optional[Node], Optional[Node]]:
    """(object, property) of a member expression.

    JSX names such as ``<A.B />`` produce member expressions without field
    names, so fall back to positional children.
    """
    obj = node.child_by_field_name('object')
    prop = node.child_by_field_name('property')
    if obj is None and prop is None:
        named = node.named_children
        if len(named) >= 2:
            return named[0], named[-1]
    return obj, prop


def has_child_token(node: Node, token: str) -> bool:
    """True if an anonymous child token (e.g. 'default') is present."""
    return any(not child.is_named and child.type == token for child in node.children)


def walk(root: Node) -> Iterator[Node]:
    """Pre-order traversal in document order."""
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))


def char_position(node: Node, source: bytes) -> Tuple[int, int]:
    """0-based (line, column) of a node's start, column counted in characters."""
    row, byte_column = node.start_point
    line_start = node.start_byte - byte_column
    prefix = source[line_start:node.start_byte].decode('utf-8', errors='replace')
    return row, len(prefix)
