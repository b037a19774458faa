"""Lexical scope analysis over tree-sitter JS/TS trees.

Identifier occurrences are matched to the declaration they resolve to, so two
unrelated variables that happen to share a name are never confused. The
analysis runs in two passes: the first creates scopes and declares every
binding (which gives hoisting for free: a function may use a ``const``
declared further down the module), the second resolves each reference by
walking up the scope chain.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from tree_sitter import Node

from .js_import_tracker import ImportInfo, JSImportTracker
from .parser import ParsedSource
from .syntax import (
    CLASS_DECLARATION_TYPES,
    FUNCTION_TYPES,
    NodeKey,
    function_parameters,
    member_parts,
    node_key,
    node_text,
    same_node,
    walk,
)

BLOCK_SCOPE_TYPES = frozenset({
    'statement_block', 'for_statement', 'for_in_statement', 'catch_clause', 'switch_body',
})

REFERENCE_NODE_TYPES = frozenset({'identifier', 'shorthand_property_identifier'})


@dataclass(eq=False)
class Binding:
    """One declaration. Bindings compare by identity, never by name."""
    name: str
    kind: str  # var, let, const, function, class, param, catch, import
    identifier: Node
    scope: 'Scope'
    declarator: Optional[Node] = None
    import_info: Optional[ImportInfo] = None

    @property
    def is_import(self) -> bool:
        return self.import_info is not None


@dataclass(eq=False)
class Reference:
    node: Node
    name: str
    binding: Optional[Binding]


class Scope:
    def __init__(self, node: Node, kind: str, parent: Optional['Scope'] = None):
        self.node = node
        self.kind = kind  # module, function, class, block
        self.parent = parent
        self.bindings: Dict[str, Binding] = {}

    def declare(self, binding: Binding) -> Binding:
        # Redeclarations (var, TS overloads) keep the first declaration
        return self.bindings.setdefault(binding.name, binding)

    def lookup(self, name: str) -> Optional[Binding]:
        scope = self
        while scope is not None:
            binding = scope.bindings.get(name)
            if binding is not None:
                return binding
            scope = scope.parent
        return None

    def function_scope(self) -> 'Scope':
        scope = self
        while scope.kind not in ('function', 'module') and scope.parent is not None:
            scope = scope.parent
        return scope

    def __repr__(self):
        return f"Scope({self.kind}, {sorted(self.bindings)})"


@dataclass
class ScopeTree:
    """Result of analyzing one file."""
    module_scope: Scope
    scopes: Dict[NodeKey, Scope] = field(default_factory=dict)
    declarations: Dict[NodeKey, Binding] = field(default_factory=dict)
    references: List[Reference] = field(default_factory=list)
    _by_reference: Dict[NodeKey, Reference] = field(default_factory=dict)
    _by_binding: Dict[int, List[Reference]] = field(default_factory=dict)

    def add_reference(self, reference: Reference) -> None:
        self.references.append(reference)
        self._by_reference[node_key(reference.node)] = reference
        if reference.binding is not None:
            self._by_binding.setdefault(id(reference.binding), []).append(reference)

    def is_declaration(self, identifier: Node) -> bool:
        return node_key(identifier) in self.declarations

    def is_reference(self, identifier: Node) -> bool:
        return node_key(identifier) in self._by_reference

    def binding_of(self, identifier: Node) -> Optional[Binding]:
        """Binding an identifier declares or refers to, if any."""
        key = node_key(identifier)
        binding = self.declarations.get(key)
        if binding is not None:
            return binding
        reference = self._by_reference.get(key)
        return reference.binding if reference else None

    def references_to(self, binding: Binding) -> List[Reference]:
        """References resolving to binding, in document order."""
        return list(self._by_binding.get(id(binding), []))


class ScopeAnalyzer:
    """Builds a ScopeTree for a parsed JS/TS file."""

    def __init__(self):
        self.import_tracker = JSImportTracker()

    def analyze(self, parsed: ParsedSource) -> ScopeTree:
        root = parsed.root
        module_scope = Scope(root, 'module')
        tree = ScopeTree(module_scope=module_scope)
        tree.scopes[node_key(root)] = module_scope

        self._declare_pass(root, parsed.source, tree)
        self._resolve_pass(root, parsed.source, tree)
        return tree

    # -------------------------------------------------------------------------
    # Pass 1: scopes and declarations
    # -------------------------------------------------------------------------

    def _declare_pass(self, root: Node, source: bytes, tree: ScopeTree) -> None:
        owned_blocks = set()
        stack = [(child, tree.module_scope) for child in reversed(root.children)]

        while stack:
            node, scope = stack.pop()
            scope = self._enter(node, scope, source, tree, owned_blocks)
            stack.extend((child, scope) for child in reversed(node.children))

    def _enter(self, node: Node, scope: Scope, source: bytes, tree: ScopeTree,
               owned_blocks: set) -> Scope:
        """Declare what node introduces and return the scope for its children."""
        node_type = node.type

        if node_type in FUNCTION_TYPES:
            name_node = node.child_by_field_name('name')
            if name_node is not None and node_type in ('function_declaration',
                                                       'generator_function_declaration'):
                self._declare(tree, scope, name_node, 'function', source)

            fn_scope = Scope(node, 'function', scope)
            tree.scopes[node_key(node)] = fn_scope

            if name_node is not None and node_type in ('function_expression', 'function',
                                                       'generator_function'):
                self._declare(tree, fn_scope, name_node, 'function', source)

            for param in function_parameters(node):
                for ident in pattern_identifiers(param):
                    self._declare(tree, fn_scope, ident, 'param', source)

            body = node.child_by_field_name('body')
            if body is not None and body.type == 'statement_block':
                owned_blocks.add(node_key(body))
            return fn_scope

        if node_type in CLASS_DECLARATION_TYPES:
            name_node = node.child_by_field_name('name')
            if name_node is not None:
                self._declare(tree, scope, name_node, 'class', source)
            return scope

        if node_type == 'class':
            name_node = node.child_by_field_name('name')
            if name_node is None:
                return scope
            class_scope = Scope(node, 'class', scope)
            tree.scopes[node_key(node)] = class_scope
            self._declare(tree, class_scope, name_node, 'class', source)
            return class_scope

        if node_type in BLOCK_SCOPE_TYPES:
            if node_key(node) in owned_blocks:
                return scope
            block_scope = Scope(node, 'block', scope)
            tree.scopes[node_key(node)] = block_scope

            if node_type == 'catch_clause':
                param = node.child_by_field_name('parameter')
                if param is not None:
                    for ident in pattern_identifiers(param):
                        self._declare(tree, block_scope, ident, 'catch', source)

            elif node_type == 'for_in_statement':
                kind_node = node.child_by_field_name('kind')
                left = node.child_by_field_name('left')
                if kind_node is not None and left is not None:
                    kind = node_text(kind_node, source)
                    target = block_scope.function_scope() if kind == 'var' else block_scope
                    for ident in pattern_identifiers(left):
                        self._declare(tree, target, ident, kind, source)
            return block_scope

        if node_type in ('lexical_declaration', 'variable_declaration'):
            if node_type == 'variable_declaration':
                kind, target = 'var', scope.function_scope()
            else:
                kind_node = node.child_by_field_name('kind')
                kind = node_text(kind_node, source) if kind_node is not None else 'let'
                target = scope
            for declarator in node.named_children:
                if declarator.type != 'variable_declarator':
                    continue
                name_node = declarator.child_by_field_name('name')
                if name_node is None:
                    continue
                for ident in pattern_identifiers(name_node):
                    self._declare(tree, target, ident, kind, source, declarator=declarator)
            return scope

        if node_type == 'import_statement':
            for ident, info in self.import_tracker.import_bindings(node, source):
                self._declare(tree, tree.module_scope, ident, 'import', source, import_info=info)
            return scope

        return scope

    def _declare(self, tree: ScopeTree, scope: Scope, ident: Node, kind: str, source: bytes,
                 declarator: Optional[Node] = None,
                 import_info: Optional[ImportInfo] = None) -> None:
        binding = scope.declare(Binding(
            name=node_text(ident, source),
            kind=kind,
            identifier=ident,
            scope=scope,
            declarator=declarator,
            import_info=import_info,
        ))
        tree.declarations[node_key(ident)] = binding

    # -------------------------------------------------------------------------
    # Pass 2: references
    # -------------------------------------------------------------------------

    def _resolve_pass(self, root: Node, source: bytes, tree: ScopeTree) -> None:
        stack = [(root, tree.module_scope)]

        while stack:
            node, scope = stack.pop()
            key = node_key(node)
            scope = tree.scopes.get(key, scope)

            if (node.type in REFERENCE_NODE_TYPES
                    and key not in tree.declarations
                    and is_reference_position(node)):
                name = node_text(node, source)
                tree.add_reference(Reference(node=node, name=name, binding=scope.lookup(name)))

            stack.extend((child, scope) for child in reversed(node.children))


def pattern_identifiers(pattern: Node) -> List[Node]:
    """Identifiers bound by a declaration target or parameter."""
    pattern_type = pattern.type

    if pattern_type in ('identifier', 'shorthand_property_identifier_pattern'):
        return [pattern]

    if pattern_type in ('required_parameter', 'optional_parameter'):
        inner = pattern.child_by_field_name('pattern')
        return pattern_identifiers(inner) if inner is not None else []

    if pattern_type in ('assignment_pattern', 'object_assignment_pattern'):
        left = pattern.child_by_field_name('left')
        return pattern_identifiers(left) if left is not None else []

    if pattern_type == 'pair_pattern':
        value = pattern.child_by_field_name('value')
        return pattern_identifiers(value) if value is not None else []

    if pattern_type in ('object_pattern', 'array_pattern', 'rest_pattern'):
        found = []
        for child in pattern.named_children:
            found.extend(pattern_identifiers(child))
        return found

    return []


def is_reference_position(node: Node) -> bool:
    """False for identifier positions that name something other than a binding.

    Covers import specifier names, export aliases and re-exports, non-computed
    member properties and object keys, and JSX namespace names.
    """
    parent = node.parent
    if parent is None:
        return True

    parent_type = parent.type

    if parent_type in ('import_specifier', 'namespace_import', 'import_clause',
                       'jsx_namespace_name', 'meta_property'):
        return False

    if parent_type == 'export_specifier':
        if same_node(parent.child_by_field_name('alias'), node):
            return False
        statement = parent.parent.parent if parent.parent is not None else None
        return statement is None or statement.child_by_field_name('source') is None

    if parent_type == 'member_expression':
        _, prop = member_parts(parent)
        return not same_node(prop, node)

    if parent_type == 'pair':
        return not same_node(parent.child_by_field_name('key'), node)

    return True


def variable_declarators(root: Node) -> List[Node]:
    """All variable declarators in a tree, document order."""
    return [node for node in walk(root) if node.type == 'variable_declarator']
