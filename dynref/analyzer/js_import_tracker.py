from dataclasses import dataclass
from typing import List, Optional, Tuple

from tree_sitter import Node

from .syntax import node_text, string_value


@dataclass(frozen=True)
class ImportInfo:
    source_module: str
    # 'default' for default imports, the exported name for named imports,
    # None for namespace imports
    original_name: Optional[str] = None
    is_namespace: bool = False
    local_name: str = ""

    @property
    def is_aliased(self) -> bool:
        """True when the local name differs from the imported name."""
        if self.is_namespace or self.original_name is None:
            return False
        return self.original_name != self.local_name


class JSImportTracker:
    def import_bindings(self, import_node: Node, source_code: bytes) -> List[Tuple[Node, ImportInfo]]:
        """
        Returns the (local identifier node, ImportInfo) pairs declared by one
        ESM import statement. Type-only imports declare nothing at runtime and
        are skipped.
        """
        source_node = import_node.child_by_field_name('source')
        if source_node is None:
            return []
        module_name = string_value(source_node, source_code)
        if module_name is None:
            return []

        # import type { X } from 'mod'
        if any(child.type == 'type' for child in import_node.children):
            return []

        import_clause = next(
            (child for child in import_node.named_children if child.type == 'import_clause'),
            None,
        )
        if import_clause is None:
            return []

        bindings: List[Tuple[Node, ImportInfo]] = []

        # import x, { y } from 'mod' / import * as ns from 'mod' / import x from 'mod'
        for child in import_clause.named_children:

            # Default import: a direct identifier inside the clause
            if child.type == 'identifier':
                local_name = node_text(child, source_code)
                bindings.append((child, ImportInfo(
                    source_module=module_name,
                    original_name='default',
                    local_name=local_name,
                )))

            # Namespace import: * as identifier
            elif child.type == 'namespace_import':
                for ns_child in child.named_children:
                    if ns_child.type == 'identifier':
                        bindings.append((ns_child, ImportInfo(
                            source_module=module_name,
                            is_namespace=True,
                            local_name=node_text(ns_child, source_code),
                        )))

            # Named imports: { x, y as z }
            elif child.type == 'named_imports':
                for specifier in child.named_children:
                    if specifier.type != 'import_specifier':
                        continue
                    # import { type X } from 'mod'
                    if any(c.type == 'type' for c in specifier.children):
                        continue

                    name_node = specifier.child_by_field_name('name')
                    alias_node = specifier.child_by_field_name('alias')
                    if name_node is None:
                        continue

                    original = string_value(name_node, source_code) or node_text(name_node, source_code)
                    local_node = alias_node or name_node
                    bindings.append((local_node, ImportInfo(
                        source_module=module_name,
                        original_name=original,
                        local_name=node_text(local_node, source_code),
                    )))

        return bindings
