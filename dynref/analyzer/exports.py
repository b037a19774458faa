"""Default/named export classification of a symbol in a module."""
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Union

from tree_sitter import Node

from dynref.utils.logger import log

from .module_resolver import resolve_module_path
from .parser import LanguageParser, ParsedSource, ParseError
from .syntax import CLASS_DECLARATION_TYPES, has_child_token, node_text, string_value, unwrap_parens

logger = log.with_prefix("EXPORTS")

NAMED_DECLARATION_TYPES = frozenset({
    'function_declaration',
    'generator_function_declaration',
}) | CLASS_DECLARATION_TYPES

DEFAULT_VALUE_TYPES = frozenset({
    'function_expression', 'function', 'generator_function', 'class',
}) | NAMED_DECLARATION_TYPES


@dataclass(frozen=True)
class ExportProfile:
    symbol_name: str
    is_default: bool = False
    is_named: bool = False

    @property
    def is_exported(self) -> bool:
        return self.is_default or self.is_named


def read_text(path: Union[str, Path]) -> str:
    with open(path, 'r', encoding='utf-8') as f:
        return f.read()


class ExportClassifier:
    """Classifies how a module exports a symbol.

    ``export * from './x'`` is followed exactly one level, so a symbol exported
    by name from ``./x`` counts as a named export here.
    """

    def __init__(self, parser: Optional[LanguageParser] = None,
                 reader: Callable[[str], str] = read_text):
        self.parser = parser or LanguageParser()
        self.reader = reader

    def classify(self, parsed: ParsedSource, symbol: str, follow_star: bool = True) -> ExportProfile:
        is_default = False
        is_named = False

        for statement in parsed.root.named_children:
            if statement.type != 'export_statement':
                continue

            if has_child_token(statement, 'default'):
                if self._default_export_name(statement, parsed.source) == symbol:
                    is_default = True
                continue

            declaration = statement.child_by_field_name('declaration')
            if declaration is not None:
                if symbol in self._declared_names(declaration, parsed.source):
                    is_named = True
                continue

            clause = next((c for c in statement.named_children if c.type == 'export_clause'), None)
            if clause is not None:
                for local, exported in self._clause_names(clause, parsed.source):
                    if exported == symbol:
                        is_named = True
                    elif exported == 'default' and local == symbol:
                        is_default = True
                continue

            source_node = statement.child_by_field_name('source')
            if follow_star and source_node is not None and not is_named:
                if self._star_reexports(parsed, source_node, symbol):
                    is_named = True

        return ExportProfile(symbol_name=symbol, is_default=is_default, is_named=is_named)

    def classify_file(self, path: Union[str, Path], symbol: str, follow_star: bool = True) -> ExportProfile:
        """Read, parse and classify a file. Failures classify as not exported."""
        try:
            parsed = self.parser.parse_source(self.reader(str(path)), path)
        except (OSError, UnicodeDecodeError, ParseError) as e:
            logger.warn("Could not analyze target file exports:", e)
            return ExportProfile(symbol_name=symbol)
        return self.classify(parsed, symbol, follow_star=follow_star)

    def _default_export_name(self, statement: Node, source: bytes) -> Optional[str]:
        """Name a default export statement exports, if it exports a named thing."""
        target = statement.child_by_field_name('declaration') or statement.child_by_field_name('value')
        target = unwrap_parens(target)
        if target is None:
            return None
        if target.type == 'identifier':
            return node_text(target, source)
        if target.type in DEFAULT_VALUE_TYPES:
            name = target.child_by_field_name('name')
            return node_text(name, source) if name is not None else None
        return None

    def _declared_names(self, declaration: Node, source: bytes) -> set:
        if declaration.type in ('lexical_declaration', 'variable_declaration'):
            names = set()
            for declarator in declaration.named_children:
                if declarator.type != 'variable_declarator':
                    continue
                name = declarator.child_by_field_name('name')
                if name is not None and name.type == 'identifier':
                    names.add(node_text(name, source))
            return names

        if declaration.type in NAMED_DECLARATION_TYPES:
            name = declaration.child_by_field_name('name')
            return {node_text(name, source)} if name is not None else set()

        return set()

    def _clause_names(self, clause: Node, source: bytes):
        """(local, exported) name pairs of an export clause."""
        for specifier in clause.named_children:
            if specifier.type != 'export_specifier':
                continue
            name = specifier.child_by_field_name('name')
            if name is None:
                continue
            alias = specifier.child_by_field_name('alias')
            local = string_value(name, source) or node_text(name, source)
            exported = local
            if alias is not None:
                exported = string_value(alias, source) or node_text(alias, source)
            yield local, exported

    def _star_reexports(self, parsed: ParsedSource, source_node: Node, symbol: str) -> bool:
        # export * as ns from './x' exports ns, not the module's names
        statement = source_node.parent
        if statement is not None and any(c.type == 'namespace_export' for c in statement.named_children):
            return False

        specifier = string_value(source_node, parsed.source)
        if not specifier or not specifier.startswith('.'):
            return False

        for candidate in resolve_module_path(specifier, parsed.path):
            if self.classify_file(candidate, symbol, follow_star=False).is_named:
                return True
        return False
