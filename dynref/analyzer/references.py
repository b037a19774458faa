"""From matching dynamic-import sites to reference locations within one file."""
from dataclasses import dataclass
from typing import Iterable, List, Optional

from tree_sitter import Node

from dynref.utils.logger import log

from .detector import DynamicImportSite
from .exports import ExportProfile
from .parser import ParsedSource
from .paths import is_path_included
from .scope import ScopeTree, variable_declarators
from .syntax import char_position, member_parts, node_text

logger = log.with_prefix("REFERENCES")


@dataclass(frozen=True)
class Location:
    """0-based position of a reference. Columns count characters."""
    file_path: str
    line: int
    column: int

    def to_dict(self) -> dict:
        return {'file': self.file_path, 'line': self.line, 'column': self.column}


def _unique(names: Iterable[str]) -> List[str]:
    seen = set()
    ordered = []
    for name in names:
        if name not in seen:
            seen.add(name)
            ordered.append(name)
    return ordered


class ReferenceBindingResolver:
    """Decides which names denote the searched symbol in a file and where they occur."""

    def matching_sites(self, sites: List[DynamicImportSite], target_path: str) -> List[DynamicImportSite]:
        """Sites whose resolved module is the target file. Unresolved sites never match."""
        return [
            site for site in sites
            if site.resolved_path is not None and is_path_included(site.resolved_path, target_path)
        ]

    def resolve_reference_names(self, tree: ScopeTree, source: bytes,
                                sites: List[DynamicImportSite], target_path: str,
                                profile: ExportProfile) -> List[str]:
        matching = self.matching_sites(sites, target_path)
        symbol = profile.symbol_name

        if profile.is_default and not profile.is_named:
            names = []
            for site in matching:
                if site.binding_name is None:
                    continue
                if site.accesses_named_export:
                    logger.debug(f"Excluding {site.binding_name}, it selects",
                                 site.accesses_named_export)
                    continue
                names.append(site.binding_name)
            return _unique(names)

        if profile.is_named and not profile.is_default:
            names = []

            # Direct use of the name
            if any(ref.name == symbol and ref.node.parent.type != 'export_specifier'
                   for ref in tree.references):
                names.append(symbol)

            # site.symbol, with site bound to a matching loader call
            site_bindings = {id(site.binding) for site in matching if site.binding is not None}
            for ref in tree.references:
                if not site_bindings or id(ref.binding) not in site_bindings:
                    continue
                parent = ref.node.parent
                if parent is None or parent.type != 'member_expression':
                    continue
                obj, prop = member_parts(parent)
                if obj is not None and obj.start_byte == ref.node.start_byte and prop is not None \
                        and node_text(prop, source) == symbol:
                    names.append(symbol)
                    break

            # const X = lazy(() => import('./m').then(m => m.symbol))
            names.extend(
                site.binding_name for site in matching
                if site.binding_name is not None and site.accesses_named_export == symbol
            )
            return _unique(names)

        if profile.is_default and profile.is_named:
            return _unique(site.binding_name for site in matching if site.binding_name is not None)

        return []

    def find_occurrences(self, parsed: ParsedSource, tree: ScopeTree,
                         sites: List[DynamicImportSite], name: str) -> List[Location]:
        """Uses of the bindings that matching sites named ``name`` declare.

        Occurrences resolve to the declared binding itself, so a shadowing
        local with the same name is never reported.
        """
        locations = []
        for site in sites:
            if site.binding is None or site.binding_name != name:
                continue
            for ref in tree.references_to(site.binding):
                if ref.node.start_byte == site.binding.identifier.start_byte:
                    continue
                line, column = char_position(ref.node, parsed.source)
                locations.append(Location(parsed.path, line, column))
        return locations

    def include_declaration(self, parsed: ParsedSource, site: DynamicImportSite, names: List[str],
                            declarators: Optional[List[Node]] = None) -> bool:
        """True if a declarator for one of ``names`` starts on the site's call line.

        ``declarators`` lets callers checking several sites walk the tree once.
        """
        if declarators is None:
            declarators = variable_declarators(parsed.root)
        wanted = set(names)
        for declarator in declarators:
            if declarator.start_point[0] != site.call_line:
                continue
            name = declarator.child_by_field_name('name')
            if name is not None and name.type == 'identifier' and node_text(name, parsed.source) in wanted:
                return True
        return False

    def locations(self, parsed: ParsedSource, tree: ScopeTree, sites: List[DynamicImportSite],
                  target_path: str, profile: ExportProfile) -> List[Location]:
        """Occurrences (document order, no duplicates) followed by declaration sites."""
        matching = self.matching_sites(sites, target_path)
        names = self.resolve_reference_names(tree, parsed.source, matching, target_path, profile)
        if not names:
            return []

        occurrences = []
        for name in names:
            occurrences.extend(self.find_occurrences(parsed, tree, matching, name))
        occurrences = sorted(set(occurrences), key=lambda loc: (loc.line, loc.column))

        declarators = variable_declarators(parsed.root)
        declarations = []
        for site in matching:
            if site.binding_name not in names:
                continue
            if self.include_declaration(parsed, site, names, declarators):
                location = Location(parsed.path, site.call_line, site.call_column)
                if location not in declarations:
                    declarations.append(location)

        logger.debug(f"{parsed.path}: names {names}, {len(occurrences)} occurrence(s)")
        return occurrences + declarations
