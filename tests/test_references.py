"""Tests for per-file reference name resolution and occurrence scanning."""
import pytest

from dynref.analyzer import references as references_module
from dynref.analyzer.detector import DynamicImportDetector
from dynref.analyzer.exports import ExportProfile
from dynref.analyzer.matchers import MatcherRegistry
from dynref.analyzer.references import Location, ReferenceBindingResolver
from dynref.analyzer.scope import variable_declarators

PAGE = '/workspace/page.tsx'
TARGET = '/workspace/m.tsx'

DEFAULT = ExportProfile('Foo', is_default=True)
NAMED = ExportProfile('Named', is_named=True)
BOTH = ExportProfile('Foo', is_default=True, is_named=True)
NEITHER = ExportProfile('Foo')


@pytest.fixture
def resolver():
    return ReferenceBindingResolver()


@pytest.fixture
def prepare(analyze):
    """Parse a page and resolve every site to TARGET (or to other_target by specifier)."""
    def _prepare(source, other=None):
        parsed, tree = analyze(source, PAGE)
        sites = DynamicImportDetector(MatcherRegistry()).detect(parsed, tree)
        resolved = []
        for site in sites:
            if other and site.raw_specifier in other:
                resolved.append(site.with_resolved_path(other[site.raw_specifier]))
            else:
                resolved.append(site.with_resolved_path(TARGET))
        return parsed, tree, resolved
    return _prepare


class TestReferenceNames:

    def test_default_export_includes_binding(self, prepare, resolver):
        parsed, tree, sites = prepare("const A = dynamic(() => import('./m'));\n")
        assert resolver.resolve_reference_names(tree, parsed.source, sites, TARGET, DEFAULT) == ['A']

    def test_default_export_excludes_named_selection(self, prepare, resolver):
        source = (
            "const A = dynamic(() => import('./m'));\n"
            "const B = lazy(() => import('./m').then(x => x.Named));\n"
        )
        parsed, tree, sites = prepare(source)
        assert resolver.resolve_reference_names(tree, parsed.source, sites, TARGET, DEFAULT) == ['A']

    def test_non_matching_sites_ignored(self, prepare, resolver):
        source = (
            "const A = dynamic(() => import('./m'));\n"
            "const C = dynamic(() => import('./other'));\n"
        )
        parsed, tree, sites = prepare(source, other={'./other': '/workspace/other.tsx'})
        assert resolver.resolve_reference_names(tree, parsed.source, sites, TARGET, DEFAULT) == ['A']

    def test_unresolved_sites_never_match(self, prepare, resolver):
        parsed, tree, sites = prepare("const A = dynamic(() => import('./m'));\n")
        unresolved = [site.with_resolved_path(None) for site in sites]
        assert resolver.resolve_reference_names(tree, parsed.source, unresolved, TARGET, DEFAULT) == []

    def test_named_export_via_then_selection(self, prepare, resolver):
        source = (
            "const B = lazy(() => import('./m').then(x => x.Named));\n"
            "export const view = <B />;\n"
        )
        parsed, tree, sites = prepare(source)
        assert resolver.resolve_reference_names(tree, parsed.source, sites, TARGET, NAMED) == ['B']

    def test_named_export_direct_reference(self, prepare, resolver):
        source = (
            "const Named = lazy(() => import('./m').then(x => ({ default: x.Named })));\n"
            "export const view = <Named />;\n"
        )
        parsed, tree, sites = prepare(source)
        assert resolver.resolve_reference_names(tree, parsed.source, sites, TARGET, NAMED) == ['Named']

    def test_named_export_member_access_on_binding(self, prepare, resolver):
        source = (
            "const Mod = dynamic(() => import('./m'));\n"
            "Mod.Named;\n"
        )
        parsed, tree, sites = prepare(source)
        assert resolver.resolve_reference_names(tree, parsed.source, sites, TARGET, NAMED) == ['Named']

    def test_named_export_not_used(self, prepare, resolver):
        parsed, tree, sites = prepare("const Mod = dynamic(() => import('./m'));\nMod.Other;\n")
        assert resolver.resolve_reference_names(tree, parsed.source, sites, TARGET, NAMED) == []

    def test_both_includes_every_binding(self, prepare, resolver):
        source = (
            "const A = dynamic(() => import('./m'));\n"
            "const B = lazy(() => import('./m').then(x => x.Named));\n"
            "const { C } = lazy(() => import('./m'));\n"
        )
        parsed, tree, sites = prepare(source)
        assert resolver.resolve_reference_names(tree, parsed.source, sites, TARGET, BOTH) == ['A', 'B']

    def test_neither(self, prepare, resolver):
        parsed, tree, sites = prepare("const A = dynamic(() => import('./m'));\n")
        assert resolver.resolve_reference_names(tree, parsed.source, sites, TARGET, NEITHER) == []


class TestLocations:

    def test_property_key_and_member_property_excluded(self, prepare, resolver):
        source = (
            "const A = dynamic(() => import('./m'));\n"
            "const obj = { A: 1 };\n"
            "obj.A;\n"
            "export const view = <A />;\n"
        )
        parsed, tree, sites = prepare(source)
        assert resolver.locations(parsed, tree, sites, TARGET, DEFAULT) == [
            Location(PAGE, 3, 21),
            Location(PAGE, 0, 10),
        ]

    def test_shadowed_local_not_reported(self, prepare, resolver):
        source = (
            "const A = dynamic(() => import('./m'));\n"
            "function Preview(A) {\n"
            "  return <A />;\n"
            "}\n"
            "function Other() {\n"
            "  const A = () => null;\n"
            "  return <A />;\n"
            "}\n"
            "export const view = <A />;\n"
        )
        parsed, tree, sites = prepare(source)
        assert resolver.locations(parsed, tree, sites, TARGET, DEFAULT) == [
            Location(PAGE, 8, 21),
            Location(PAGE, 0, 10),
        ]

    def test_occurrences_in_document_order(self, prepare, resolver):
        source = (
            "export const first = () => <A />;\n"
            "const A = dynamic(() => import('./m'));\n"
            "export const second = <div><A /><A /></div>;\n"
        )
        parsed, tree, sites = prepare(source)
        assert resolver.locations(parsed, tree, sites, TARGET, DEFAULT) == [
            Location(PAGE, 0, 28),
            Location(PAGE, 2, 28),
            Location(PAGE, 2, 33),
            Location(PAGE, 1, 10),
        ]

    def test_declaration_skipped_when_call_on_later_line(self, prepare, resolver):
        source = (
            "const A =\n"
            "  dynamic(() => import('./m'));\n"
            "A;\n"
        )
        parsed, tree, sites = prepare(source)
        assert resolver.locations(parsed, tree, sites, TARGET, DEFAULT) == [Location(PAGE, 2, 0)]

    def test_shorthand_property_is_occurrence(self, prepare, resolver):
        source = (
            "const A = dynamic(() => import('./m'));\n"
            "export const registry = { A };\n"
        )
        parsed, tree, sites = prepare(source)
        assert resolver.locations(parsed, tree, sites, TARGET, DEFAULT) == [
            Location(PAGE, 1, 26),
            Location(PAGE, 0, 10),
        ]

    def test_nothing_for_unexported_symbol(self, prepare, resolver):
        parsed, tree, sites = prepare("const A = dynamic(() => import('./m'));\n<A />;\n")
        assert resolver.locations(parsed, tree, sites, TARGET, NEITHER) == []

    def test_include_declaration(self, prepare, resolver):
        parsed, tree, sites = prepare("const A = dynamic(() => import('./m'));\n")
        assert resolver.include_declaration(parsed, sites[0], ['A'])
        assert not resolver.include_declaration(parsed, sites[0], ['B'])


def test_location_to_dict():
    assert Location('/a.tsx', 1, 2).to_dict() == {'file': '/a.tsx', 'line': 1, 'column': 2}


class TestDeclarationLookup:

    def test_precomputed_declarators_are_used(self, prepare, resolver):
        parsed, tree, sites = prepare("const A = dynamic(() => import('./m'));\n")
        assert resolver.include_declaration(parsed, sites[0], ['A'], variable_declarators(parsed.root))
        assert not resolver.include_declaration(parsed, sites[0], ['A'], [])

    def test_locations_walk_declarators_once(self, prepare, resolver, monkeypatch):
        source = (
            "const A = dynamic(() => import('./m'));\n"
            "const B = dynamic(() => import('./m'));\n"
        )
        parsed, tree, sites = prepare(source)
        calls = []

        def counting(root):
            calls.append(root)
            return variable_declarators(root)

        monkeypatch.setattr(references_module, "variable_declarators", counting)
        assert resolver.locations(parsed, tree, sites, TARGET, DEFAULT) == [
            Location(PAGE, 0, 10),
            Location(PAGE, 1, 10),
        ]
        assert len(calls) == 1
