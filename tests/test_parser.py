"""Tests for the tree-sitter parser wrapper."""
import pytest

from dynref.analyzer.parser import LanguageParser, ParseError, count_error_nodes


class TestParseSource:

    def test_tsx_source(self, parser):
        parsed = parser.parse_source("const A = () => <div>{x as number}</div>;\n", "page.tsx")
        assert parsed.grammar == 'tsx'
        assert parsed.root.type == 'program'
        assert count_error_nodes(parsed.root) == 0

    def test_str_and_bytes_agree(self, parser):
        text = "export const x = 1;\n"
        assert parser.parse_source(text).source == parser.parse_source(text.encode('utf-8')).source

    def test_angle_bracket_cast_falls_back_to_typescript(self, parser):
        """`<T>value` casts are not valid TSX, the TypeScript grammar takes over."""
        parsed = parser.parse_source("let n = <number>value;\n", "legacy.ts")
        assert parsed.grammar == 'typescript'
        assert count_error_nodes(parsed.root) == 0

    def test_plain_javascript(self, parser):
        parsed = parser.parse_source("module.exports = function () { return 1; };\n", "x.cjs")
        assert parsed.root.type == 'program'

    def test_invalid_utf8_rejected(self, parser):
        with pytest.raises(ParseError):
            parser.parse_source(b"const x = '\xff\xfe';", "bad.ts")

    def test_parse_error_is_value_error(self):
        assert issubclass(ParseError, ValueError)

    def test_unknown_grammar(self, parser):
        with pytest.raises(ValueError):
            parser._get_parser('cobol')

    def test_parsers_cached(self, parser):
        assert parser._get_parser('tsx') is parser._get_parser('tsx')


class TestParseFile:

    def test_reads_file(self, tmp_path):
        source = tmp_path / 'a.tsx'
        source.write_text("export default function A() { return null; }\n")
        parsed = LanguageParser().parse_file(source)
        assert parsed is not None
        assert parsed.path == str(source)

    def test_missing_file_returns_none(self, tmp_path):
        assert LanguageParser().parse_file(tmp_path / 'missing.tsx') is None

    def test_binary_file_returns_none(self, tmp_path):
        source = tmp_path / 'blob.js'
        source.write_bytes(b"\x89PNG\r\n\x1a\n\xff\x00")
        assert LanguageParser().parse_file(source) is None
