"""Tree-sitter parser for JavaScript/TypeScript sources with a fallback grammar."""
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Tuple, Union

from tree_sitter import Language, Node, Parser, Tree
import tree_sitter_javascript as tsjavascript
import tree_sitter_typescript as tstypescript

from dynref.utils.logger import log

logger = log.with_prefix("PARSER")


class ParseError(ValueError):
    """Raised when a source cannot be turned into a usable syntax tree."""


@dataclass
class ParsedSource:
    """A parsed file: the raw bytes, the tree and the grammar that produced it."""
    path: str
    source: bytes
    tree: Tree
    grammar: str

    @property
    def root(self) -> Node:
        return self.tree.root_node


class LanguageParser:
    """JS/TS parser using the tree-sitter v0.22+ API.

    The TSX grammar is tried first since it accepts JSX and type syntax alike.
    When it reports errors the extension-specific grammar is tried, which
    covers the constructs TSX rejects (``<T>value`` casts in .ts files, some
    legacy JS). Whichever tree has fewer error nodes wins.
    """

    PRIMARY_GRAMMAR = 'tsx'

    # Extension -> fallback grammar
    FALLBACK_GRAMMARS = {
        '.ts': 'typescript',
        '.mts': 'typescript',
        '.cts': 'typescript',
        '.tsx': 'typescript',
        '.js': 'javascript',
        '.jsx': 'javascript',
        '.mjs': 'javascript',
        '.cjs': 'javascript',
    }

    def __init__(self):
        self._parsers: Dict[str, Parser] = {}

    def _get_parser(self, grammar: str) -> Parser:
        """Factory method using the Parser(Language(capsule)) syntax.

        Raises:
            ValueError: If the grammar is not supported
        """
        parser = self._parsers.get(grammar)
        if parser is not None:
            return parser

        if grammar == 'tsx':
            lang = Language(tstypescript.language_tsx())
        elif grammar == 'typescript':
            lang = Language(tstypescript.language_typescript())
        elif grammar == 'javascript':
            lang = Language(tsjavascript.language())
        else:
            raise ValueError(f"Unsupported grammar: {grammar}")

        parser = Parser(lang)
        self._parsers[grammar] = parser
        return parser

    def parse_source(self, source: Union[str, bytes], path: str | Path = "<memory>") -> ParsedSource:
        """Parse source text into a ParsedSource.

        Args:
            source: File contents
            path: Path the source came from; selects the fallback grammar

        Returns:
            ParsedSource for the best available tree

        Raises:
            ParseError: If the bytes are not UTF-8 or no grammar produces a
                tree with a non-error root
        """
        if isinstance(source, str):
            source = source.encode('utf-8')
        else:
            try:
                source.decode('utf-8')
            except UnicodeDecodeError as e:
                raise ParseError(f"{path}: source is not valid UTF-8") from e

        path = str(path)
        best = self._parse_with(self.PRIMARY_GRAMMAR, source)

        if best[1] > 0:
            fallback = self.FALLBACK_GRAMMARS.get(Path(path).suffix.lower(), 'typescript')
            logger.debug(f"Primary parse of {path} has {best[1]} error(s), trying", fallback)
            candidate = self._parse_with(fallback, source)
            if candidate[1] < best[1]:
                best = candidate

        tree, errors, grammar = best
        if tree.root_node.type == 'ERROR':
            raise ParseError(f"{path}: no grammar produced a usable tree")
        if errors:
            logger.warn(f"Parsed {path} with {errors} error node(s) using", grammar)

        return ParsedSource(path=path, source=source, tree=tree, grammar=grammar)

    def parse_file(self, file_path: str | Path) -> Optional[ParsedSource]:
        """Parse a file from disk, returning None if it cannot be read or parsed."""
        file_path = Path(file_path)
        try:
            source = file_path.read_bytes()
            return self.parse_source(source, file_path)
        except (OSError, ParseError) as e:
            logger.warn(f"Could not parse {file_path}:", e)
            return None

    def _parse_with(self, grammar: str, source: bytes) -> Tuple[Tree, int, str]:
        tree = self._get_parser(grammar).parse(source)
        return tree, count_error_nodes(tree.root_node), grammar


def count_error_nodes(root: Node) -> int:
    """Count ERROR and MISSING nodes below root."""
    if not root.has_error:
        return 0

    count = 0
    stack = [root]
    while stack:
        node = stack.pop()
        if node.type == 'ERROR' or node.is_missing:
            count += 1
        if node.has_error:
            stack.extend(node.children)
    return count
