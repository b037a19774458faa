"""Workspace-wide search for dynamic-import references to a symbol."""
import os
import re
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Sequence, Set, Tuple, Union

from dynref.config import get_config
from dynref.utils.logger import log

from .alias_resolver import resolve_alias
from .detector import DynamicImportDetector, DynamicImportSite
from .exports import ExportClassifier, ExportProfile, read_text
from .matcher_config import load_registry
from .matchers import MatcherRegistry
from .module_resolver import resolve_module_path
from .parser import LanguageParser, ParsedSource, ParseError
from .paths import is_path_included
from .references import Location, ReferenceBindingResolver
from .scope import ScopeAnalyzer
from .tsconfig import AliasConfig, AliasConfigCache

logger = log.with_prefix("SEARCH")

DEFAULT_EXTENSIONS = ('.js', '.jsx', '.ts', '.tsx')

# Identifier-ish run under the cursor, dotted paths included (``React.lazy``)
WORD_RE = re.compile(r'[\w$.]+')

Reader = Callable[[str], str]


class CancellationToken:
    """Cooperative cancellation flag, polled once per file."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancellation_requested(self) -> bool:
        return self._event.is_set()


def discover_files(root: Union[str, Path], extensions: Sequence[str] = DEFAULT_EXTENSIONS,
                   excluded_dirs: Optional[Set[str]] = None) -> List[Path]:
    """Source files below root, sorted, skipping dependency and build directories.

    Args:
        root: Workspace root
        extensions: File suffixes to include
        excluded_dirs: Directory names to skip anywhere in the tree

    Returns:
        Sorted list of file paths
    """
    root = Path(root)
    if excluded_dirs is None:
        excluded_dirs = get_config().excluded_dirs

    files = set()
    for ext in extensions:
        files.update(root.glob(f"**/*{ext}"))

    filtered = []
    for file_path in files:
        relative_parts = file_path.relative_to(root).parts[:-1]
        if any(part in excluded_dirs for part in relative_parts):
            continue
        if file_path.is_file():
            filtered.append(file_path)

    return sorted(filtered)


def word_at_position(text: str, line: int, column: int) -> Optional[str]:
    """Identifier under a 0-based (line, column) position.

    The dotted word around the cursor is found first; the segment the cursor
    sits on is returned, so ``Lazy.Home`` with the cursor on ``Home`` yields
    ``Home``.
    """
    lines = text.splitlines()
    if line < 0 or line >= len(lines):
        return None
    line_text = lines[line]

    for match in WORD_RE.finditer(line_text):
        if not match.start() <= column <= match.end():
            continue
        offset = column - match.start()
        position = 0
        for segment in match.group().split('.'):
            end = position + len(segment)
            if segment and position <= offset <= end:
                return None if segment[0].isdigit() else segment
            position = end + 1
    return None


class DynamicReferenceSearch:
    """Runs the per-file analysis over a set of files and aggregates locations.

    Per-file work shares only immutable state (the registry and alias
    configuration). Each worker thread owns its parser.
    """

    def __init__(self, registry: Optional[MatcherRegistry] = None, reader: Reader = read_text,
                 max_workers: Optional[int] = None):
        self.registry = registry or MatcherRegistry()
        self.reader = reader
        self.max_workers = max_workers
        self.detector = DynamicImportDetector(self.registry)
        self.resolver = ReferenceBindingResolver()
        self._local = threading.local()

    def search(self, files: Iterable[Union[str, Path]], symbol: str, origin_document: Union[str, Path],
               alias_config: Optional[AliasConfig] = None,
               token: Optional[CancellationToken] = None) -> List[Location]:
        """Locations in ``files`` that refer to ``symbol`` exported by ``origin_document``.

        Results follow file order; within a file, occurrences come first and
        declaration call sites last.
        """
        origin = os.path.abspath(str(origin_document))
        alias_config = alias_config or AliasConfig()
        profiles = _ProfileMemo(ExportClassifier(reader=self.reader))
        files = [str(f) for f in files]

        logger.info(f"Searching {len(files)} file(s) for {symbol} exported by", origin)

        def process(path: str) -> List[Location]:
            return self._process_file(path, symbol, origin, alias_config, profiles, token)

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            per_file = list(executor.map(process, files))

        results = [location for locations in per_file for location in locations]
        logger.info(f"Found {len(results)} location(s) for", symbol)
        return results

    def _parser(self) -> LanguageParser:
        parser = getattr(self._local, 'parser', None)
        if parser is None:
            parser = self._local.parser = LanguageParser()
        return parser

    def _process_file(self, path: str, symbol: str, origin: str, alias_config: AliasConfig,
                      profiles: '_ProfileMemo', token: Optional[CancellationToken]) -> List[Location]:
        if token is not None and token.is_cancellation_requested:
            return []

        try:
            text = self.reader(path)
            parsed = self._parser().parse_source(text, path)
        except (OSError, UnicodeDecodeError, ParseError) as e:
            logger.warn(f"Skipping {path}:", e)
            return []

        try:
            return self._analyze(parsed, symbol, origin, alias_config, profiles)
        except Exception as e:
            logger.error(f"Analysis failed for {path}:", e)
            return []

    def _analyze(self, parsed: ParsedSource, symbol: str, origin: str, alias_config: AliasConfig,
                 profiles: '_ProfileMemo') -> List[Location]:
        path = parsed.path
        tree = ScopeAnalyzer().analyze(parsed)
        sites = self.detector.detect(parsed, tree)
        if not sites:
            return []

        resolved = [self.resolve_site(site, path, alias_config, origin) for site in sites]
        matching = [s for s in resolved if s.resolved_path and is_path_included(s.resolved_path, origin)]
        if not matching:
            return []

        profile = profiles.get(origin, symbol)
        if not profile.is_exported:
            logger.debug(f"{symbol} is not exported by", origin)
            return []

        return self.resolver.locations(parsed, tree, matching, origin, profile)

    def resolve_site(self, site: DynamicImportSite, importing_file: str, alias_config: AliasConfig,
                     origin: Optional[str] = None) -> DynamicImportSite:
        """Site with its specifier resolved to a file, preferring one matching origin."""
        specifier = site.raw_specifier
        if not specifier.startswith('.') and alias_config.paths and alias_config.config_dir is not None:
            specifier = resolve_alias(specifier, alias_config.paths, str(alias_config.config_dir))

        if not (specifier.startswith('.') or os.path.isabs(specifier)):
            logger.debug("Not following package specifier", specifier)
            return site.with_resolved_path(None)

        candidates = resolve_module_path(specifier, importing_file)
        if not candidates:
            return site.with_resolved_path(None)

        if origin is not None:
            for candidate in candidates:
                if is_path_included(candidate, origin):
                    return site.with_resolved_path(os.path.abspath(candidate))
        return site.with_resolved_path(os.path.abspath(candidates[0]))


class _ProfileMemo:
    """Export profiles computed once per (file, symbol) for one search."""

    def __init__(self, classifier: ExportClassifier):
        self.classifier = classifier
        self._profiles = {}
        self._lock = threading.Lock()

    def get(self, path: str, symbol: str) -> ExportProfile:
        key: Tuple[str, str] = (path, symbol)
        with self._lock:
            profile = self._profiles.get(key)
            if profile is None:
                profile = self._profiles[key] = self.classifier.classify_file(path, symbol)
            return profile


def search_symbol(document: Union[str, Path], symbol: str, workspace_root: Union[str, Path],
                  registry: Optional[MatcherRegistry] = None,
                  token: Optional[CancellationToken] = None,
                  max_workers: Optional[int] = None,
                  alias_cache: Optional[AliasConfigCache] = None,
                  reader: Reader = read_text) -> List[Location]:
    """Search the workspace for dynamic-import references to a named symbol."""
    config = get_config()
    workspace_root = Path(workspace_root)
    registry = registry or load_registry(workspace_root)
    alias_cache = alias_cache or AliasConfigCache()

    files = discover_files(workspace_root, excluded_dirs=config.excluded_dirs)
    search = DynamicReferenceSearch(registry, reader, max_workers or config.max_workers)
    return search.search(files, symbol, document, alias_cache.for_document(Path(document)), token)


def find_references(document: Union[str, Path], line: int, column: int,
                    workspace_root: Union[str, Path],
                    registry: Optional[MatcherRegistry] = None,
                    token: Optional[CancellationToken] = None,
                    max_workers: Optional[int] = None,
                    alias_cache: Optional[AliasConfigCache] = None,
                    reader: Reader = read_text) -> List[Location]:
    """Find references for the symbol at a 0-based position in a document."""
    try:
        text = reader(str(document))
    except (OSError, UnicodeDecodeError) as e:
        logger.error(f"Could not read {document}:", e)
        return []

    word = word_at_position(text, line, column)
    if word is None:
        logger.debug(f"No word at {document}:{line}:{column}")
        return []

    return search_symbol(document, word, workspace_root, registry=registry, token=token,
                         max_workers=max_workers, alias_cache=alias_cache, reader=reader)
