"""tsconfig.json discovery and ``compilerOptions.paths`` loading."""
import json
import re
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Set

from dynref.utils.logger import log

logger = log.with_prefix("TSCONFIG")

AliasTable = Dict[str, List[str]]

TSCONFIG_NAME = 'tsconfig.json'

# Strings are matched first so that "//" or "/*" inside a value (e.g. a URL
# or a "src/*" glob) is kept.
_COMMENT_RE = re.compile(
    r'("(?:\\.|[^"\\])*")|//[^\n]*|/\*.*?\*/',
    re.DOTALL,
)
_TRAILING_COMMA_RE = re.compile(r'("(?:\\.|[^"\\])*")|,(\s*[}\]])')


@dataclass(frozen=True)
class AliasConfig:
    """An alias table and the directory its targets are relative to."""
    paths: AliasTable = field(default_factory=dict)
    config_dir: Optional[Path] = None

    @property
    def is_empty(self) -> bool:
        return not self.paths


def strip_json_comments(text: str) -> str:
    """Remove // and /* */ comments and trailing commas from JSONC text."""
    text = _COMMENT_RE.sub(lambda m: m.group(1) or '', text)
    return _TRAILING_COMMA_RE.sub(lambda m: m.group(1) or m.group(2), text)


def read_jsonc(path: Path) -> Optional[dict]:
    """Parse a JSON-with-comments file, or None if it cannot be read."""
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.loads(strip_json_comments(f.read()))
    except (OSError, ValueError) as e:
        logger.warn(f"Could not read {path}:", e)
        return None
    return data if isinstance(data, dict) else None


def find_tsconfig(start: Path) -> Optional[Path]:
    """Nearest tsconfig.json in ``start`` (or its directory) and its parents."""
    start = Path(start).absolute()
    directory = start if start.is_dir() else start.parent

    for candidate_dir in (directory, *directory.parents):
        candidate = candidate_dir / TSCONFIG_NAME
        if candidate.is_file():
            return candidate
    return None


def _extends_path(tsconfig: Path, extends: str) -> Path:
    target = (tsconfig.parent / extends)
    if target.suffix != '.json':
        target = target.with_name(target.name + '.json')
    return target


def load_alias_table(tsconfig: Path, _seen: Optional[Set[Path]] = None) -> AliasTable:
    """``compilerOptions.paths`` of a tsconfig merged over its ``extends`` chain.

    Keys from the nearer file win. Only path ``extends`` are followed;
    a malformed level contributes nothing.
    """
    tsconfig = Path(tsconfig).absolute()
    seen = _seen if _seen is not None else set()
    if tsconfig in seen:
        logger.warn("Cyclic tsconfig extends at", tsconfig)
        return {}
    seen.add(tsconfig)

    data = read_jsonc(tsconfig)
    if data is None:
        return {}

    merged: AliasTable = {}

    extends = data.get('extends')
    # Package extends ("@tsconfig/node18") live in node_modules and are skipped
    if isinstance(extends, str) and (extends.startswith('.') or Path(extends).is_absolute()):
        parent = _extends_path(tsconfig, extends)
        if parent.is_file():
            merged.update(load_alias_table(parent, seen))
        else:
            logger.warn(f"tsconfig {tsconfig} extends missing file", parent)

    compiler_options = data.get('compilerOptions') or {}
    paths = compiler_options.get('paths') if isinstance(compiler_options, dict) else None
    if isinstance(paths, dict):
        for alias, targets in paths.items():
            if isinstance(targets, list):
                merged[alias] = [t for t in targets if isinstance(t, str)]

    return merged


def load_alias_config(document: Path) -> AliasConfig:
    """AliasConfig for the tsconfig governing ``document``."""
    tsconfig = find_tsconfig(document)
    if tsconfig is None:
        logger.debug("No tsconfig found for", document)
        return AliasConfig()
    return AliasConfig(paths=load_alias_table(tsconfig), config_dir=tsconfig.parent)


class AliasConfigCache:
    """Per-document memo of alias configuration, safe to share between threads."""

    def __init__(self):
        self._configs: Dict[Path, AliasConfig] = {}
        self._lock = threading.Lock()

    def for_document(self, document: Path) -> AliasConfig:
        key = Path(document).absolute()
        with self._lock:
            config = self._configs.get(key)
        if config is not None:
            return config

        config = load_alias_config(key)
        with self._lock:
            return self._configs.setdefault(key, config)

    def clear(self) -> None:
        with self._lock:
            self._configs.clear()
