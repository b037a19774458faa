"""Custom matcher configuration.

Reads user-defined loader rules from a JSON file shaped like::

    {
      "customMatchers": [
        {"kind": "named", "name": "lazyLoad", "source": "@acme/lazy"},
        {"kind": "member", "source": "@acme/ui", "namespace": "UI", "member": "lazy"}
      ]
    }

Entries are validated one by one. A malformed entry is dropped with a warning
and never reaches the registry, so the registry can assume well-formed rules.
"""
import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from dynref.config import DEFAULT_MATCHERS_FILE, get_config
from dynref.utils.logger import log

from .matchers import MatcherKind, MatcherRegistry, MatcherRule

logger = log.with_prefix("MATCHER CONFIG")

# kind -> fields that must be non-empty strings
REQUIRED_FIELDS: Dict[MatcherKind, Tuple[str, ...]] = {
    MatcherKind.NAMED: ('name', 'source'),
    MatcherKind.DEFAULT: ('source',),
    MatcherKind.MEMBER: ('source', 'namespace', 'member'),
    MatcherKind.IDENTIFIER: ('name',),
}

_STRING_FIELDS = ('name', 'source', 'namespace', 'member')

# JSON key -> MatcherRule field
_FLAG_FIELDS = {
    'allowAlias': 'allow_alias',
    'requireImport': 'require_import',
    'memberAccess': 'member_access',
}


def parse_matcher(entry: Any) -> Optional[MatcherRule]:
    """Build a MatcherRule from one JSON entry, or None if it is invalid."""
    if not isinstance(entry, dict):
        logger.warn("Ignoring custom matcher that is not an object:", entry)
        return None

    try:
        kind = MatcherKind(entry.get('kind'))
    except ValueError:
        logger.warn("Ignoring custom matcher with unknown kind:", entry)
        return None

    for field_name in _STRING_FIELDS:
        value = entry.get(field_name)
        if value is not None and not isinstance(value, str):
            logger.warn(f"Ignoring custom matcher, '{field_name}' must be a string:", entry)
            return None

    missing = [f for f in REQUIRED_FIELDS[kind] if not entry.get(f)]
    if missing:
        logger.warn(f"Ignoring {kind.value} matcher missing {', '.join(missing)}:", entry)
        return None

    flags = {}
    for json_key, attr in _FLAG_FIELDS.items():
        value = entry.get(json_key, False)
        if not isinstance(value, bool):
            logger.warn(f"Ignoring custom matcher, '{json_key}' must be a boolean:", entry)
            return None
        flags[attr] = value

    return MatcherRule(
        kind=kind,
        name=entry.get('name'),
        source=entry.get('source'),
        namespace=entry.get('namespace'),
        member=entry.get('member'),
        **flags,
    )


def parse_matchers(entries: Any) -> List[MatcherRule]:
    """Validate a list of JSON entries, keeping the well-formed ones in order."""
    if not isinstance(entries, list):
        logger.warn("customMatchers must be a list, got", type(entries).__name__)
        return []

    rules = []
    for entry in entries:
        rule = parse_matcher(entry)
        if rule is not None:
            rules.append(rule)
    return rules


def load_custom_matchers(config_file: Path) -> List[MatcherRule]:
    """Read and validate custom matchers from a JSON file.

    A missing, unreadable or malformed file yields an empty list.
    """
    config_file = Path(config_file)
    if not config_file.is_file():
        return []

    try:
        with open(config_file, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        logger.warn(f"Could not read {config_file}:", e)
        return []

    if not isinstance(data, dict):
        logger.warn(f"{config_file} must contain a JSON object")
        return []

    rules = parse_matchers(data.get('customMatchers', []))
    logger.debug(f"Loaded {len(rules)} custom matcher(s) from", config_file)
    return rules


def matchers_file_for(workspace_root: Path) -> Path:
    """Configured matcher file, or the default one at the workspace root."""
    configured = get_config().matchers_file
    if configured is not None:
        return configured if configured.is_absolute() else Path(workspace_root) / configured
    return Path(workspace_root) / DEFAULT_MATCHERS_FILE


def load_registry(workspace_root: Path) -> MatcherRegistry:
    """Registry with the workspace's custom matchers applied."""
    return MatcherRegistry(load_custom_matchers(matchers_file_for(workspace_root)))
