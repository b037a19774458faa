"""tsconfig ``paths`` alias rewriting for import specifiers."""
import os
from typing import Mapping, Optional, Sequence


def remove_overlapping_suffix(base: str, target: str) -> str:
    """Drop from ``base`` the longest tail that ``target`` starts with.

    Guards against doubled segments when an alias target repeats the end of
    the tsconfig directory::

        remove_overlapping_suffix("src/utils/helpers", "utils/helpers") == "src/"
        remove_overlapping_suffix("src/utils/helpers", "lib/models") == "src/utils/helpers"
    """
    base_parts = base.split('/')
    target_parts = target.split('/')

    overlap = None
    for size in range(1, min(len(base_parts), len(target_parts)) + 1):
        if base_parts[-size:] == target_parts[:size]:
            overlap = '/'.join(base_parts[-size:])

    if overlap is None:
        return base
    return base[:len(base) - len(overlap)]


def match_alias(specifier: str, alias_table: Mapping[str, Sequence[str]]) -> Optional[str]:
    """First alias key (table order) whose literal prefix starts the specifier."""
    for alias in alias_table:
        if specifier.startswith(_strip_wildcard(alias)):
            return alias
    return None


def resolve_alias(specifier: str, alias_table: Mapping[str, Sequence[str]], base_dir: str) -> str:
    """Rewrite an aliased specifier to an absolute path.

    Only the first target of the matching alias is used. Specifiers that match
    no alias are returned unchanged.

    Args:
        specifier: Module specifier as written in the import
        alias_table: ``compilerOptions.paths`` mapping
        base_dir: Directory of the tsconfig that declared the table
    """
    alias = match_alias(specifier, alias_table)
    if alias is None:
        return specifier

    targets = alias_table[alias]
    if not targets:
        return specifier

    prefix = _strip_wildcard(alias)
    target = _strip_wildcard(targets[0])

    if not os.path.isabs(target):
        base = remove_overlapping_suffix(str(base_dir), target)
        target = os.path.abspath(os.path.join(base, target))

    remainder = specifier[len(prefix):].lstrip('/')
    return os.path.normpath(os.path.join(target, remainder)) if remainder else os.path.normpath(target)


def _strip_wildcard(pattern: str) -> str:
    return pattern[:-1] if pattern.endswith('*') else pattern
