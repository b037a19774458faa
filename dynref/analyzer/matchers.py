"""Rules describing which calls count as dynamic-import loaders.

The registry is an immutable value. A configuration change builds a new
registry with ``with_custom`` and the caller swaps it in; nothing mutates a
registry that a running search may be reading.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional, Tuple

from .js_import_tracker import ImportInfo
from .scope import Binding


class MatcherKind(str, Enum):
    NAMED = "named"
    DEFAULT = "default"
    MEMBER = "member"
    IDENTIFIER = "identifier"


@dataclass(frozen=True)
class MatcherRule:
    """One loader pattern.

    named:      import { name } from source;         name(...)
    default:    import anything from source;        anything(...)
    member:     import * as namespace from source;  namespace.member(...)
    identifier: name(...) with no import requirement unless require_import
    """
    kind: MatcherKind
    name: Optional[str] = None
    source: Optional[str] = None
    namespace: Optional[str] = None
    member: Optional[str] = None
    allow_alias: bool = False
    require_import: bool = False
    member_access: bool = False


DEFAULT_FUNCTION_NAMES = ("dynamic", "lazy", "loadable")

# Properties that select a loader off an imported object: React.lazy(...),
# dynamicModule.default(...)
LOADER_PROPERTIES = frozenset({"lazy", "dynamic", "loadable", "default"})

DEFAULT_MATCHERS: Tuple[MatcherRule, ...] = (
    MatcherRule(MatcherKind.NAMED, name="lazy", source="react", allow_alias=True),
    MatcherRule(MatcherKind.NAMED, name="dynamic", source="next/dynamic", allow_alias=True),
    MatcherRule(MatcherKind.DEFAULT, source="next/dynamic", allow_alias=True),
    MatcherRule(MatcherKind.NAMED, name="loadable", source="@loadable/component", allow_alias=True),
    MatcherRule(MatcherKind.DEFAULT, source="@loadable/component", allow_alias=True),
)


class MatcherRegistry:
    """Built-in plus custom loader rules, queried on every call-expression visit."""

    def __init__(self, custom: Iterable[MatcherRule] = ()):
        self._custom: Tuple[MatcherRule, ...] = tuple(custom)
        self._rules: Tuple[MatcherRule, ...] = DEFAULT_MATCHERS + self._custom

    @property
    def custom_matchers(self) -> Tuple[MatcherRule, ...]:
        return self._custom

    def all_matchers(self) -> Tuple[MatcherRule, ...]:
        return self._rules

    def with_custom(self, custom: Iterable[MatcherRule]) -> 'MatcherRegistry':
        """New registry with the given custom rules replacing the current ones."""
        return MatcherRegistry(custom)

    def is_direct_call(self, callee_name: str, binding: Optional[Binding]) -> bool:
        """True if calling ``callee_name`` (bound by ``binding``) loads a module lazily."""
        if callee_name in DEFAULT_FUNCTION_NAMES:
            return True

        info = binding.import_info if binding is not None else None

        for rule in self._rules:
            if rule.kind is MatcherKind.IDENTIFIER:
                if rule.name != callee_name:
                    continue
                if rule.require_import and info is None:
                    continue
                if rule.source and info is not None and info.source_module != rule.source:
                    continue
                return True

            if info is None or info.is_namespace or info.source_module != rule.source:
                continue

            if rule.kind is MatcherKind.NAMED and info.original_name == rule.name:
                if rule.allow_alias or not info.is_aliased:
                    return True

            elif rule.kind is MatcherKind.DEFAULT and info.original_name == 'default':
                # A default import has no canonical local name; when aliasing is
                # disallowed the rule's name (if any) pins it.
                if rule.allow_alias or rule.name is None or rule.name == callee_name:
                    return True

        return False

    def is_member_call(self, object_name: str, object_binding: Optional[Binding],
                       property_name: str) -> bool:
        """True if ``object_name.property_name(...)`` loads a module lazily."""
        info: Optional[ImportInfo] = object_binding.import_info if object_binding is not None else None

        if property_name in LOADER_PROPERTIES and info is not None:
            if any(rule.source == info.source_module for rule in self._rules):
                return True

        for rule in self._rules:
            if rule.kind is MatcherKind.MEMBER and rule.member == property_name:
                if rule.require_import and (info is None or info.source_module != rule.source):
                    continue
                if object_name == rule.namespace:
                    return True
                if rule.allow_alias and info is not None and info.source_module == rule.source:
                    return True

            elif (rule.kind is MatcherKind.NAMED and rule.member_access
                  and rule.name == property_name
                  and info is not None and info.source_module == rule.source):
                return True

        return False
