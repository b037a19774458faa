"""Path containment rule used to match resolved imports against a document."""
import os
import re

EXTENSION_RE = re.compile(r'\.(?:[cm]?[jt]sx?)$')
RELATIVE_PREFIX_RE = re.compile(r'^(?:\.\.?/)+')


def normalize(path: str) -> str:
    """normpath with forward slashes, regardless of platform."""
    return os.path.normpath(str(path).replace('\\', '/')).replace('\\', '/')


def is_path_included(target: str, base: str) -> bool:
    """True if ``target`` names the same module as the tail of ``base``.

    An absolute ``target`` is already resolved to a file and must equal
    ``base`` after normalization, extension included. A relative ``target``
    loses any leading ``./``/``../`` run, both sides lose a JS/TS extension,
    and it is included when its segments equal the trailing segments of
    ``base``::

        is_path_included("components/Home", "/app/src/components/Home.tsx")  # True
        is_path_included("../Home", "/app/src/components/Home.tsx")          # True
        is_path_included("/app/src/components/Home.jsx",
                         "/app/src/components/Home.tsx")                     # False
        is_path_included("Home/index", "/app/src/components/Home.tsx")       # False
    """
    normalized_target = normalize(target)
    if normalized_target.startswith('/'):
        return normalized_target == normalize(base)

    clean_target = EXTENSION_RE.sub('', RELATIVE_PREFIX_RE.sub('', normalized_target))
    clean_base = EXTENSION_RE.sub('', normalize(base))

    target_parts = [part for part in clean_target.split('/') if part not in ('', '.')]
    base_parts = [part for part in clean_base.split('/') if part not in ('', '.')]

    if not target_parts or len(target_parts) > len(base_parts):
        return False
    return base_parts[-len(target_parts):] == target_parts
