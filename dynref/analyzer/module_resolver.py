"""Resolution of relative (or already alias-rewritten) specifiers to files."""
import os
from pathlib import Path
from typing import List, Union

from dynref.utils.logger import log

logger = log.with_prefix("RESOLVER")

SOURCE_EXTENSIONS = ('.js', '.jsx', '.ts', '.tsx', '.mjs', '.cjs', '.mts', '.cts')

# Probe order for extension-less specifiers
PROBE_EXTENSIONS = ('.tsx', '.ts', '.jsx', '.js')


def resolve_module_path(specifier: str, importing_file: Union[str, Path]) -> List[str]:
    """Files a specifier may refer to, relative to the importing file.

    Absolute specifiers (the output of alias rewriting) are used as-is.

    Returns:
        - a directory's source files, sorted by name (zero, one or many)
        - the file itself when the specifier already names a source file
        - the first ``.tsx/.ts/.jsx/.js`` probe that exists
        - ``[]`` when nothing matches; OS errors never propagate
    """
    candidate = os.path.normpath(os.path.join(os.path.dirname(str(importing_file)), specifier))

    try:
        if os.path.isdir(candidate):
            return _directory_sources(candidate)

        if os.path.isfile(candidate) and candidate.endswith(SOURCE_EXTENSIONS):
            return [candidate]

        for ext in PROBE_EXTENSIONS:
            probe = candidate + ext
            if os.path.isfile(probe):
                return [probe]
    except OSError as e:
        logger.warn(f"Could not resolve {specifier} from {importing_file}:", e)
        return []

    logger.debug(f"Unresolved specifier {specifier} from", importing_file)
    return []


def _directory_sources(directory: str) -> List[str]:
    entries = sorted(os.listdir(directory))
    return [
        os.path.join(directory, name)
        for name in entries
        if name.endswith(SOURCE_EXTENSIONS) and os.path.isfile(os.path.join(directory, name))
    ]
