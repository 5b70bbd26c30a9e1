"""Classification of request paths as open or protected."""

import re
from typing import Iterable, Optional, Pattern, Tuple

from ..urls import normalize_path


class OpenPathSet(object):
    """
    The set of paths that do not require authentication.

    A path is open if it equals one of the configured prefixes, or starts
    with a prefix followed by ``/``. Matching is case-sensitive and works on
    whole path segments, so ``/open`` covers ``/open`` and ``/open/x`` but
    not ``/openish``.

    Regular expressions may also be given; a path matching one of them in
    full is open as well.
    """

    def __init__(self, prefixes: Optional[Iterable[str]] = None,
                 patterns: Optional[Iterable[str]] = None) -> None:
        """Normalize and de-duplicate the prefixes, preserving order."""
        ordered = []
        for prefix in prefixes or []:
            prefix = normalize_path(prefix)
            if prefix not in ordered:
                ordered.append(prefix)
        self.prefixes: Tuple[str, ...] = tuple(ordered)
        self.patterns: Tuple[Pattern, ...] = \
            tuple(re.compile(pattern) for pattern in patterns or [])

    def is_open(self, path: str) -> bool:
        """Determine whether ``path`` is exempt from authentication."""
        path = normalize_path(path)
        for prefix in self.prefixes:
            if path == prefix or path.startswith(prefix.rstrip('/') + '/'):
                return True
        return any(pattern.fullmatch(path) for pattern in self.patterns)

    def __contains__(self, path: str) -> bool:
        return self.is_open(path)

    def __repr__(self) -> str:
        return f'OpenPathSet({list(self.prefixes)!r})'


def from_config(value: Optional[str]) -> Tuple[str, ...]:
    """Split a comma-separated config value into its non-empty items."""
    if not value:
        return ()
    if not isinstance(value, str):
        return tuple(value)
    return tuple(item.strip() for item in value.split(',') if item.strip())
