"""
PocketBase expand queries.

Builds the ``expand`` query parameter naming the relations to inline into a
response, e.g. ``author,comments.user``.
"""

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class ExpandQuery:
    """
    Immutable, ordered list of relation paths.

    Paths are opaque: ``author`` and ``author.profile`` are sent as given and
    repeated paths are kept.
    """
    paths: Tuple[str, ...] = ()

    def __init__(self, *paths: str):
        object.__setattr__(self, 'paths', tuple(paths))

    @property
    def is_empty(self) -> bool:
        return not self.paths

    def render(self) -> str:
        """Build the ``expand`` query parameter value."""
        return ",".join(self.paths)

    def __str__(self):
        return self.render()

    def expand(self, field: str) -> 'ExpandQuery':
        """Return a new query with ``field`` appended."""
        return ExpandQuery(*self.paths, field)

    def expand_nested(self, path: str) -> 'ExpandQuery':
        """Return a new query with a dot-separated path (e.g. "author.profile") appended."""
        return ExpandQuery(*self.paths, path)


class ExpandBuilder:
    """Mutable collector; ``build()`` returns the immutable ExpandQuery."""

    def __init__(self):
        self._paths = []

    def field(self, field: str) -> 'ExpandBuilder':
        self._paths.append(field)
        return self

    def nested(self, path: str) -> 'ExpandBuilder':
        self._paths.append(path)
        return self

    def build(self) -> ExpandQuery:
        return ExpandQuery(*self._paths)
