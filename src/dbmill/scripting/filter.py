"""Include/exclude filtering of object names and kinds."""

import re
from collections.abc import Iterable
from enum import Enum

from dbmill.exceptions import FilterError
from dbmill.types import ObjectKind


class Match(Enum):
    """Outcome of matching a name against a pattern set."""

    MATCHED = "matched"
    NOT_MATCHED = "not_matched"
    EMPTY = "empty"


def compile_patterns(patterns: Iterable[str]) -> tuple[re.Pattern, ...]:
    """Compile patterns up front so malformed ones fail at configuration time."""
    compiled = []
    for pattern in patterns:
        try:
            compiled.append(re.compile(pattern))
        except re.error as e:
            raise FilterError(pattern, str(e)) from e
    return tuple(compiled)


class ObjectFilter:
    """Decide which objects are scripted.

    Patterns are searched for anywhere in the quoted schema-qualified name,
    e.g. ``[dbo].[GetDevices]``.
    """

    def __init__(
        self,
        *,
        include: Iterable[str] = (),
        exclude: Iterable[str] = (),
        kinds: Iterable[ObjectKind] | None = None,
    ) -> None:
        self._include = compile_patterns(include)
        self._exclude = compile_patterns(exclude)
        self._kinds = frozenset(ObjectKind if kinds is None else kinds)

    @property
    def kinds(self) -> frozenset[ObjectKind]:
        return self._kinds

    @staticmethod
    def _match(patterns: tuple[re.Pattern, ...], name: str) -> Match:
        if not patterns:
            return Match.EMPTY
        if any(p.search(name) for p in patterns):
            return Match.MATCHED
        return Match.NOT_MATCHED

    def kind_included(self, kind: ObjectKind) -> bool:
        return kind in self._kinds

    def match_include(self, name: str) -> Match:
        return self._match(self._include, name)

    def match_exclude(self, name: str) -> Match:
        return self._match(self._exclude, name)

    def included(self, name: str) -> bool:
        """True for every name when no include pattern is configured."""
        return self.match_include(name) is not Match.NOT_MATCHED

    def excluded(self, name: str) -> bool:
        """False for every name when no exclude pattern is configured."""
        return self.match_exclude(name) is Match.MATCHED

    def passes(self, kind: ObjectKind, name: str) -> bool:
        if not self.kind_included(kind):
            return False
        return self.included(name) and not self.excluded(name)
