"""Scripts-folder layout: where each object's script is written."""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml

from dbmill.exceptions import ConfigError, EmitError
from dbmill.types import ObjectKind, kind_from_name

logger = logging.getLogger(__name__)


def _path_part(value: Optional[str]) -> str:
    """Object name as a single path component: separators become ``_``."""
    return (value or "").replace("/", "_").replace("\\", "_")


@dataclass(frozen=True)
class OutputRule:
    """Target sub-directory and file-name mask for one object kind.

    Masks may reference ``$database$``, ``$schema$``, ``$object$`` and
    ``$type$``.
    """

    subdirectory: str
    mask: str

    def filename(
        self, catalog: str, schema: Optional[str], name: str, kind: ObjectKind
    ) -> str:
        return (
            self.mask.replace("$database$", _path_part(catalog))
            .replace("$schema$", _path_part(schema))
            .replace("$object$", _path_part(name))
            .replace("$type$", kind.value)
        )


DEFAULT_RULES: dict[ObjectKind, OutputRule] = {
    ObjectKind.SCHEMA: OutputRule("Security/Schemas", "$object$.sql"),
    ObjectKind.DATA_TYPE: OutputRule(
        "Programmability/User Types/Data Types", "$schema$.$object$.sql"
    ),
    ObjectKind.TABLE_TYPE: OutputRule(
        "Programmability/User Types/Table Types", "$schema$.$object$.sql"
    ),
    ObjectKind.TABLE: OutputRule("Tables", "$schema$.$object$.sql"),
    ObjectKind.VIEW: OutputRule("Views", "$schema$.$object$.sql"),
    ObjectKind.TRIGGER: OutputRule("Programmability/Triggers", "$schema$.$object$.sql"),
    ObjectKind.FUNCTION: OutputRule("Programmability/Functions", "$schema$.$object$.sql"),
    ObjectKind.PROCEDURE: OutputRule(
        "Programmability/Procedures", "$schema$.$object$.sql"
    ),
}


class ScriptsFolderLayout:
    """Mapping of object kinds to output rules."""

    def __init__(self, rules: Mapping[ObjectKind, OutputRule]) -> None:
        self._rules = dict(rules)

    @classmethod
    def default(cls) -> "ScriptsFolderLayout":
        return cls(DEFAULT_RULES)

    @classmethod
    def from_yaml(cls, text: str, source: str = "<layout>") -> "ScriptsFolderLayout":
        """Parse a layout document.

        Example::

            table:
              subdirectory: Tables
              mask: $schema$.$object$.sql
        """
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {source}: {e}") from e

        if not isinstance(data, dict) or not data:
            raise ConfigError(f"{source}: expected a mapping of object kinds to rules")

        rules = {}
        for key, value in data.items():
            kind = kind_from_name(str(key))
            if kind is None:
                raise ConfigError(f"{source}: unknown object kind {key!r}")
            if not isinstance(value, dict):
                raise ConfigError(f"{source}: rule for {key!r} must be a mapping")
            mask = value.get("mask")
            if not mask:
                raise ConfigError(f"{source}: rule for {key!r} has no mask")
            rules[kind] = OutputRule(
                subdirectory=str(value.get("subdirectory") or ""), mask=str(mask)
            )
        return cls(rules)

    @classmethod
    def load(cls, path: str | Path) -> "ScriptsFolderLayout":
        path = Path(path)
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigError(f"Cannot read layout file {path}: {e}") from e
        return cls.from_yaml(text, source=str(path))

    @property
    def kinds(self) -> frozenset[ObjectKind]:
        return frozenset(self._rules)

    def rule(self, kind: ObjectKind) -> Optional[OutputRule]:
        return self._rules.get(kind)


class FolderWriter:
    """Emit callback writing each definition to its place in a scripts folder."""

    def __init__(self, root: str | Path, layout: ScriptsFolderLayout | None = None) -> None:
        self._root = Path(root)
        self._layout = layout or ScriptsFolderLayout.default()

    def path_for(
        self, catalog: str, schema: Optional[str], name: str, kind: ObjectKind
    ) -> Path:
        rule = self._layout.rule(kind)
        if rule is None:
            raise EmitError(f"No output rule for object kind {kind.value}")
        path = self._root / rule.subdirectory / rule.filename(catalog, schema, name, kind)
        if not path.resolve().is_relative_to(self._root.resolve()):
            raise EmitError(f"Refusing to write {path}: outside {self._root}")
        return path

    def __call__(
        self,
        catalog: str,
        schema: Optional[str],
        name: str,
        kind: ObjectKind,
        definition: bytes,
    ) -> None:
        path = self.path_for(catalog, schema, name, kind)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(definition)
        except OSError as e:
            raise EmitError(f"Cannot write {path}: {e}") from e
        logger.debug(f"Wrote {path}")
