"""Kubeconfig-shaped credential bundles and the combined store.

Purpose
-------
Model the documents produced by obtain commands and the combined store written
at the end of a run. Both share the standard multi-context kubeconfig shape:
named clusters (endpoints), named users (identities), named contexts binding
the two, and a ``current-context`` selector.

Contents
--------
* :class:`NamedItem` – one ``{name, <body>}`` list element.
* :class:`Kubeconfig` – immutable bundle with parse/serialise helpers.
* :data:`EMPTY_KUBECONFIG` – starting point of every combined store.

System Role
-----------
The obtain adapter parses stdout into a :class:`Kubeconfig`; the override
applicator returns modified copies; the store assembler unions them.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, replace
from typing import Any, Final

from .errors import InvalidFormat
from .registry import freeze_mapping, thaw_mapping

#: Section name → key that holds each item's body in kubeconfig documents.
SECTIONS: Final[dict[str, str]] = {"clusters": "cluster", "contexts": "context", "users": "user"}


@dataclass(frozen=True, slots=True)
class NamedItem:
    """A named cluster, context, or user entry."""

    name: str
    body: Mapping[str, Any]

    def to_mapping(self, body_key: str) -> dict[str, Any]:
        return {"name": self.name, body_key: thaw_mapping(self.body)}


@dataclass(frozen=True, slots=True)
class Kubeconfig:
    """Immutable credential bundle.

    Examples
    --------
    >>> bundle = Kubeconfig.from_mapping({
    ...     "clusters": [{"name": "c", "cluster": {"server": "https://k"}}],
    ...     "contexts": [{"name": "ctx", "context": {"cluster": "c", "user": "u"}}],
    ...     "users": [{"name": "u", "user": {}}],
    ...     "current-context": "ctx",
    ... })
    >>> bundle.context_names, bundle.current_context
    (['ctx'], 'ctx')
    """

    clusters: tuple[NamedItem, ...] = ()
    contexts: tuple[NamedItem, ...] = ()
    users: tuple[NamedItem, ...] = ()
    current_context: str | None = None

    @classmethod
    def from_mapping(cls, data: object, *, source: str = "kubeconfig") -> Kubeconfig:
        """Parse a kubeconfig document, raising :class:`InvalidFormat` on shape errors.

        Missing or ``null`` sections are treated as empty lists.
        """

        if data is None:
            data = {}
        if not isinstance(data, Mapping):
            raise InvalidFormat(f"{source} is not a kubeconfig mapping")
        sections = {
            section: _parse_section(data.get(section), section, body_key, source)
            for section, body_key in SECTIONS.items()
        }
        current = data.get("current-context")
        if current is not None and not isinstance(current, str):
            raise InvalidFormat(f"{source}: current-context must be a string")
        return cls(
            clusters=sections["clusters"],
            contexts=sections["contexts"],
            users=sections["users"],
            current_context=current or None,
        )

    @property
    def context_names(self) -> list[str]:
        return [item.name for item in self.contexts]

    def find_user(self, name: str) -> NamedItem | None:
        return next((item for item in self.users if item.name == name), None)

    def find_context(self, name: str) -> NamedItem | None:
        return next((item for item in self.contexts if item.name == name), None)

    def with_user(self, name: str, body: Mapping[str, Any]) -> Kubeconfig:
        """Return a copy whose user *name* carries *body*."""

        users = tuple(NamedItem(item.name, freeze_mapping(body)) if item.name == name else item for item in self.users)
        return replace(self, users=users)

    def rename_context(self, old: str, new: str) -> Kubeconfig:
        """Return a copy with context *old* renamed to *new*; ``current-context`` follows."""

        contexts = tuple(NamedItem(new, item.body) if item.name == old else item for item in self.contexts)
        current = new if self.current_context == old else self.current_context
        return replace(self, contexts=contexts, current_context=current)

    def to_mapping(self) -> dict[str, Any]:
        """Serialise to a kubeconfig document with stable key order."""

        return {
            "apiVersion": "v1",
            "kind": "Config",
            "preferences": {},
            "clusters": [item.to_mapping("cluster") for item in self.clusters],
            "contexts": [item.to_mapping("context") for item in self.contexts],
            "users": [item.to_mapping("user") for item in self.users],
            "current-context": self.current_context or "",
        }


EMPTY_KUBECONFIG: Final[Kubeconfig] = Kubeconfig()
"""Canonical empty bundle; every combined store starts here."""


def _parse_section(raw: object, section: str, body_key: str, source: str) -> tuple[NamedItem, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, list):
        raise InvalidFormat(f"{source}: {section} must be a list")
    items: list[NamedItem] = []
    for position, element in enumerate(raw):
        if not isinstance(element, Mapping):
            raise InvalidFormat(f"{source}: {section}[{position}] must be a mapping")
        name = element.get("name")
        if not isinstance(name, str) or not name:
            raise InvalidFormat(f"{source}: {section}[{position}] is missing 'name'")
        body = element.get(body_key)
        if body is None:
            body = {}
        if not isinstance(body, Mapping):
            raise InvalidFormat(f"{source}: {section}[{position}].{body_key} must be a mapping")
        items.append(NamedItem(name, freeze_mapping(body)))
    return tuple(items)
