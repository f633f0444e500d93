"""DocumentSet — ordered, read-only mapping of logical document name → path."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Iterator, Mapping


class DocumentSet(Mapping[str, Path]):
    """Ordered collection of ``(name, path)`` pairs with unique names.

    Iteration follows insertion (configuration) order, which is also the
    order used for fingerprinting.
    """

    __slots__ = ("_items",)

    def __init__(self, items: Iterable[tuple[str, Path | str]] = ()) -> None:
        entries: dict[str, Path] = {}
        for name, path in items:
            if name in entries:
                raise ValueError(f"Duplicate document name: {name}")
            entries[name] = Path(path)
        self._items = entries

    def __getitem__(self, name: str) -> Path:
        return self._items[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        return f"DocumentSet({list(self._items.items())!r})"

    @property
    def paths(self) -> list[Path]:
        return list(self._items.values())

    @classmethod
    def from_mapping(cls, names: Iterable[str], paths: Mapping[str, Path | str]) -> "DocumentSet":
        """Build a set for *names* (in order), skipping names with no path."""
        return cls((name, paths[name]) for name in names if name in paths)
