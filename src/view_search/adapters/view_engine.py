"""View engine port consumed by the search layer.

A view engine persists the rows a mapping function emits for every document,
keeps them current as documents change, and answers exact-key lookups. The
search layer never touches storage directly; it only hands over its mapping
function together with these options.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Literal

from view_search.search.mapping import Emission


MapFunction = Callable[[Mapping[str, Any]], Sequence[Emission]]
Stale = Literal["ok", "update_after"]


@dataclass(frozen=True)
class ViewQueryOptions:
    """Options for a single view query.

    Args:
        save_as: Identity of the persisted view
        keys: Restrict rows to these keys (``None`` returns every row)
        stale: ``"ok"`` reads existing rows only, ``"update_after"`` reads then
            refreshes in the background, ``None`` refreshes before reading
        destroy: Tear the persisted view down instead of reading it
        limit: Maximum rows to return; ``0`` updates without fetching rows
    """

    save_as: str
    keys: tuple[str, ...] | None = None
    stale: Stale | None = None
    destroy: bool = False
    limit: int | None = None


@dataclass(frozen=True, slots=True)
class ViewRow:
    """One emitted row: the source document id, the key and the value."""

    id: str
    key: str
    value: Any = None


@dataclass(frozen=True)
class ViewQueryResult:
    rows: list[ViewRow] = field(default_factory=list)


class AbstractViewEngine(ABC):
    """Abstract persisted key/value view engine."""

    @abstractmethod
    async def query(self, map_function: MapFunction, options: ViewQueryOptions) -> ViewQueryResult:
        """Update (per ``options.stale``) and read the view named ``options.save_as``."""
        raise NotImplementedError

    async def aclose(self) -> None:
        """Optional hook for releasing resources and awaiting background updates."""

        return
