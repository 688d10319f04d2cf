"""Domain models for search requests and responses.

Following Cosmic Python principles:
- Value Objects are immutable (frozen=True)
- Caller-supplied options are normalized once, at the boundary
- No infrastructure dependencies

The loose option shapes callers may send (a field list or a name->boost
mapping, ``q`` or ``query``, ``"75%"`` strings) never reach the search core;
:class:`SearchOptions` turns them into one explicit configuration.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
import math
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from view_search.exceptions import BadRequestError


DocumentFilter = Callable[[Mapping[str, Any]], Any]


class FieldSpec(BaseModel):
    """Value object for one indexed field and its query-time boost."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    boost: float = Field(default=1.0, gt=0)

    @property
    def path(self) -> tuple[str, ...]:
        return tuple(self.name.split("."))

    @property
    def is_deep(self) -> bool:
        return "." in self.name


def parse_fields(raw: Any) -> list[FieldSpec]:
    """Normalize a field list or a name->boost mapping into ordered field specs."""

    if isinstance(raw, Mapping):
        return [FieldSpec(name=str(name), boost=boost) for name, boost in raw.items()]
    if isinstance(raw, str):
        return [FieldSpec(name=raw)]
    if isinstance(raw, (list, tuple)):
        specs: list[FieldSpec] = []
        seen: set[str] = set()
        for item in raw:
            spec = item if isinstance(item, FieldSpec) else FieldSpec(name=str(item))
            if spec.name in seen:
                continue
            seen.add(spec.name)
            specs.append(spec)
        return specs
    raise ValueError("fields must be a list of names or a mapping of name to boost")


def parse_min_should_match(raw: Any) -> float:
    """Return the minimum-should-match fraction for ``"75%"``, ``"75"`` or ``75``."""

    if isinstance(raw, bool):
        raise ValueError("mm must be a percentage")
    if isinstance(raw, (int, float)):
        value = float(raw)
    elif isinstance(raw, str):
        try:
            value = float(raw.strip().rstrip("%").strip())
        except ValueError as exc:
            raise ValueError(f"mm must be a percentage such as '75%', got {raw!r}") from exc
    else:
        raise ValueError("mm must be a percentage")
    if math.isnan(value) or value < 0:
        raise ValueError(f"mm must be a non-negative percentage, got {raw!r}")
    return value / 100


class SearchOptions(BaseModel):
    """Validated, normalized search request."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True, populate_by_name=True, extra="ignore")

    query: str | None = Field(default=None, validation_alias=AliasChoices("query", "q"))
    fields: tuple[FieldSpec, ...]
    mm: float = 1.0
    highlighting: bool = False
    highlighting_pre: str | None = None
    highlighting_post: str | None = None
    include_docs: bool = False
    destroy: bool = False
    build: bool = False
    stale: Literal["ok", "update_after"] | None = None
    limit: int | None = Field(default=None, ge=0)
    skip: int = Field(default=0, ge=0)
    language: str | tuple[str, ...] = "en"
    filter: DocumentFilter | None = None

    @field_validator("fields", mode="before")
    @classmethod
    def _normalize_fields(cls, value: Any) -> list[FieldSpec]:
        specs = parse_fields(value)
        if not specs:
            raise ValueError("at least one field is required")
        return specs

    @field_validator("mm", mode="before")
    @classmethod
    def _parse_mm(cls, value: Any) -> float:
        return parse_min_should_match(value)

    @field_validator("skip", mode="before")
    @classmethod
    def _default_skip(cls, value: Any) -> Any:
        return 0 if value is None else value

    @field_validator("language", mode="before")
    @classmethod
    def _normalize_language(cls, value: Any) -> Any:
        if isinstance(value, list):
            return tuple(value)
        return value

    @field_validator("filter", mode="before")
    @classmethod
    def _check_filter(cls, value: Any) -> Any:
        if value is not None and not callable(value):
            raise ValueError("filter must be a callable document predicate")
        return value

    @model_validator(mode="after")
    def _check_query(self) -> SearchOptions:
        if not self.destroy and not self.build and self.query is None:
            raise ValueError("query is required unless destroy or build is requested")
        return self

    @property
    def field_names(self) -> list[str]:
        return [spec.name for spec in self.fields]

    @classmethod
    def parse(cls, raw: Any, *, defaults: Mapping[str, Any] | None = None) -> SearchOptions:
        """Build options from a caller mapping, raising :class:`BadRequestError` on bad input."""

        if not isinstance(raw, Mapping):
            raise BadRequestError("you must provide search options")
        data = dict(defaults or {})
        data.update({key: value for key, value in raw.items() if value is not None})
        if "fields" not in data:
            raise BadRequestError("fields is required")
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise BadRequestError(str(exc)) from exc


class SearchRow(BaseModel):
    """Value object for one ranked result."""

    model_config = ConfigDict(frozen=True)

    id: str
    score: float = Field(ge=0)
    doc: dict[str, Any] | None = None
    highlighting: dict[str, str] | None = None


class SearchResponse(BaseModel):
    """Value object for a complete result page.

    ``total_rows`` counts every candidate that survived minimum-should-match,
    independent of ``skip``/``limit``.
    """

    model_config = ConfigDict(frozen=True)

    total_rows: int = Field(ge=0)
    rows: list[SearchRow] = Field(default_factory=list)

    @classmethod
    def empty(cls) -> SearchResponse:
        return cls(total_rows=0, rows=[])


class AckResponse(BaseModel):
    """Acknowledgment returned by build and destroy requests."""

    model_config = ConfigDict(frozen=True)

    ok: bool = True
