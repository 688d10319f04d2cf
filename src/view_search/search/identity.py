"""Content-addressed names for persisted search indexes.

An index is identified by what changes its contents: the analyzer language,
the *set* of indexed fields and the document filter. Boosts and field order
only matter at query time, so ``["a", "b"]`` and ``{"b": 2, "a": 1}`` share one
persisted index.

Filters are identified by their own source text. For a lambda that is the
``lambda ...`` expression alone, located through the code object's positions,
so two lambdas sharing a line stay distinct and the same lambda written in two
places shares an index. Default argument and closure values are appended
because they change what an identical body selects.
"""

from __future__ import annotations

import ast
from collections.abc import Iterable, Sequence
import hashlib
import inspect
import textwrap
from types import CodeType
from typing import Any

import orjson

from view_search.domain.search import DocumentFilter


def filter_source(predicate: DocumentFilter | None) -> str | None:
    """Return the text identifying ``predicate``.

    Callables without retrievable source fall back to a fingerprint of their
    bytecode, or to the qualified name for builtins and C extensions.
    """

    if predicate is None:
        return None
    code = getattr(predicate, "__code__", None)
    text: str | None
    try:
        if code is not None and code.co_name == "<lambda>":
            text = _lambda_source(code)
        else:
            text = textwrap.dedent(inspect.getsource(predicate)).strip()
    except (OSError, TypeError, SyntaxError):
        text = None
    if text is None:
        text = _fallback_identity(predicate, code)
    bound = _bound_values(predicate)
    return f"{text}\n# bound: {bound}" if bound else text


def _lambda_source(code: CodeType) -> str | None:
    lines, _ = inspect.findsource(code)
    source = "".join(lines)
    tree = ast.parse(source)
    positions = {
        (line, column)
        for line, _end_line, column, _end_column in code.co_positions()
        if line is not None and column is not None
    }
    matches = [
        node
        for node in ast.walk(tree)
        if isinstance(node, ast.Lambda)
        and node.lineno == code.co_firstlineno
        and any(
            (getattr(sub, "lineno", None), getattr(sub, "col_offset", None)) in positions
            for sub in ast.walk(node.body)
        )
    ]
    if not matches:
        return None
    # Nested lambdas match their enclosing lambda as well; the innermost wins.
    node = min(matches, key=lambda n: (n.end_lineno - n.lineno, n.end_col_offset - n.col_offset))
    return ast.get_source_segment(source, node)


def _fallback_identity(predicate: Any, code: CodeType | None) -> str:
    module = getattr(predicate, "__module__", None) or ""
    qualname = getattr(predicate, "__qualname__", None) or repr(predicate)
    name = f"{module}.{qualname}" if module else qualname
    if code is None:
        return name
    return f"{name}:{_code_fingerprint(code)}"


def _code_fingerprint(code: CodeType) -> str:
    parts = [code.co_code.hex(), repr(code.co_names), repr(code.co_varnames)]
    for const in code.co_consts:
        parts.append(_code_fingerprint(const) if inspect.iscode(const) else repr(const))
    return hashlib.md5("|".join(parts).encode(), usedforsecurity=False).hexdigest()


def _describe_value(value: Any) -> str:
    if inspect.isfunction(value) or inspect.isbuiltin(value) or inspect.isclass(value):
        return f"{value.__module__}.{value.__qualname__}"
    return repr(value)


def _bound_values(predicate: Any) -> list[str]:
    values = [_describe_value(default) for default in getattr(predicate, "__defaults__", None) or ()]
    kwdefaults = getattr(predicate, "__kwdefaults__", None) or {}
    values.extend(f"{key}={_describe_value(kwdefaults[key])}" for key in sorted(kwdefaults))
    code = getattr(predicate, "__code__", None)
    free_names = code.co_freevars if code is not None else ()
    for name, cell in zip(free_names, getattr(predicate, "__closure__", None) or ()):
        try:
            values.append(f"{name}={_describe_value(cell.cell_contents)}")
        except ValueError:
            values.append(f"{name}=<unbound>")
    return values


def index_params(
    language: str | Sequence[str],
    field_names: Iterable[str],
    filter_text: str | None = None,
) -> dict[str, Any]:
    # Analyzer lookup is case-insensitive, so the identity is too.
    params: dict[str, Any] = {
        "language": language.lower() if isinstance(language, str) else [name.lower() for name in language],
        "fields": sorted(field_names),
    }
    if filter_text is not None:
        params["filter"] = filter_text
    return params


def resolve_index_name(
    language: str | Sequence[str],
    field_names: Iterable[str],
    document_filter: DocumentFilter | None = None,
    *,
    prefix: str = "search-",
) -> str:
    """Return the stable persisted-index identity for a field configuration."""

    params = index_params(language, field_names, filter_source(document_filter))
    payload = orjson.dumps(params, option=orjson.OPT_SORT_KEYS)
    return prefix + hashlib.md5(payload, usedforsecurity=False).hexdigest()
