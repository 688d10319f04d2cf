"""Analyzer utilities for the search layer.

This module mirrors Whoosh's composable tokenizer/filter design. Index
mapping and query parsing share the same analyzer for a given language, so a
query term always normalizes exactly like the indexed text it should match.

Only language-neutral analyzers ship here; stemmers and other linguistic
variants are plug-ins registered through :func:`register_analyzer`.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Sequence
from dataclasses import dataclass
import re
from typing import Protocol

from view_search.exceptions import BadRequestError


@dataclass
class Token:
    """Represents a token emitted by analyzers."""

    text: str
    position: int
    start_char: int
    end_char: int

    def copy_with(self, **updates: object) -> Token:
        data = {
            "text": self.text,
            "position": self.position,
            "start_char": self.start_char,
            "end_char": self.end_char,
        }
        data.update(updates)
        return Token(**data)  # type: ignore[arg-type]


class Tokenizer(Protocol):
    """Protocol implemented by tokenizers."""

    def __call__(self, text: str) -> Iterator[Token]:  # pragma: no cover - interface definition
        ...


class TokenFilter(Protocol):
    """Protocol implemented by token filters."""

    def __call__(self, tokens: Iterable[Token]) -> Iterator[Token]:  # pragma: no cover - interface definition
        ...


class RegexTokenizer:
    """Regex-based tokenizer; the default splits on whitespace and hyphens."""

    def __init__(self, pattern: str = r"[^\s\-]+", flags: int = re.UNICODE | re.MULTILINE) -> None:
        self.pattern = re.compile(pattern, flags)

    def __call__(self, text: str) -> Iterator[Token]:
        for position, match in enumerate(self.pattern.finditer(text)):
            yield Token(
                text=match.group(0),
                position=position,
                start_char=match.start(),
                end_char=match.end(),
            )


class KeywordTokenizer:
    """Tokenizer that treats the entire input as a single token."""

    def __call__(self, text: str) -> Iterator[Token]:
        stripped = text.strip()
        if stripped:
            start = text.index(stripped)
            yield Token(text=stripped, position=0, start_char=start, end_char=start + len(stripped))


class LowercaseFilter:
    """Filter that lowercases token text."""

    def __call__(self, tokens: Iterable[Token]) -> Iterator[Token]:
        for token in tokens:
            if token.text.islower():
                yield token
            else:
                yield token.copy_with(text=token.text.lower())


class TrimFilter:
    """Strips leading and trailing non-word characters, dropping tokens left empty."""

    _LEADING = re.compile(r"^\W+", re.UNICODE)
    _TRAILING = re.compile(r"\W+$", re.UNICODE)

    def __call__(self, tokens: Iterable[Token]) -> Iterator[Token]:
        for token in tokens:
            trimmed = self._TRAILING.sub("", self._LEADING.sub("", token.text))
            if not trimmed:
                continue
            if trimmed == token.text:
                yield token
                continue
            offset = token.text.index(trimmed)
            yield token.copy_with(
                text=trimmed,
                start_char=token.start_char + offset,
                end_char=token.start_char + offset + len(trimmed),
            )


DEFAULT_STOPWORDS = [
    "a",
    "an",
    "and",
    "are",
    "as",
    "at",
    "be",
    "but",
    "by",
    "for",
    "if",
    "in",
    "into",
    "is",
    "it",
    "no",
    "not",
    "of",
    "on",
    "or",
    "such",
    "that",
    "the",
    "their",
    "then",
    "there",
    "these",
    "they",
    "this",
    "to",
    "was",
    "will",
    "with",
]


class StopFilter:
    """Removes stopwords from the stream."""

    def __init__(self, stopwords: Sequence[str] | None = None) -> None:
        vocab = stopwords if stopwords is not None else DEFAULT_STOPWORDS
        self.stopwords = {word.lower() for word in vocab}

    def __call__(self, tokens: Iterable[Token]) -> Iterator[Token]:
        for token in tokens:
            if token.text.lower() not in self.stopwords:
                yield token


class AnalyzerPipeline:
    """Composable analyzer pipeline (tokenizer + filters)."""

    def __init__(self, tokenizer: Tokenizer, filters: Sequence[TokenFilter] | None = None) -> None:
        self.tokenizer = tokenizer
        self.filters = list(filters or [])

    def __call__(self, text: str) -> list[Token]:
        stream: Iterable[Token] = self.tokenizer(text)
        for token_filter in self.filters:
            stream = token_filter(stream)
        tokens = list(stream)
        for idx, token in enumerate(tokens):  # normalize positions post-filtering
            token.position = idx
        return tokens

    def terms(self, text: str | None) -> list[str]:
        """Return the normalized, non-unique term stream for ``text``."""
        if not text:
            return []
        return [token.text for token in self(text) if token.text]


class StandardAnalyzer(AnalyzerPipeline):
    """Default analyzer: whitespace/hyphen split, lowercased, edge punctuation trimmed."""

    def __init__(self) -> None:
        super().__init__(RegexTokenizer(), [LowercaseFilter(), TrimFilter()])


class StopwordAnalyzer(AnalyzerPipeline):
    """Standard analyzer that also removes stopwords."""

    def __init__(self, stopwords: Sequence[str] | None = None) -> None:
        super().__init__(RegexTokenizer(), [LowercaseFilter(), TrimFilter(), StopFilter(stopwords)])


class KeywordAnalyzer(AnalyzerPipeline):
    """Analyzer that treats the entire input as a single lowercased token."""

    def __init__(self) -> None:
        super().__init__(KeywordTokenizer(), [LowercaseFilter()])


def compose_analyzers(analyzers: Sequence[AnalyzerPipeline]) -> AnalyzerPipeline:
    """Combine several language analyzers over the first one's tokenizer.

    Filters run in language order; a filter type already contributed by an
    earlier language is skipped so shared normalization runs once.
    """
    if not analyzers:
        raise ValueError("compose_analyzers requires at least one analyzer")
    filters: list[TokenFilter] = []
    seen: set[type] = set()
    for analyzer in analyzers:
        for token_filter in analyzer.filters:
            if type(token_filter) in seen:
                continue
            seen.add(type(token_filter))
            filters.append(token_filter)
    return AnalyzerPipeline(analyzers[0].tokenizer, filters)


_ANALYZER_FACTORIES: dict[str, Callable[[], AnalyzerPipeline]] = {
    "en": StandardAnalyzer,
    "en-stop": StopwordAnalyzer,
    "keyword": KeywordAnalyzer,
}


def register_analyzer(name: str, factory: Callable[[], AnalyzerPipeline]) -> None:
    """Register a language plug-in under ``name`` (case-insensitive)."""
    _ANALYZER_FACTORIES[name.lower()] = factory


def available_languages() -> list[str]:
    return sorted(_ANALYZER_FACTORIES)


def get_analyzer(language: str | Sequence[str] | None = None) -> AnalyzerPipeline:
    """Return the analyzer for a language identifier or a list of identifiers."""

    if language is None:
        return _ANALYZER_FACTORIES["en"]()
    if isinstance(language, str):
        return _single_analyzer(language)
    names = list(language)
    if not names:
        return _ANALYZER_FACTORIES["en"]()
    if len(names) == 1:
        return _single_analyzer(names[0])
    return compose_analyzers([_single_analyzer(name) for name in names])


def _single_analyzer(name: str) -> AnalyzerPipeline:
    normalized = name.lower()
    if normalized not in _ANALYZER_FACTORIES:
        msg = f"Unknown language '{name}'. Available: {available_languages()}"
        raise BadRequestError(msg)
    return _ANALYZER_FACTORIES[normalized]()
