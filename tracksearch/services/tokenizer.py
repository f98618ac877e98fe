"""Query tokenization used for client-side matching and highlighting."""

from __future__ import annotations

from typing import Iterable, Sequence

from tracksearch.domain.models import Result

_STRIPPED_CHARS = str.maketrans("", "", '()"')


def tokenize_query(query: str) -> list[str]:
    """Split a query into match tokens.

    ``field:value`` tokens keep only the value; parentheses and double quotes
    are removed. Tokens left empty afterwards are dropped.
    """

    tokens: list[str] = []
    for raw in (query or "").split():
        token = raw.translate(_STRIPPED_CHARS)
        _, colon, value = token.partition(":")
        if colon:
            token = value
        if token:
            tokens.append(token)
    return tokens


def matches(tokens: Iterable[str], candidate: str) -> bool:
    haystack = (candidate or "").casefold()
    return all(token.casefold() in haystack for token in tokens)


def result_matches(tokens: Sequence[str], result: Result) -> bool:
    """Match tokens against the displayable fields of a result."""

    metadata = result.metadata
    text = " ".join(part for part in (metadata.title, metadata.artist, metadata.album) if part)
    return matches(tokens, text)


__all__ = ["tokenize_query", "matches", "result_matches"]
