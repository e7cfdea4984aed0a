"""Tokenizer for resource token multisets.

Costs and grants are written as space separated token names where repetition
means multiplicity, so ``"castle_token queen_token castle_token"`` is two
``castle_token`` plus one ``queen_token``.
"""

from __future__ import annotations

import re
from collections import Counter
from typing import Any, Dict, Iterable, Iterator, Mapping, Tuple, Union

from .errors import MalformedRuleError

TOKEN_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class TokenBag:
    """Immutable multiset of resource token types.

    Insertion order of the first occurrence of each token is preserved so that
    anything derived from a bag (generated states, ledger entries) is
    deterministic.
    """

    __slots__ = ("_counts",)

    def __init__(self, counts: Mapping[str, int] | None = None) -> None:
        ordered: Dict[str, int] = {}
        for token, count in (counts or {}).items():
            if count < 0:
                raise ValueError(f"Token '{token}' has a negative multiplicity")
            if count:
                ordered[token] = int(count)
        self._counts: Tuple[Tuple[str, int], ...] = tuple(ordered.items())

    # ----------------------------------------------------------------- parsing
    @classmethod
    def parse(cls, raw: Union[str, Iterable[str], "TokenBag", None]) -> "TokenBag":
        """Parse ``raw`` into a bag.

        ``None`` yields an empty bag. A string or list that is present must
        tokenize into at least one valid identifier.
        """

        if raw is None:
            return cls()
        if isinstance(raw, TokenBag):
            return raw
        if isinstance(raw, str):
            parts = raw.split()
            source = raw
        else:
            try:
                parts = list(raw)
            except TypeError as exc:
                raise MalformedRuleError(f"Cannot tokenize {raw!r} into resource tokens") from exc
            source = " ".join(str(part) for part in parts)
        if not parts:
            raise MalformedRuleError(f"Token list {source!r} is empty")
        for part in parts:
            if not isinstance(part, str) or not TOKEN_PATTERN.match(part):
                raise MalformedRuleError(f"Invalid resource token {part!r} in {source!r}")
        return cls(Counter(parts))

    # ------------------------------------------------------------------ access
    def items(self) -> Tuple[Tuple[str, int], ...]:
        return self._counts

    def token_types(self) -> Tuple[str, ...]:
        return tuple(token for token, _ in self._counts)

    def count(self, token: str) -> int:
        for name, count in self._counts:
            if name == token:
                return count
        return 0

    def total(self) -> int:
        return sum(count for _, count in self._counts)

    def to_string(self) -> str:
        """Render the bag back into its space separated form."""

        return " ".join(token for token, count in self._counts for _ in range(count))

    def __iter__(self) -> Iterator[str]:
        for token, count in self._counts:
            for _ in range(count):
                yield token

    def __len__(self) -> int:
        return self.total()

    def __bool__(self) -> bool:
        return bool(self._counts)

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, TokenBag):
            return dict(self._counts) == dict(other._counts)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(frozenset(self._counts))

    def __repr__(self) -> str:
        return f"TokenBag({self.to_string()!r})"


def parse_tokens(raw: Union[str, Iterable[str], TokenBag, None]) -> TokenBag:
    """Shorthand for :meth:`TokenBag.parse`."""

    return TokenBag.parse(raw)


__all__ = ["TOKEN_PATTERN", "TokenBag", "parse_tokens"]
