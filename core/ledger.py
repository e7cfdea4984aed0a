"""Resource ledger tracking token balances for one running game."""

from __future__ import annotations

from typing import Dict, Iterable, Iterator, Mapping, Sequence, Union

import numpy as np

from core.errors import InsufficientResourcesError
from rules.tokens import TokenBag

CostLike = Union[str, Iterable[str], TokenBag, None]


class ResourceLedger(Mapping[str, int]):
    """Mapping of token type to a non-negative balance.

    Balances only change through :meth:`grant` and :meth:`consume`. A consume
    either pays the full cost or changes nothing.
    """

    def __init__(self, token_types: Iterable[str] = ()) -> None:
        self._balances: Dict[str, int] = {}
        self.register(token_types)

    # ---------------------------------------------------------------- mutation
    def register(self, token_types: Iterable[str]) -> None:
        """Ensure every token in ``token_types`` has an entry, defaulting to 0."""

        for token in token_types:
            self._balances.setdefault(token, 0)

    def grant(self, token_type: str, count: int = 1) -> int:
        """Add ``count`` tokens of ``token_type`` and return the new balance."""

        if count < 0:
            raise ValueError(f"Cannot grant a negative amount of '{token_type}'")
        balance = self._balances.get(token_type, 0) + int(count)
        self._balances[token_type] = balance
        return balance

    def grant_all(self, tokens: CostLike) -> None:
        for token, count in TokenBag.parse(tokens).items():
            self.grant(token, count)

    def consume(self, cost: CostLike) -> None:
        """Pay ``cost`` in full or raise :class:`InsufficientResourcesError`."""

        bag = TokenBag.parse(cost)
        shortfall = self.shortfall(bag)
        if shortfall:
            raise InsufficientResourcesError(shortfall)
        for token, required in bag.items():
            self._balances[token] -= required

    # ----------------------------------------------------------------- queries
    def shortfall(self, cost: CostLike) -> Dict[str, int]:
        """Return how many tokens of each type are missing to pay ``cost``."""

        missing: Dict[str, int] = {}
        for token, required in TokenBag.parse(cost).items():
            available = self._balances.get(token, 0)
            if available < required:
                missing[token] = required - available
        return missing

    def can_afford(self, cost: CostLike) -> bool:
        return not self.shortfall(cost)

    def balance(self, token_type: str) -> int:
        return self._balances.get(token_type, 0)

    def snapshot(self) -> Dict[str, int]:
        return dict(self._balances)

    def as_vector(self, order: Sequence[str]) -> np.ndarray:
        """Return balances for ``order`` as an ``int64`` vector."""

        return np.array([self.balance(token) for token in order], dtype=np.int64)

    # ---------------------------------------------------------------- mapping
    def __getitem__(self, token_type: str) -> int:
        return self._balances[token_type]

    def __iter__(self) -> Iterator[str]:
        return iter(self._balances)

    def __len__(self) -> int:
        return len(self._balances)

    def __repr__(self) -> str:
        return f"ResourceLedger({self._balances!r})"


__all__ = ["CostLike", "ResourceLedger"]
