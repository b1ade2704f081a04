"""
Ancestry validator interface.

An ancestry validator decides whether the full token history (DAG) behind a
transaction is valid. The classifier only consumes its verdict: given a set
of transaction ids it returns the subset confirmed valid.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Iterable

from loguru import logger


class AncestryValidationError(Exception):
    """Raised when the ancestry validator fails or times out."""

    pass


class AncestryValidator(ABC):
    """Abstract ancestry validator."""

    @abstractmethod
    async def validate_transactions(self, txids: set[str]) -> set[str]:
        """Return the subset of txids whose token ancestry is valid"""


class FunctionAncestryValidator(AncestryValidator):
    """
    Adapts a plain async callable taking and returning lists of txids.

    This is the shape most remote validator clients expose.
    """

    def __init__(self, func: Callable[[list[str]], Awaitable[Iterable[str]]]):
        self.func = func

    async def validate_transactions(self, txids: set[str]) -> set[str]:
        valid = await self.func(sorted(txids))
        return set(valid) & txids


class StaticAncestryValidator(AncestryValidator):
    """Answers from a fixed set of known-valid txids."""

    def __init__(self, valid_txids: Iterable[str] = ()):
        self.valid_txids = set(valid_txids)

    async def validate_transactions(self, txids: set[str]) -> set[str]:
        return txids & self.valid_txids


class CachingAncestryValidator(AncestryValidator):
    """
    Remembers txids already confirmed valid and forwards only the rest.

    Only positive answers are cached: a valid ancestry stays valid, while a
    negative answer may come from a validator that has not seen the parents yet.
    """

    def __init__(self, inner: AncestryValidator):
        self.inner = inner
        self._valid: set[str] = set()

    async def validate_transactions(self, txids: set[str]) -> set[str]:
        unknown = txids - self._valid
        if unknown:
            logger.debug(f"Forwarding {len(unknown)} of {len(txids)} txids to validator")
            confirmed = await self.inner.validate_transactions(unknown)
            self._valid.update(confirmed & unknown)
        return txids & self._valid

    def clear(self) -> None:
        self._valid.clear()
