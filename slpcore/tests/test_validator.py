"""
Tests for slpcore.validator
"""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from slpcore.validator import (
    CachingAncestryValidator,
    FunctionAncestryValidator,
    StaticAncestryValidator,
)


@pytest.mark.asyncio
async def test_static_validator() -> None:
    validator = StaticAncestryValidator({"a", "b"})
    assert await validator.validate_transactions({"a", "c"}) == {"a"}
    assert await validator.validate_transactions(set()) == set()


@pytest.mark.asyncio
async def test_function_validator_passes_sorted_list() -> None:
    func = AsyncMock(return_value=["b", "z"])
    validator = FunctionAncestryValidator(func)

    result = await validator.validate_transactions({"c", "a", "b"})

    func.assert_awaited_once_with(["a", "b", "c"])
    # Ids that were not asked about are ignored
    assert result == {"b"}


@pytest.mark.asyncio
async def test_caching_validator_only_forwards_unknown() -> None:
    inner = StaticAncestryValidator({"a", "b"})
    inner_spy = AsyncMock(wraps=inner.validate_transactions)
    inner.validate_transactions = inner_spy  # type: ignore[method-assign]
    validator = CachingAncestryValidator(inner)

    assert await validator.validate_transactions({"a", "c"}) == {"a"}
    inner_spy.assert_awaited_once_with({"a", "c"})

    assert await validator.validate_transactions({"a", "b", "c"}) == {"a", "b"}
    assert inner_spy.await_args_list[-1].args == ({"b", "c"},)

    assert await validator.validate_transactions({"a", "b"}) == {"a", "b"}
    assert inner_spy.await_count == 2


@pytest.mark.asyncio
async def test_caching_validator_clear() -> None:
    inner = StaticAncestryValidator({"a"})
    validator = CachingAncestryValidator(inner)
    await validator.validate_transactions({"a"})

    validator.clear()
    inner.valid_txids.clear()

    assert await validator.validate_transactions({"a"}) == set()
