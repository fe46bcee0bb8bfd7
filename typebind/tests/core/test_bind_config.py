# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

import pytest

from typebind.bindc.core.config import (
	ADDRESS_OF_REFLECT,
	ADDRESS_OF_REJECT,
	DEFAULT_INSTANTIATION_BUDGET,
	STRATEGY_MONOMORPHIC,
	STRATEGY_POLYMORPHIC,
	BuildConfig,
)


def test_defaults_are_sequential_monomorphic_non_strict() -> None:
	cfg = BuildConfig()
	assert cfg.strategy == STRATEGY_MONOMORPHIC
	assert cfg.strict is False
	assert cfg.address_of_policy == ADDRESS_OF_REJECT
	assert cfg.instantiation_budget == DEFAULT_INSTANTIATION_BUDGET == 32
	assert cfg.max_workers == 1


@pytest.mark.parametrize(
	"kwargs, message",
	[
		({"strategy": "auto"}, "unknown strategy"),
		({"address_of_policy": "box"}, "unknown address_of_policy"),
		({"instantiation_budget": 0}, "instantiation_budget"),
		({"max_workers": 0}, "max_workers"),
	],
)
def test_invalid_values_are_rejected(kwargs: dict, message: str) -> None:
	with pytest.raises(ValueError, match=message):
		BuildConfig(**kwargs)


def test_from_mapping_accepts_known_keys() -> None:
	cfg = BuildConfig.from_mapping(
		{"strategy": STRATEGY_POLYMORPHIC, "strict": True, "address_of_policy": ADDRESS_OF_REFLECT}
	)
	assert cfg.strategy == STRATEGY_POLYMORPHIC
	assert cfg.strict is True
	assert cfg.address_of_policy == ADDRESS_OF_REFLECT


def test_from_mapping_rejects_unknown_keys() -> None:
	with pytest.raises(ValueError, match="unknown build config keys: budget, mode"):
		BuildConfig.from_mapping({"mode": "fast", "budget": 3})
