# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""Build configuration for a binding-aware program build."""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, Mapping

STRATEGY_POLYMORPHIC = "polymorphic"
STRATEGY_MONOMORPHIC = "monomorphic"
STRATEGIES = (STRATEGY_POLYMORPHIC, STRATEGY_MONOMORPHIC)

ADDRESS_OF_REJECT = "reject"
ADDRESS_OF_REFLECT = "reflect"
ADDRESS_OF_POLICIES = (ADDRESS_OF_REJECT, ADDRESS_OF_REFLECT)

DEFAULT_INSTANTIATION_BUDGET = 32


@dataclass(frozen=True)
class BuildConfig:
	"""
	Explicit build inputs.

	`strategy` picks the lowering whose output the session returns; the engine
	never infers it. `strict` additionally runs the other lowering and the
	dual-compile validator. `address_of_policy` decides what the polymorphic
	lowering does with `&x.f` when `f` has a bound parameter type.
	`instantiation_budget` bounds the depth of transitive instantiation chains.
	"""

	strategy: str = STRATEGY_MONOMORPHIC
	strict: bool = False
	address_of_policy: str = ADDRESS_OF_REJECT
	instantiation_budget: int = DEFAULT_INSTANTIATION_BUDGET
	max_workers: int = 1
	parallel_eligibility: bool = False

	def __post_init__(self) -> None:
		if self.strategy not in STRATEGIES:
			raise ValueError(f"unknown strategy '{self.strategy}' (expected one of {', '.join(STRATEGIES)})")
		if self.address_of_policy not in ADDRESS_OF_POLICIES:
			raise ValueError(
				f"unknown address_of_policy '{self.address_of_policy}' (expected one of {', '.join(ADDRESS_OF_POLICIES)})"
			)
		if self.instantiation_budget < 1:
			raise ValueError("instantiation_budget must be >= 1")
		if self.max_workers < 1:
			raise ValueError("max_workers must be >= 1")

	@classmethod
	def from_mapping(cls, data: Mapping[str, Any]) -> "BuildConfig":
		known = {f.name for f in fields(cls)}
		unknown = sorted(k for k in data if k not in known)
		if unknown:
			raise ValueError(f"unknown build config keys: {', '.join(unknown)}")
		return cls(**dict(data))


__all__ = [
	"BuildConfig",
	"STRATEGY_POLYMORPHIC",
	"STRATEGY_MONOMORPHIC",
	"ADDRESS_OF_REJECT",
	"ADDRESS_OF_REFLECT",
	"DEFAULT_INSTANTIATION_BUDGET",
]
