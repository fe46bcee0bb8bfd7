# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""Binding values and the order-insensitive canonical key of a binding list."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional, Tuple

from typebind.bindc.host.ast import Located
from typebind.bindc.host.types import Named, Type, describe


@dataclass(frozen=True)
class ParameterTypeRef:
	"""Reference to an eligible parameter type: (package path, type name)."""

	package: str
	name: str

	def named(self) -> Named:
		return Named(self.package, self.name)

	def __str__(self) -> str:
		return f"{self.package}.{self.name}"


@dataclass(frozen=True)
class TypeBinding:
	param: ParameterTypeRef
	concrete: Type
	loc: Optional[Located] = field(default=None, compare=False)

	def __str__(self) -> str:
		return f"{self.param.name}=>{describe(self.concrete)}"


@dataclass(frozen=True)
class CanonicalKey:
	"""Sorted (parameter name, concrete descriptor) pairs."""

	pairs: Tuple[Tuple[str, str], ...] = ()

	@property
	def empty(self) -> bool:
		return not self.pairs

	@property
	def names(self) -> Tuple[str, ...]:
		return tuple(n for n, _ in self.pairs)

	def as_dict(self) -> Dict[str, str]:
		return dict(self.pairs)

	def __str__(self) -> str:
		return ";".join(f"{n}=>{d}" for n, d in self.pairs)


def canonical_key(bindings: Iterable[TypeBinding]) -> CanonicalKey:
	"""Key of a binding list; permutations of the same pairs give equal keys."""
	return CanonicalKey(tuple(sorted((b.param.name, describe(b.concrete)) for b in bindings)))


__all__ = ["ParameterTypeRef", "TypeBinding", "CanonicalKey", "canonical_key"]
