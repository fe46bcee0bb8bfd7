# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Structural satisfaction as a capability-set comparison.

A capability is a method name plus its signature. A type satisfies an
interface-shaped parameter when its capabilities are a superset of the
parameter's; no inheritance hierarchy is consulted.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Mapping, Optional

from typebind.bindc.host.types import Func, Type, describe


@dataclass(frozen=True)
class CapabilityGap:
	"""A required method the candidate lacks or declares with another signature."""

	name: str
	required: Func
	provided: Optional[Func] = None

	def describe(self) -> str:
		want = self.name + describe(self.required)[len("func") :]
		if self.provided is None:
			return f"missing method {want}"
		have = self.name + describe(self.provided)[len("func") :]
		return f"method {have} does not match {want}"


def _same_signature(a: Func, b: Func, identical: Callable[[Type, Type], bool]) -> bool:
	if len(a.params) != len(b.params) or len(a.results) != len(b.results):
		return False
	return all(identical(x, y) for x, y in zip(a.params, b.params)) and all(
		identical(x, y) for x, y in zip(a.results, b.results)
	)


def missing_capabilities(
	required: Mapping[str, Func],
	provided: Mapping[str, Func],
	*,
	identical: Callable[[Type, Type], bool] = lambda a, b: a == b,
) -> List[CapabilityGap]:
	"""Return the gaps (sorted by method name); empty means `provided` satisfies `required`."""
	gaps: List[CapabilityGap] = []
	for name in sorted(required):
		want = required[name]
		have = provided.get(name)
		if have is None:
			gaps.append(CapabilityGap(name=name, required=want))
		elif not _same_signature(have, want, identical):
			gaps.append(CapabilityGap(name=name, required=want, provided=have))
	return gaps


__all__ = ["CapabilityGap", "missing_capabilities"]
