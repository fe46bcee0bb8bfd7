# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""Instantiation identity and the published result of a monomorphic build."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Tuple

from typebind.bindc.bindings.key import CanonicalKey, TypeBinding
from typebind.bindc.host.ast import Package

NAMESPACE_DIGITS = 16


def sha256_hex(data: bytes) -> str:
	return hashlib.sha256(data).hexdigest()


@dataclass(frozen=True)
class InstantiationKey:
	"""(base package path, canonical binding key)."""

	base: str
	key: CanonicalKey = CanonicalKey()

	@property
	def namespace(self) -> str:
		"""Deterministic package path the instantiation is published under."""
		digest = sha256_hex(str(self.key).encode("utf-8"))
		return f"{self.base}@{digest[:NAMESPACE_DIGITS]}"

	def __str__(self) -> str:
		return f"{self.base}({self.key})"


@dataclass(frozen=True)
class ExportPromotion:
	"""`package.name` made visible as `package.exported` (renaming only)."""

	package: str
	name: str
	exported: str


@dataclass(frozen=True)
class Instantiation:
	key: InstantiationKey
	package: Package
	bindings: Tuple[TypeBinding, ...] = ()
	promotions: Tuple[ExportPromotion, ...] = ()
	dependencies: Tuple[InstantiationKey, ...] = ()

	@property
	def namespace(self) -> str:
		return self.package.path


__all__ = ["InstantiationKey", "Instantiation", "ExportPromotion", "sha256_hex"]
