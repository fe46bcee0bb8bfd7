# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Export promotion.

An instantiation lives in its own namespace, so every named type its bindings
mention must be visible from outside the declaring package. Unexported names
get a capitalized exported alias registered with the host symbol layer; the
declaration itself is not touched.
"""

from __future__ import annotations

from typing import List, Optional, Tuple

from typebind.bindc.bindings.key import TypeBinding
from typebind.bindc.core.diagnostics import BindingError, Diagnostic, DiagnosticKind, make_diag
from typebind.bindc.host.protocol import HostInterface
from typebind.bindc.host.types import Named, Type, describe, is_exported, substitute

from .model import ExportPromotion

PHASE = "monomorphic"


def exported_name(name: str) -> str:
	return name[:1].upper() + name[1:]


def promote_binding(
	host: HostInterface,
	binding: TypeBinding,
	target: str,
	promotions: List[ExportPromotion],
	diags: List[Diagnostic],
) -> Type:
	"""Concrete type of `binding` with every unexported name replaced by its promoted alias."""

	def fn(n: Named) -> Optional[Type]:
		if is_exported(n.name) or n.package == target:
			return None
		exported = exported_name(n.name)
		if host.promote_export(n.package, n.name, exported):
			promotion = ExportPromotion(n.package, n.name, exported)
			if promotion not in promotions:
				promotions.append(promotion)
			return Named(n.package, exported)
		diags.append(
			make_diag(
				DiagnosticKind.BINDING_VISIBILITY,
				f"type {describe(n)} bound to {binding.param} is not visible outside package {n.package} "
				f"and cannot be exported as {exported}",
				binding.loc,
				phase=PHASE,
			)
		)
		return None

	return substitute(binding.concrete, fn)


def promote_bindings(
	host: HostInterface, bindings: Tuple[TypeBinding, ...], target: str
) -> Tuple[Tuple[Type, ...], Tuple[ExportPromotion, ...]]:
	"""Make every binding's concrete type nameable from package `target`."""
	promotions: List[ExportPromotion] = []
	diags: List[Diagnostic] = []
	concretes = tuple(promote_binding(host, b, target, promotions, diags) for b in bindings)
	if diags:
		raise BindingError(diags)
	return concretes, tuple(promotions)


__all__ = ["exported_name", "promote_binding", "promote_bindings"]
