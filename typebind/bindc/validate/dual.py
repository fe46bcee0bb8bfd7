# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Dual-compile validation (strict builds).

Both lowerings of a unit must type check. A unit accepted by one lowering and
rejected by the other is reported as `TransformDivergence`. After the whole
program, a base package that declares package-level mutable state and was
requested with more than one binding key gets one `AmbiguousSharedState`
warning: each instantiation owns its own copy of that state while the
polymorphic lowering shares one. Neither warning blocks a build.
"""

from __future__ import annotations

import logging
from typing import List

from typebind.bindc.core.diagnostics import Diagnostic, DiagnosticKind, make_diag
from typebind.bindc.host import ast as A
from typebind.bindc.host.protocol import HostInterface
from typebind.bindc.instantiation import InstantiationCache, MonomorphicResult
from typebind.bindc.transform import TransformResult

logger = logging.getLogger(__name__)

PHASE = "validate"


def _verdict(diags: List[Diagnostic]) -> str:
	errors = [d for d in diags if d.is_error]
	if not errors:
		return "accepts it"
	return f"rejects it ({errors[0].message})"


class DualCompileValidator:
	def __init__(self, host: HostInterface, cache: InstantiationCache) -> None:
		self.host = host
		self.cache = cache

	def validate_unit(
		self, unit: A.CompilationUnit, poly: TransformResult, mono: MonomorphicResult
	) -> List[Diagnostic]:
		if poly.ok == mono.ok:
			return []
		logger.debug("lowerings diverge on %s", unit.file.name)
		rejected = mono.diagnostics if poly.ok else poly.diagnostics
		return [
			make_diag(
				DiagnosticKind.TRANSFORM_DIVERGENCE,
				f"lowerings disagree on {unit.file.name}",
				unit.imports[0].loc if unit.imports else None,
				phase=PHASE,
				severity="warning",
				notes=[
					f"polymorphic lowering {_verdict(poly.diagnostics)}",
					f"monomorphic lowering {_verdict(mono.diagnostics)}",
					*(str(d) for d in rejected if d.is_error),
				],
				file=unit.file.name,
			)
		]

	def shared_state_warnings(self) -> List[Diagnostic]:
		out: List[Diagnostic] = []
		for base in self.cache.bases():
			keys = self.cache.requested_keys(base)
			if len(keys) < 2:
				continue
			package = self.host.parse_package(base)
			state = package.mutable_state()
			if not state:
				continue
			names = ", ".join(d.name for d in state)
			out.append(
				make_diag(
					DiagnosticKind.AMBIGUOUS_SHARED_STATE,
					f"package {base} declares mutable package-level state ({names}) "
					f"and is instantiated with {len(keys)} different bindings",
					state[0].loc,
					phase=PHASE,
					severity="warning",
					notes=[f"binding key: ({k})" for k in keys]
					+ ["each instantiation owns its own copy of this state; the polymorphic lowering shares one"],
				)
			)
		return out


__all__ = ["DualCompileValidator"]
