# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Build session: one program build over a host.

A session owns the per-build state shared by every compilation unit (the
eligibility memo, the instantiation cache) and lowers units with the strategy
named by `BuildConfig`. Under `strict` the other lowering runs as well and is
reported only through the validator's warnings. A `BindingError` ends only the
unit that raised it; its diagnostics go to the sink and the remaining units
keep compiling.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

from typebind.bindc.bindings import BindingResolver, ResolvedClause
from typebind.bindc.core.config import STRATEGY_MONOMORPHIC, STRATEGY_POLYMORPHIC, BuildConfig
from typebind.bindc.core.diagnostics import BindingError, Diagnostic, DiagnosticSink
from typebind.bindc.eligibility import EligibilityChecker
from typebind.bindc.host.ast import CompilationUnit
from typebind.bindc.host.protocol import HostInterface, Scope
from typebind.bindc.instantiation import Instantiation, InstantiationCache, MonomorphicResult, MonomorphicTransformer
from typebind.bindc.transform import PolymorphicTransformer
from typebind.bindc.validate import DualCompileValidator

logger = logging.getLogger(__name__)


@dataclass
class UnitResult:
	"""Outcome of compiling one unit."""

	unit: CompilationUnit
	strategy: str
	lowered: Optional[CompilationUnit] = None
	instantiations: Tuple[Instantiation, ...] = ()
	diagnostics: List[Diagnostic] = field(default_factory=list)

	@property
	def ok(self) -> bool:
		return self.lowered is not None and not any(d.is_error for d in self.diagnostics)


class BuildSession:
	def __init__(
		self,
		host: HostInterface,
		config: Optional[BuildConfig] = None,
		sink: Optional[DiagnosticSink] = None,
	) -> None:
		self.host = host
		self.config = config or BuildConfig()
		self.sink = sink or DiagnosticSink()
		self.eligibility = EligibilityChecker(
			host,
			parallel=self.config.parallel_eligibility,
			max_workers=self.config.max_workers,
		)
		self.resolver = BindingResolver(host, self.eligibility)
		self.cache = InstantiationCache(budget=self.config.instantiation_budget)
		self.monomorphic = MonomorphicTransformer(host, self.resolver, self.cache)
		self.polymorphic = PolymorphicTransformer(host, address_of_policy=self.config.address_of_policy)
		self.validator = DualCompileValidator(host, self.cache)

	def scope_for(self, unit: CompilationUnit) -> Scope:
		return Scope(
			package=unit.package,
			imports={imp.local_name: imp.path for imp in unit.imports},
			files=(unit.file,),
		)

	def resolve_imports(self, unit: CompilationUnit) -> List[ResolvedClause]:
		"""Resolve every import of `unit`; problems of all clauses are raised together."""
		scope = self.scope_for(unit)
		resolved: List[ResolvedClause] = []
		diags: List[Diagnostic] = []
		for clause in unit.imports:
			try:
				resolved.append(self.resolver.resolve(clause, scope))
			except BindingError as err:
				diags.extend(err.diagnostics)
		if diags:
			raise BindingError(diags)
		return resolved

	def compile_unit(self, unit: CompilationUnit) -> UnitResult:
		strategy = self.config.strategy
		result = UnitResult(unit=unit, strategy=strategy)
		try:
			self.host.register_unit(unit)
			resolved = self.resolve_imports(unit)
			if strategy == STRATEGY_POLYMORPHIC:
				poly = self.polymorphic.transform(unit, resolved)
				result.lowered = poly.unit
				result.diagnostics.extend(poly.diagnostics)
			else:
				mono = self.monomorphic.lower_unit(unit, resolved)
				result.lowered = mono.unit
				result.instantiations = mono.instantiations
				result.diagnostics.extend(mono.diagnostics)
			if self.config.strict:
				# The other lowering only feeds the divergence warning.
				if strategy == STRATEGY_POLYMORPHIC:
					mono = self._shadow_monomorphic(unit, resolved)
				else:
					poly = self.polymorphic.transform(unit, resolved)
				result.diagnostics.extend(self.validator.validate_unit(unit, poly, mono))
		except BindingError as err:
			logger.debug("unit %s failed: %s", unit.file.name, err)
			result.lowered = None
			result.diagnostics.extend(err.diagnostics)
		self.sink.extend(result.diagnostics)
		return result

	def _shadow_monomorphic(self, unit: CompilationUnit, resolved: List[ResolvedClause]) -> MonomorphicResult:
		try:
			return self.monomorphic.lower_unit(unit, resolved)
		except BindingError as err:
			return MonomorphicResult(unit, (), list(err.diagnostics))

	def compile_units(self, units: Iterable[CompilationUnit]) -> List[UnitResult]:
		items = list(units)
		if self.config.max_workers > 1 and len(items) > 1:
			with ThreadPoolExecutor(max_workers=self.config.max_workers) as pool:
				return list(pool.map(self.compile_unit, items))
		return [self.compile_unit(u) for u in items]

	def finish(self) -> List[Diagnostic]:
		"""Program-level checks after every unit; returns everything the sink holds."""
		if self.config.strict:
			self.sink.extend(self.validator.shared_state_warnings())
		return self.sink.diagnostics


def build(
	host: HostInterface,
	units: Iterable[CompilationUnit],
	config: Optional[BuildConfig] = None,
) -> Tuple[List[UnitResult], DiagnosticSink]:
	"""Compile `units` in one session and run the program-level checks."""
	session = BuildSession(host, config)
	results = session.compile_units(units)
	session.finish()
	return results, session.sink


__all__ = ["BuildSession", "UnitResult", "build"]
