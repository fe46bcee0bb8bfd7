# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Binding clause resolver.

`BindingResolver.resolve` turns one import clause into validated
`TypeBinding`s plus their `CanonicalKey`. Every pair is checked in order:
eligibility of the parameter name, resolution of the concrete type in the
importing scope, duplicate detection and structural satisfaction. Problems are
collected for the whole clause and raised together as one `BindingError`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, FrozenSet, List, Optional, Tuple

from typebind.bindc.core.capabilities import missing_capabilities
from typebind.bindc.core.diagnostics import BindingError, Diagnostic, DiagnosticKind, make_diag
from typebind.bindc.core.span import Span
from typebind.bindc.eligibility import EligibilityChecker, candidate_params
from typebind.bindc.host.ast import BindingSpec, ImportClause, Located, Package, package_name_of
from typebind.bindc.host.protocol import HostInterface, Scope, UnresolvedType
from typebind.bindc.host.types import Func, Named, Type, describe, substitute
from typebind.bindc.parser import BindingClauseSyntaxError, parse_import_clause

from .key import CanonicalKey, ParameterTypeRef, TypeBinding, canonical_key

logger = logging.getLogger(__name__)

PHASE = "binding"


@dataclass(frozen=True)
class ResolvedClause:
	"""An import clause with its base package and validated bindings."""

	clause: ImportClause
	package: Package
	bindings: Tuple[TypeBinding, ...] = ()
	key: CanonicalKey = CanonicalKey()

	@property
	def is_bound(self) -> bool:
		return self.clause.is_bound

	def substitution(self) -> Dict[str, Type]:
		return {b.param.name: b.concrete for b in self.bindings}

	def binding_for(self, name: str) -> Optional[TypeBinding]:
		for b in self.bindings:
			if b.param.name == name:
				return b
		return None


class BindingResolver:
	def __init__(self, host: HostInterface, eligibility: EligibilityChecker) -> None:
		self.host = host
		self.eligibility = eligibility

	def resolve_text(self, source: str, scope: Scope, *, file: Optional[str] = None) -> ResolvedClause:
		"""Parse one import declaration and resolve it."""
		try:
			clause = parse_import_clause(source, file=file)
		except BindingClauseSyntaxError as err:
			raise BindingError([make_diag(DiagnosticKind.BINDING_SYNTAX, str(err), err.loc, phase=PHASE, file=file)]) from err
		return self.resolve(clause, scope)

	def load(self, clause: ImportClause) -> Package:
		try:
			return self.host.parse_package(clause.path)
		except KeyError:
			raise BindingError(
				[make_diag(DiagnosticKind.UNKNOWN_PACKAGE, f"unknown package '{clause.path}'", clause.loc, phase=PHASE)]
			) from None

	def resolve(self, clause: ImportClause, scope: Scope) -> ResolvedClause:
		package = self.load(clause)
		if not clause.is_bound:
			return ResolvedClause(clause, package)
		eligible = self.eligibility.eligible_params(package)
		diags: List[Diagnostic] = []
		first_seen: Dict[str, BindingSpec] = {}
		bindings: List[TypeBinding] = []
		for spec in clause.bindings:
			loc = spec.loc or clause.loc
			if not self._check_param(spec, clause, package, eligible, loc, diags):
				continue
			if spec.param in first_seen:
				prior = first_seen[spec.param].loc or clause.loc
				diags.append(
					make_diag(
						DiagnosticKind.DUPLICATE_BINDING,
						f"parameter type {package.path}.{spec.param} is bound more than once",
						loc,
						phase=PHASE,
						notes=[f"first bound at {Span.from_loc(prior)}"],
					)
				)
				continue
			first_seen[spec.param] = spec
			try:
				concrete = self.host.resolve_type(scope, spec.type_expr)
			except UnresolvedType as err:
				diags.append(
					make_diag(
						DiagnosticKind.UNKNOWN_TYPE,
						f"cannot bind {spec.param_text()}: {err}",
						loc,
						phase=PHASE,
					)
				)
				continue
			concrete = self.host.resolve_alias(concrete, scope=scope)
			param = ParameterTypeRef(package.path, spec.param)
			gap_diag = self._check_satisfied(param, concrete, scope, loc)
			if gap_diag is not None:
				diags.append(gap_diag)
				continue
			bindings.append(TypeBinding(param, concrete, loc))
		if diags:
			raise BindingError(diags)
		key = canonical_key(bindings)
		logger.debug("resolved %s (%s) in %s", clause.path, key, scope.package)
		return ResolvedClause(clause, package, tuple(bindings), key)

	def _check_param(
		self,
		spec: BindingSpec,
		clause: ImportClause,
		package: Package,
		eligible: FrozenSet[str],
		loc: Optional[Located],
		diags: List[Diagnostic],
	) -> bool:
		# A renamed import still accepts the package's own name as qualifier.
		qualifiers = sorted({clause.local_name, package_name_of(clause.path)})
		if spec.qualifier is not None and spec.qualifier not in qualifiers:
			diags.append(
				make_diag(
					DiagnosticKind.PARAM_NOT_ELIGIBLE,
					f"'{spec.param_text()}' does not name a type of the imported package "
					"(qualifier must be " + " or ".join(f"'{q}'" for q in qualifiers) + ")",
					loc,
					phase=PHASE,
				)
			)
			return False
		if spec.param in eligible:
			return True
		notes: List[str] = []
		if package.type_decl(spec.param) is None:
			reason = "is not declared"
		elif spec.param not in candidate_params(package):
			reason = "is not an exported interface type"
		else:
			reason = "is not used nominally"
			notes = [str(d) for d in self.eligibility.check(package, spec.param).diagnostics]
		diags.append(
			make_diag(
				DiagnosticKind.PARAM_NOT_ELIGIBLE,
				f"{package.path}.{spec.param} {reason} and cannot be bound",
				loc,
				phase=PHASE,
				notes=notes,
			)
		)
		return False

	def _check_satisfied(self, param: ParameterTypeRef, concrete: Type, scope: Scope, loc: Optional[Located]) -> Optional[Diagnostic]:
		target = param.named()

		def as_concrete(n: Named) -> Optional[Type]:
			return concrete if n == target else None

		# A parameter's own methods may mention the parameter; compare as bound.
		required: Dict[str, Func] = {
			name: substitute(sig, as_concrete) for name, sig in self.host.method_set(target).items()
		}
		provided = self.host.method_set(concrete, scope=scope)
		gaps = missing_capabilities(required, provided, identical=self.host.identical)
		if not gaps:
			return None
		return make_diag(
			DiagnosticKind.BINDING_UNSATISFIED,
			f"{describe(concrete)} does not satisfy {param}: "
			+ ", ".join(g.describe() for g in gaps),
			loc,
			phase=PHASE,
			notes=[g.describe() for g in gaps],
		)


__all__ = ["BindingResolver", "ResolvedClause"]
