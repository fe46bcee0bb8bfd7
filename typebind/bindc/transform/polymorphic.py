# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Polymorphic lowering: conversions at use sites, imported packages untouched.

For every bound import of a unit:
  - the import is emitted without its binding clause;
  - unit-local type references to a bound parameter become the concrete type;
  - a call or selector whose static type is a bound parameter gets a checked
    conversion (type assertion) to the concrete type;
  - an expression in a position expecting a bound parameter is converted to it.

Static and expected types come from the host checker. Locals inferred from a
converted expression change type, so rewriting repeats until nothing changes.
The concrete type of a checked conversion comes from the import the value is
reached through (an import name, or a local initialized from one), so a unit
may import one package twice with different bindings.
Taking the address of a field whose declared type is a bound parameter cannot
be expressed this way; `address_of_policy` decides between rejecting it and
emitting a reflective boxed address.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Set

from typebind.bindc.bindings import ResolvedClause
from typebind.bindc.core.config import ADDRESS_OF_POLICIES, ADDRESS_OF_REFLECT, ADDRESS_OF_REJECT
from typebind.bindc.core.diagnostics import Diagnostic, DiagnosticKind, make_diag
from typebind.bindc.host import ast as A
from typebind.bindc.host.checker import INVALID
from typebind.bindc.host.protocol import CheckResult, HostInterface
from typebind.bindc.host.rewrite import subst_file
from typebind.bindc.host.types import Named, Type, describe

logger = logging.getLogger(__name__)

PHASE = "polymorphic"

DEFAULT_MAX_PASSES = 8


@dataclass
class TransformResult:
	unit: A.CompilationUnit
	diagnostics: List[Diagnostic] = field(default_factory=list)
	passes: int = 0

	@property
	def ok(self) -> bool:
		return not any(d.is_error for d in self.diagnostics)


class _Pass:
	"""One rewriting pass over a file, driven by one host check result."""

	def __init__(
		self,
		bound: Dict[Named, Type],
		by_import: Dict[str, Dict[Named, Type]],
		check: CheckResult,
		policy: str,
		diags: List[Diagnostic],
		rejected: Set[int],
	) -> None:
		self.bound = bound
		self.by_import = by_import
		self.check = check
		self.policy = policy
		self.diags = diags
		# ids of address-of nodes already reported in an earlier pass
		self.rejected = rejected
		self.changed = False
		# variable name -> local name of the import its value came from
		self.globals: Dict[str, Optional[str]] = {}
		self.origins: Dict[str, Optional[str]] = {}

	def run(self, f: A.SourceFile) -> None:
		for d in f.decls:
			if isinstance(d, A.VarDecl) and d.value is not None:
				d.value = self.expr(d.value)
				self.globals[d.name] = self._origin(d.value)
		for d in f.decls:
			if isinstance(d, A.FuncDecl):
				self.origins = dict(self.globals)
				for p in ([d.receiver] if d.receiver is not None else []) + list(d.params):
					self.origins[p.name] = None
				for s in d.body:
					self.stmt(s)

	def stmt(self, s: A.Stmt) -> None:
		if isinstance(s, A.VarStmt):
			if s.value is not None:
				s.value = self.expr(s.value)
			self.origins[s.name] = self._origin(s.value) if s.value is not None else None
		elif isinstance(s, A.Assign):
			s.target = self.expr(s.target, assert_result=False)
			s.value = self.expr(s.value)
		elif isinstance(s, A.ExprStmt):
			s.expr = self.expr(s.expr, assert_result=False)
		elif isinstance(s, A.Return):
			s.values = [self.expr(v) for v in s.values]

	def _origin(self, e: A.Expr) -> Optional[str]:
		"""Local name of the bound import an expression's value is reached through."""
		if isinstance(e, A.Ident):
			if e.name in self.origins:
				return self.origins[e.name]
			return e.name if e.name in self.by_import else None
		if isinstance(e, (A.Selector, A.AddrOf)):
			return self._origin(e.x)
		if isinstance(e, A.Call):
			return self._origin(e.fn)
		return None

	def _concrete(self, param: Named, e: A.Expr) -> Type:
		origin = self._origin(e)
		if origin is not None and param in self.by_import.get(origin, {}):
			return self.by_import[origin][param]
		return self.bound[param]

	def _bound_param(self, t: Optional[Type]) -> Optional[Named]:
		if isinstance(t, Named) and t in self.bound:
			return t
		return None

	def expr(self, e: A.Expr, *, assert_result: bool = True) -> A.Expr:
		if isinstance(e, A.AddrOf) and isinstance(e.x, A.Selector):
			param = self._bound_param(self.check.type_of(e.x))
			if param is not None:
				return self._address_of_field(e, e.x, param)
		self._children(e)
		static = self.check.type_of(e)
		expected = self.check.expected_of(e)
		param = self._bound_param(static)
		if assert_result and param is not None and isinstance(e, (A.Call, A.Selector)) and expected != param:
			self.changed = True
			return A.TypeAssert(e, self._concrete(param, e), loc=e.loc)
		want = self._bound_param(expected)
		if want is not None and static is not None and static is not INVALID and static != want:
			self.changed = True
			return A.Convert(want, e, loc=e.loc)
		return e

	def _children(self, e: A.Expr) -> None:
		if isinstance(e, A.Selector):
			e.x = self.expr(e.x, assert_result=False)
		elif isinstance(e, A.Call):
			e.fn = self.expr(e.fn, assert_result=False)
			e.args = [self.expr(a) for a in e.args]
		elif isinstance(e, A.Convert):
			e.x = self.expr(e.x, assert_result=self._bound_param(e.type) is None)
		elif isinstance(e, (A.TypeAssert, A.BoxedAddr)):
			e.x = self.expr(e.x, assert_result=False)
		elif isinstance(e, A.AddrOf):
			e.x = self.expr(e.x, assert_result=False)
		elif isinstance(e, A.Composite):
			e.fields = [(n, self.expr(v)) for n, v in e.fields]
		elif isinstance(e, A.Binary):
			e.left = self.expr(e.left)
			e.right = self.expr(e.right)

	def _address_of_field(self, e: A.AddrOf, sel: A.Selector, param: Named) -> A.Expr:
		sel.x = self.expr(sel.x, assert_result=False)
		concrete = self._concrete(param, sel)
		text = f"&{_expr_text(sel)}"
		if self.policy == ADDRESS_OF_REFLECT:
			self.changed = True
			self.diags.append(
				make_diag(
					DiagnosticKind.ADDRESS_OF_BOUND_FIELD,
					f"{text} takes the address of a field of bound type {describe(param)}; "
					f"lowered to a reflective address of {describe(concrete)}",
					e.loc,
					phase=PHASE,
					severity="warning",
				)
			)
			return A.BoxedAddr(sel, concrete, loc=e.loc)
		if id(e) in self.rejected:
			return e
		self.rejected.add(id(e))
		self.diags.append(
			make_diag(
				DiagnosticKind.ADDRESS_OF_BOUND_FIELD,
				f"cannot take the address of {text}: field has bound type {describe(param)} "
				f"which is {describe(concrete)} only after conversion",
				e.loc,
				phase=PHASE,
				notes=["use the monomorphic strategy or address_of_policy='reflect'"],
			)
		)
		return e


def _expr_text(e: A.Expr) -> str:
	if isinstance(e, A.Ident):
		return e.name
	if isinstance(e, A.Selector):
		return f"{_expr_text(e.x)}.{e.name}"
	if isinstance(e, A.Call):
		return f"{_expr_text(e.fn)}(...)"
	return "(...)"


class PolymorphicTransformer:
	def __init__(
		self,
		host: HostInterface,
		*,
		address_of_policy: str = ADDRESS_OF_REJECT,
		max_passes: int = DEFAULT_MAX_PASSES,
	) -> None:
		if address_of_policy not in ADDRESS_OF_POLICIES:
			raise ValueError(f"unknown address_of_policy '{address_of_policy}'")
		self.host = host
		self.address_of_policy = address_of_policy
		self.max_passes = max_passes

	def transform(self, unit: A.CompilationUnit, resolved: Sequence[ResolvedClause]) -> TransformResult:
		bound: Dict[Named, Type] = {}
		by_import: Dict[str, Dict[Named, Type]] = {}
		for r in resolved:
			if not r.bindings:
				continue
			by_import[r.clause.local_name] = {b.param.named(): b.concrete for b in r.bindings}
			for b in r.bindings:
				# Values not traceable to one import use the first binding of the parameter.
				bound.setdefault(b.param.named(), b.concrete)
		imports = [
			A.ImportClause(path=r.clause.path, alias=r.clause.alias, loc=r.clause.loc) if r.is_bound else r.clause
			for r in resolved
		]

		def local_ref(n: Named) -> Optional[Type]:
			return bound.get(n)

		lowered = A.CompilationUnit(unit.package, subst_file(unit.file, local_ref, imports=imports))
		diags: List[Diagnostic] = []
		rejected: Set[int] = set()
		passes = 0
		check = self.host.typecheck_unit(lowered)
		while bound and passes < self.max_passes:
			step = _Pass(bound, by_import, check, self.address_of_policy, diags, rejected)
			step.run(lowered.file)
			passes += 1
			if not step.changed:
				break
			check = self.host.typecheck_unit(lowered)
		logger.debug("polymorphic lowering of %s: %d passes", unit.file.name, passes)
		diags.extend(
			make_diag(
				DiagnosticKind.TYPE_ERROR,
				d.message,
				d.span,
				phase=PHASE,
				notes=[f"in {unit.file.name} after conversion insertion"],
			)
			for d in check.diagnostics
			if d.is_error
		)
		return TransformResult(lowered, diags, passes)


__all__ = ["PolymorphicTransformer", "TransformResult"]
