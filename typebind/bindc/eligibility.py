# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Named-type-equivalence check: which interface types of a package may be bound.

An exported interface type T of package P is an eligible parameter type when P
uses T nominally. Host interfaces are structural, so this is proven by
substitution: a shadow copy of P (test files excluded) replaces T with an empty
struct carrying one stub method per member of T's method set and is type
checked again. If the shadow still checks, no code in P relies on T accepting
values of another type. Every error the substitution introduces is reported as
an `NTECViolation` at the offending statement.

Results are pure functions of (package, type) and memoized optimistically:
concurrent first computations may both run, the first published result wins.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Dict, FrozenSet, List, Optional, Set, Tuple

from typebind.bindc.core.diagnostics import Diagnostic, DiagnosticKind, make_diag
from typebind.bindc.host import ast as A
from typebind.bindc.host.protocol import HostInterface
from typebind.bindc.host.rewrite import subst_file
from typebind.bindc.host.types import Interface, MethodSig, Named, Struct, is_exported

logger = logging.getLogger(__name__)

PHASE = "eligibility"


@dataclass(frozen=True)
class EligibilityResult:
	package: str
	type_name: str
	eligible: bool
	diagnostics: Tuple[Diagnostic, ...] = ()


def candidate_params(package: A.Package) -> List[str]:
	"""Exported interface-shaped named types declared outside test files, in order."""
	out: List[str] = []
	for d in package.type_decls(include_tests=False):
		if d.alias or not is_exported(d.name):
			continue
		if isinstance(d.type, Interface) and d.name not in out:
			out.append(d.name)
	return out


def _flatten_methods(
	host: HostInterface,
	iface: Interface,
	origin: Optional[str],
	out: Dict[str, Tuple[MethodSig, Optional[str]]],
	seen: Set[Named],
) -> None:
	for m in iface.methods:
		out.setdefault(m.name, (m, origin))
	for e in iface.embeds:
		if e in seen:
			continue
		seen.add(e)
		inner = host.underlying(e)
		if isinstance(inner, Interface):
			_flatten_methods(host, inner, origin or e.name, out, seen)


def _stub_method(owner: Named, m: MethodSig, forwards_for: Optional[str], loc: Optional[A.Located]) -> A.FuncDecl:
	body: List[A.Stmt] = []
	if m.results:
		body.append(A.Return(values=[A.Zero(r, loc=loc) for r in m.results], loc=loc))
	return A.FuncDecl(
		name=m.name,
		params=[A.Param(f"_{i}", p) for i, p in enumerate(m.params)],
		results=list(m.results),
		body=body,
		receiver=A.Param("_", owner),
		loc=loc,
		forwards_for=forwards_for,
	)


def build_shadow(host: HostInterface, package: A.Package, type_name: str) -> A.Package:
	"""
	Shadow copy of `package` with `type_name` replaced by a stub-carrying struct.

	Methods reached through embedded interfaces get their own explicit stubs,
	tagged with the interface they forward for.
	"""
	decl = package.type_decl(type_name)
	if decl is None or not isinstance(decl.type, Interface):
		raise ValueError(f"{package.path}.{type_name} is not an interface type")
	owner = Named(package.path, type_name)
	methods: Dict[str, Tuple[MethodSig, Optional[str]]] = {}
	_flatten_methods(host, decl.type, None, methods, {owner})
	files: List[A.SourceFile] = []
	for f in package.source_files(include_tests=False):
		copy = subst_file(f, lambda n: None)
		decls: List[A.Decl] = []
		for d in copy.decls:
			if isinstance(d, A.TypeDecl) and d.name == type_name:
				decls.append(A.TypeDecl(name=type_name, type=Struct(()), loc=d.loc))
				decls.extend(_stub_method(owner, m, origin, d.loc) for m, origin in methods.values())
			else:
				decls.append(d)
		copy.decls = decls
		files.append(copy)
	return A.Package(path=package.path, files=files, name=package.name)


def _diag_key(d: Diagnostic) -> Tuple[str, Optional[int], Optional[int]]:
	return (d.message, d.span.line, d.span.column)


class EligibilityChecker:
	def __init__(self, host: HostInterface, *, parallel: bool = False, max_workers: Optional[int] = None) -> None:
		self.host = host
		self.parallel = parallel
		self.max_workers = max_workers
		self._lock = threading.Lock()
		self._cache: Dict[Tuple[str, str], EligibilityResult] = {}
		self._computations = 0

	@property
	def computations(self) -> int:
		with self._lock:
			return self._computations

	def check(self, package: A.Package, type_name: str) -> EligibilityResult:
		key = (package.path, type_name)
		with self._lock:
			cached = self._cache.get(key)
		if cached is not None:
			return cached
		result = self._compute(package, type_name)
		with self._lock:
			self._computations += 1
			return self._cache.setdefault(key, result)

	def _compute(self, package: A.Package, type_name: str) -> EligibilityResult:
		if type_name not in candidate_params(package):
			diag = make_diag(
				DiagnosticKind.PARAM_NOT_ELIGIBLE,
				f"{package.path}.{type_name} is not an exported interface type",
				package.type_decl(type_name).loc if package.type_decl(type_name) else None,
				phase=PHASE,
			)
			return EligibilityResult(package.path, type_name, False, (diag,))
		baseline_pkg = A.Package(path=package.path, files=package.source_files(include_tests=False), name=package.name)
		baseline = {_diag_key(d) for d in self.host.typecheck(baseline_pkg).diagnostics}
		shadow = build_shadow(self.host, package, type_name)
		found = [d for d in self.host.typecheck(shadow).diagnostics if _diag_key(d) not in baseline]
		violations = tuple(
			make_diag(
				DiagnosticKind.NTEC_VIOLATION,
				f"{package.path}.{type_name} is not used nominally: {d.message}",
				d.span,
				phase=PHASE,
				notes=[f"the package relies on {type_name} accepting values of other types, so it cannot be bound"],
			)
			for d in found
		)
		logger.debug("eligibility %s.%s: %s", package.path, type_name, "eligible" if not violations else "ineligible")
		return EligibilityResult(package.path, type_name, not violations, violations)

	def eligible_params(self, package: A.Package) -> FrozenSet[str]:
		"""Evaluate every candidate once and publish the eligible set on the package."""
		published = package.eligible_params
		if published is not None:
			return published
		names = candidate_params(package)
		if self.parallel and len(names) > 1:
			with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
				results = list(pool.map(lambda n: self.check(package, n), names))
		else:
			results = [self.check(package, n) for n in names]
		return package.publish_eligible(r.type_name for r in results if r.eligible)

	def violations(self, package: A.Package) -> List[Diagnostic]:
		out: List[Diagnostic] = []
		for name in candidate_params(package):
			out.extend(self.check(package, name).diagnostics)
		return out


__all__ = ["EligibilityChecker", "EligibilityResult", "build_shadow", "candidate_params"]
