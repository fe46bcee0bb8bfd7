# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Monomorphic lowering: specialized copies of packages, built once per key.

Building `base(key)`:
  1. make the bound concrete types visible from the new namespace (export
     promotion; failure is `BindingVisibility`);
  2. copy the non-test files into the namespace, retargeting self-references;
  3. replace every bound parameter declaration with an alias of its concrete
     type;
  4. resolve the copy's own bound imports in the copy's scope and instantiate
     them through the same cache (transitive bindings);
  5. type check the copy; every host error is `TypeMismatchAtUse`;
  6. publish the instantiation and register its package with the host.

A compilation unit lowered this way has every bound import redirected to its
instantiation; an import without a clause keeps the original package.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from typebind.bindc.bindings import BindingResolver, ResolvedClause
from typebind.bindc.core.diagnostics import BindingError, Diagnostic, DiagnosticKind, make_diag
from typebind.bindc.host import ast as A
from typebind.bindc.host.protocol import CheckResult, HostInterface, Scope
from typebind.bindc.host.rewrite import TypeFn, copy_package, subst_file
from typebind.bindc.host.types import Named, Type

from .cache import ROOT, BuildContext, InstantiationCache
from .model import Instantiation, InstantiationKey
from .promote import promote_bindings

logger = logging.getLogger(__name__)

PHASE = "monomorphic"


@dataclass
class MonomorphicResult:
	"""A unit lowered against instantiations, with the host's verdict."""

	unit: A.CompilationUnit
	instantiations: Tuple[Instantiation, ...] = ()
	diagnostics: List[Diagnostic] = field(default_factory=list)

	@property
	def ok(self) -> bool:
		return not any(d.is_error for d in self.diagnostics)


def redirect_types(targets: Dict[str, str]) -> TypeFn:
	"""Type function moving references of base packages to their instantiations."""

	def fn(n: Named) -> Optional[Type]:
		path = targets.get(n.package)
		if path is None:
			return None
		return Named(path, n.name)

	return fn


def mismatch_diagnostics(result: CheckResult, context: str) -> List[Diagnostic]:
	return [
		make_diag(
			DiagnosticKind.TYPE_MISMATCH_AT_USE,
			d.message,
			d.span,
			phase=PHASE,
			notes=[context],
		)
		for d in result.diagnostics
		if d.is_error
	]


class MonomorphicTransformer:
	def __init__(self, host: HostInterface, resolver: BindingResolver, cache: InstantiationCache) -> None:
		self.host = host
		self.resolver = resolver
		self.cache = cache

	def instantiate(self, resolved: ResolvedClause, ctx: BuildContext = ROOT) -> Instantiation:
		key = InstantiationKey(resolved.package.path, resolved.key)
		return self.cache.get_or_build(
			key,
			lambda child: self._build(resolved, key, child),
			ctx,
			loc=resolved.clause.loc,
		)

	# --- package instantiation ---------------------------------------------

	def _build(self, resolved: ResolvedClause, key: InstantiationKey, ctx: BuildContext) -> Instantiation:
		base = resolved.package
		namespace = key.namespace
		concretes, promotions = promote_bindings(self.host, resolved.bindings, namespace)
		bound: Dict[str, Type] = {b.param.name: t for b, t in zip(resolved.bindings, concretes)}
		staged = copy_package(base, namespace, include_tests=False)
		for f in staged.files:
			f.decls = [
				A.TypeDecl(name=d.name, type=bound[d.name], alias=True, loc=d.loc)
				if isinstance(d, A.TypeDecl) and d.name in bound
				else d
				for d in f.decls
			]
		# Registered before its dependencies so they may name its types.
		self.host.register_package(staged)
		try:
			files, deps = self._lower_imports(staged, ctx)
			package = A.Package(path=namespace, files=files, name=base.name)
			self.host.register_package(package)
			result = self.host.typecheck(package)
			errors = mismatch_diagnostics(result, f"while instantiating {key}")
			if errors:
				raise BindingError(errors)
		except BaseException:
			self.host.discard_package(namespace)
			raise
		logger.debug("published %s as %s (%d dependencies)", key, namespace, len(deps))
		return Instantiation(
			key=key,
			package=package,
			bindings=resolved.bindings,
			promotions=promotions,
			dependencies=tuple(deps),
		)

	def _lower_imports(
		self, staged: A.Package, ctx: BuildContext
	) -> Tuple[List[A.SourceFile], List[InstantiationKey]]:
		files: List[A.SourceFile] = []
		deps: List[InstantiationKey] = []
		diags: List[Diagnostic] = []
		for f in staged.files:
			scope = Scope(
				package=staged.path,
				imports={imp.local_name: imp.path for imp in f.imports},
				files=tuple(staged.files),
			)
			imports: List[A.ImportClause] = []
			targets: Dict[str, str] = {}
			for imp in f.imports:
				if not imp.is_bound:
					imports.append(imp)
					continue
				try:
					dep = self.instantiate(self.resolver.resolve(imp, scope), ctx)
				except BindingError as err:
					diags.extend(err.diagnostics)
					continue
				if dep.key not in deps:
					deps.append(dep.key)
				targets.setdefault(imp.path, dep.namespace)
				imports.append(A.ImportClause(path=dep.namespace, alias=imp.alias, loc=imp.loc))
			files.append(subst_file(f, redirect_types(targets), imports=imports))
		if diags:
			raise BindingError(diags)
		return files, deps

	# --- unit lowering -----------------------------------------------------

	def lower_unit(self, unit: A.CompilationUnit, resolved: Sequence[ResolvedClause]) -> MonomorphicResult:
		"""Redirect bound imports of `unit` to instantiations and type check the result."""
		imports: List[A.ImportClause] = []
		targets: Dict[str, str] = {}
		used: List[Instantiation] = []
		for r in resolved:
			if not r.is_bound:
				imports.append(r.clause)
				continue
			inst = self.instantiate(r)
			used.append(inst)
			# The first bound import of a base package owns explicit type references.
			targets.setdefault(r.package.path, inst.namespace)
			imports.append(A.ImportClause(path=inst.namespace, alias=r.clause.alias, loc=r.clause.loc))
		lowered = A.CompilationUnit(unit.package, subst_file(unit.file, redirect_types(targets), imports=imports))
		result = self.host.typecheck_unit(lowered)
		diags = mismatch_diagnostics(result, f"in {unit.file.name} lowered against its instantiations")
		return MonomorphicResult(lowered, tuple(used), diags)


__all__ = ["MonomorphicTransformer", "MonomorphicResult", "redirect_types", "mismatch_diagnostics"]
