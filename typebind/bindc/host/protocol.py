# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Interface the binding engine consumes from the host compiler.

The engine never parses source, resolves ordinary symbols or generates code;
it asks the host for already-built packages, for type checking of (rewritten)
trees, for resolution of type expressions in a scope and for method sets. The
reference host in `host.universe` implements this protocol; a real compiler
front end would provide its own.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Protocol, Tuple

from typebind.bindc.core.diagnostics import Diagnostic

from .ast import CompilationUnit, Expr, Package, SourceFile, TypeExpr
from .types import Func, Type


class UnresolvedType(LookupError):
	"""Raised by `resolve_type` when a type expression names nothing visible."""


@dataclass(frozen=True)
class Scope:
	"""
	Resolution scope of an import site.

	`imports` maps local import names to the package paths they currently denote
	(the base package, or an instantiation namespace after monomorphization).
	`files` overlays source files of `package` that may not be registered yet.
	"""

	package: str
	imports: Mapping[str, str] = field(default_factory=dict)
	files: Tuple[SourceFile, ...] = ()


@dataclass
class CheckResult:
	"""Outcome of a host type-check pass, with the static types it computed."""

	diagnostics: List[Diagnostic] = field(default_factory=list)
	types: Dict[int, Type] = field(default_factory=dict)
	expected: Dict[int, Type] = field(default_factory=dict)
	# Keeps every typed node alive so the id() keys above stay unique.
	nodes: Dict[int, Expr] = field(default_factory=dict, repr=False)

	@property
	def ok(self) -> bool:
		return not any(d.severity == "error" for d in self.diagnostics)

	def type_of(self, expr: Expr) -> Optional[Type]:
		return self.types.get(id(expr))

	def expected_of(self, expr: Expr) -> Optional[Type]:
		return self.expected.get(id(expr))


class HostInterface(Protocol):
	def parse_package(self, path: str) -> Package:
		"""Return the already-built package for `path` (KeyError when unknown)."""
		...

	def register_package(self, package: Package) -> None:
		"""Make a synthesized package (an instantiation) visible to later passes."""
		...

	def discard_package(self, path: str) -> None:
		"""Withdraw a synthesized package whose build failed."""
		...

	def register_unit(self, unit: CompilationUnit) -> Package:
		"""Make the unit's file part of its (possibly new) registered package."""
		...

	def typecheck(self, package: Package) -> CheckResult:
		...

	def typecheck_unit(self, unit: CompilationUnit) -> CheckResult:
		...

	def resolve_type(self, scope: Scope, expr: TypeExpr) -> Type:
		...

	def method_set(self, t: Type, *, scope: Optional[Scope] = None) -> Dict[str, Func]:
		...

	def underlying(self, t: Type, *, scope: Optional[Scope] = None) -> Type:
		...

	def resolve_alias(self, t: Type, *, scope: Optional[Scope] = None) -> Type:
		...

	def identical(self, a: Type, b: Type) -> bool:
		...

	def promote_export(self, package: str, name: str, exported: str) -> bool:
		"""Expose `package.name` under `exported` (renaming only); False when impossible."""
		...


__all__ = ["HostInterface", "Scope", "CheckResult", "UnresolvedType"]
