# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
In-memory reference host: a registry of already-built packages.

`Universe` implements `HostInterface` for the reference host language. It is
safe to share between threads: registration and promotion are guarded by a
lock and every query works on a fresh `SymbolTable` view.
"""

from __future__ import annotations

import threading
from typing import Dict, Iterable, List, Optional, Tuple

from .ast import CompilationUnit, Package, SourceFile, TypeDecl, TypeExpr
from .checker import check_files, check_package
from .protocol import CheckResult, Scope, UnresolvedType
from .symbols import SymbolTable
from .types import BASIC_TYPES, EMPTY_INTERFACE, Func, MapOf, Named, Pointer, Slice, Type, is_exported


class Universe:
	def __init__(self, packages: Iterable[Package] = ()) -> None:
		self._lock = threading.Lock()
		self._packages: Dict[str, Package] = {}
		# (package, exported alias) -> private declaration name
		self._promoted: Dict[Tuple[str, str], str] = {}
		for pkg in packages:
			self.register_package(pkg)

	# --- registry ----------------------------------------------------------

	def register_package(self, package: Package) -> None:
		with self._lock:
			self._packages[package.path] = package

	def discard_package(self, path: str) -> None:
		with self._lock:
			self._packages.pop(path, None)

	def register_unit(self, unit: CompilationUnit) -> Package:
		"""Make sure `unit.file` belongs to the registered package `unit.package`."""
		with self._lock:
			pkg = self._packages.get(unit.package)
			if pkg is None:
				pkg = Package(path=unit.package, files=[unit.file])
				self._packages[unit.package] = pkg
			elif not any(f is unit.file for f in pkg.files):
				files = [f for f in pkg.files if f.name != unit.file.name] + [unit.file]
				pkg = Package(path=pkg.path, files=files, name=pkg.name)
				self._packages[unit.package] = pkg
			return pkg

	def get(self, path: str) -> Optional[Package]:
		with self._lock:
			return self._packages.get(path)

	def parse_package(self, path: str) -> Package:
		pkg = self.get(path)
		if pkg is None:
			raise KeyError(path)
		return pkg

	@property
	def paths(self) -> List[str]:
		with self._lock:
			return sorted(self._packages)

	def symbols(self, overlay: Optional[Dict[str, Tuple[SourceFile, ...]]] = None) -> SymbolTable:
		with self._lock:
			promoted = dict(self._promoted)
		return SymbolTable(self.get, promoted, overlay)

	def _symbols_for(self, scope: Optional[Scope]) -> SymbolTable:
		if scope is not None and scope.files:
			return self.symbols({scope.package: tuple(scope.files)})
		return self.symbols()

	# --- checking ----------------------------------------------------------

	def typecheck(self, package: Package) -> CheckResult:
		"""Check `package` as given (it need not be the registered object)."""
		with self._lock:
			promoted = dict(self._promoted)
		symbols = SymbolTable(lambda p: package if p == package.path else self.get(p), promoted)
		return check_package(symbols, package)

	def typecheck_unit(self, unit: CompilationUnit) -> CheckResult:
		symbols = self.symbols({unit.package: (unit.file,)})
		return check_files(symbols, unit.package, [unit.file])

	# --- symbol queries ----------------------------------------------------

	def resolve_type(self, scope: Scope, expr: TypeExpr) -> Type:
		if expr.ctor == "pointer":
			return Pointer(self.resolve_type(scope, expr.args[0]))
		if expr.ctor == "slice":
			return Slice(self.resolve_type(scope, expr.args[0]))
		if expr.ctor == "map":
			return MapOf(self.resolve_type(scope, expr.args[0]), self.resolve_type(scope, expr.args[1]))
		symbols = self._symbols_for(scope)
		if expr.qualifier is not None:
			path = scope.imports.get(expr.qualifier)
			if path is None:
				raise UnresolvedType(f"undefined package qualifier '{expr.qualifier}' in type {expr}")
			named = Named(path, expr.name)
			if symbols.type_decl(named) is None:
				raise UnresolvedType(f"undefined type {expr}")
			if not is_exported(expr.name):
				raise UnresolvedType(f"type {expr} is not exported by package {path}")
			return named
		if expr.name in BASIC_TYPES:
			return BASIC_TYPES[expr.name]
		if expr.name == "any":
			return EMPTY_INTERFACE
		named = Named(scope.package, expr.name)
		if symbols.type_decl(named) is None:
			raise UnresolvedType(f"undefined type {expr}")
		return named

	def method_set(self, t: Type, *, scope: Optional[Scope] = None) -> Dict[str, Func]:
		return self._symbols_for(scope).method_set(t)

	def underlying(self, t: Type, *, scope: Optional[Scope] = None) -> Type:
		return self._symbols_for(scope).underlying(t)

	def resolve_alias(self, t: Type, *, scope: Optional[Scope] = None) -> Type:
		return self._symbols_for(scope).normalize(t)

	def identical(self, a: Type, b: Type) -> bool:
		return self.symbols().identical(a, b)

	def promote_export(self, package: str, name: str, exported: str) -> bool:
		if not is_exported(exported):
			return False
		with self._lock:
			pkg = self._packages.get(package)
			if pkg is None:
				return False
			existing = self._promoted.get((package, exported))
			if existing is not None:
				return existing == name
			for d in pkg.decls():
				if d.name == exported:
					return False
			if not any(isinstance(d, TypeDecl) and d.name == name for d in pkg.decls()):
				return False
			self._promoted[(package, exported)] = name
			return True


__all__ = ["Universe"]
