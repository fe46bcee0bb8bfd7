# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Symbol layer of the reference host: declarations, aliases, method sets.

A `SymbolTable` is a cheap view over the package registry plus an optional
overlay of files (the compilation unit being checked). It holds no caches so a
view never observes stale packages.
"""

from __future__ import annotations

from typing import Callable, Dict, List, Mapping, Optional, Set, Tuple

from typebind.bindc.core.capabilities import CapabilityGap, missing_capabilities

from .ast import FuncDecl, Package, SourceFile, TypeDecl
from .types import (
	Func,
	Interface,
	Named,
	Pointer,
	Struct,
	Type,
	Untyped,
	is_exported,
	substitute,
)

PackageLookup = Callable[[str], Optional[Package]]

_MAX_ALIAS_DEPTH = 64


class SymbolTable:
	def __init__(
		self,
		lookup: PackageLookup,
		promoted: Optional[Mapping[Tuple[str, str], str]] = None,
		overlay: Optional[Mapping[str, Tuple[SourceFile, ...]]] = None,
	) -> None:
		self._lookup = lookup
		self._promoted = dict(promoted or {})
		self._overlay = dict(overlay or {})

	# --- packages and declarations -----------------------------------------

	def package_files(self, path: str) -> List[SourceFile]:
		pkg = self._lookup(path)
		files = list(pkg.files) if pkg is not None else []
		extra = self._overlay.get(path, ())
		if extra:
			names = {f.name for f in extra}
			files = [f for f in files if f.name not in names] + list(extra)
		return files

	def has_package(self, path: str) -> bool:
		return self._lookup(path) is not None or path in self._overlay

	def type_decl(self, n: Named) -> Optional[TypeDecl]:
		name = self._promoted.get((n.package, n.name), n.name)
		for f in self.package_files(n.package):
			for d in f.decls:
				if isinstance(d, TypeDecl) and d.name == name:
					return d
		return None

	def is_promoted(self, n: Named) -> bool:
		return (n.package, n.name) in self._promoted

	def visible_from(self, n: Named, package: str) -> bool:
		if n.package == package:
			return True
		return is_exported(n.name) and (self.type_decl(n) is not None)

	def methods_of(self, n: Named) -> List[FuncDecl]:
		"""Methods declared with receiver `n` or `*n`."""
		decl_name = self._promoted.get((n.package, n.name), n.name)
		out: List[FuncDecl] = []
		for f in self.package_files(n.package):
			for d in f.decls:
				if not isinstance(d, FuncDecl) or d.receiver is None:
					continue
				recv = d.receiver.type
				if isinstance(recv, Pointer):
					recv = recv.elem
				if isinstance(recv, Named) and recv.package == n.package and recv.name == decl_name:
					out.append(d)
		return out

	# --- aliases and underlying types --------------------------------------

	def resolve_alias(self, t: Type) -> Type:
		"""Follow alias declarations until `t` is not an alias name."""
		seen = 0
		while isinstance(t, Named):
			decl = self.type_decl(t)
			if decl is None or not decl.alias:
				if decl is not None and self.is_promoted(t):
					return Named(t.package, decl.name)
				return t
			t = decl.type
			seen += 1
			if seen > _MAX_ALIAS_DEPTH:
				break
		return t

	def normalize(self, t: Type) -> Type:
		"""Resolve aliases at every level of `t`."""
		return self._normalize(t, 0)

	def _normalize(self, t: Type, depth: int) -> Type:
		if depth > _MAX_ALIAS_DEPTH:
			return t

		def fn(n: Named) -> Optional[Type]:
			resolved = self.resolve_alias(n)
			if resolved == n:
				return None
			return self._normalize(resolved, depth + 1)

		return substitute(t, fn)

	def underlying(self, t: Type) -> Type:
		seen = 0
		t = self.resolve_alias(t)
		while isinstance(t, Named):
			decl = self.type_decl(t)
			if decl is None:
				return t
			t = self.resolve_alias(decl.type)
			seen += 1
			if seen > _MAX_ALIAS_DEPTH:
				break
		return t

	def identical(self, a: Type, b: Type) -> bool:
		if a == b:
			return True
		return self.normalize(a) == self.normalize(b)

	def is_interface(self, t: Type) -> bool:
		return isinstance(self.underlying(t), Interface)

	def struct_of(self, t: Type) -> Optional[Struct]:
		u = self.underlying(t)
		if isinstance(u, Pointer):
			u = self.underlying(u.elem)
		return u if isinstance(u, Struct) else None

	# --- method sets -------------------------------------------------------

	def interface_methods(self, iface: Interface, *, origins: Optional[Dict[str, str]] = None) -> Dict[str, Func]:
		"""Flattened method set of an interface (embedded interfaces expanded)."""
		out: Dict[str, Func] = {}
		self._flatten(iface, out, origins, None, set())
		return out

	def _flatten(
		self,
		iface: Interface,
		out: Dict[str, Func],
		origins: Optional[Dict[str, str]],
		origin: Optional[str],
		seen: Set[Named],
	) -> None:
		for m in iface.methods:
			out.setdefault(m.name, m.signature())
			if origins is not None and origin is not None:
				origins.setdefault(m.name, origin)
		for e in iface.embeds:
			if e in seen:
				continue
			seen.add(e)
			inner = self.underlying(e)
			if isinstance(inner, Interface):
				self._flatten(inner, out, origins, origin or e.name, seen)

	def method_set(self, t: Type) -> Dict[str, Func]:
		if isinstance(t, Untyped):
			return {}
		t = self.resolve_alias(t)
		u = self.underlying(t)
		if isinstance(u, Interface):
			return self.interface_methods(u)
		base = t.elem if isinstance(t, Pointer) else t
		base = self.resolve_alias(base)
		if not isinstance(base, Named):
			return {}
		methods: Dict[str, Func] = {}
		for d in self.methods_of(base):
			methods.setdefault(d.name, Func(tuple(p.type for p in d.params), tuple(d.results)))
		return methods

	def missing_methods(self, t: Type, iface: Type) -> List[CapabilityGap]:
		u = self.underlying(iface)
		if not isinstance(u, Interface):
			return []
		return missing_capabilities(self.interface_methods(u), self.method_set(t), identical=self.identical)

	def implements(self, t: Type, iface: Type) -> bool:
		return not self.missing_methods(t, iface)


__all__ = ["SymbolTable", "PackageLookup"]
