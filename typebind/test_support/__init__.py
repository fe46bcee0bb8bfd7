# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Shared builders for tests that need host packages and compilation units.

The packages below are small but complete reference-host packages: a list, an
ordered map, a lock guard, a package mixing its parameter with `string` (not
eligible), a package with mutable state and chains of packages binding each
other. Import declarations are written as source text and parsed, so the
fixtures go through the same grammar as real import sites.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence

from typebind.bindc.bindings import BindingResolver, ResolvedClause
from typebind.bindc.core.config import DEFAULT_INSTANTIATION_BUDGET
from typebind.bindc.eligibility import EligibilityChecker
from typebind.bindc.host import ast as A
from typebind.bindc.host.protocol import Scope
from typebind.bindc.host.types import (
	INT,
	STRING,
	Field,
	Interface,
	MethodSig,
	Named,
	Pointer,
	Struct,
	Type,
)
from typebind.bindc.host.universe import Universe
from typebind.bindc.instantiation import InstantiationCache, MonomorphicTransformer
from typebind.bindc.parser import parse_imports

LIST = "container/list"
OMAP = "container/omap"
GUARD = "sync/guard"
RWLOCK = "sync/rw"
MIXING = "util/mixing"
STRS = "util/strs"
COUNTER = "stats/counter"


def at(line: int, column: int = 1, file: Optional[str] = None) -> A.Located:
	return A.Located(line=line, column=column, file=file)


def ident(name: str, line: Optional[int] = None) -> A.Ident:
	return A.Ident(name, loc=at(line) if line else None)


def sel(x: A.Expr | str, name: str, line: Optional[int] = None) -> A.Selector:
	return A.Selector(ident(x) if isinstance(x, str) else x, name, loc=at(line) if line else None)


def call(fn: A.Expr, *args: A.Expr, line: Optional[int] = None) -> A.Call:
	return A.Call(fn, list(args), loc=at(line) if line else None)


def lit(value: object, line: Optional[int] = None) -> A.Lit:
	return A.Lit(value, loc=at(line) if line else None)


def imports(source: str, file: str = "main.go") -> List[A.ImportClause]:
	return parse_imports(source, file=file)


def func(
	name: str,
	body: Sequence[A.Stmt] = (),
	*,
	params: Sequence[A.Param] = (),
	results: Sequence[Type] = (),
	receiver: Optional[A.Param] = None,
	line: Optional[int] = None,
) -> A.FuncDecl:
	return A.FuncDecl(
		name=name,
		params=list(params),
		results=list(results),
		body=list(body),
		receiver=receiver,
		loc=at(line) if line else None,
	)


def unit(
	package: str,
	import_src: str,
	decls: Iterable[A.Decl],
	*,
	name: str = "main.go",
) -> A.CompilationUnit:
	return A.CompilationUnit(package, A.SourceFile(name=name, imports=imports(import_src, name), decls=list(decls)))


def main_unit(import_src: str, body: Sequence[A.Stmt], *, extra: Sequence[A.Decl] = (), name: str = "main.go") -> A.CompilationUnit:
	"""Unit of package `main` with one `func main()` holding `body`."""
	return unit("main", import_src, [*extra, func("main", body, line=10)], name=name)


# --- packages --------------------------------------------------------------


def list_package(path: str = LIST) -> A.Package:
	"""
	type ValueType interface{}
	type Element struct { Value ValueType; next *Element }
	type List struct { front *Element; len int }
	func New() *List
	func (l *List) PushBack(v ValueType) *Element
	func (l *List) Front() *Element
	func (l *List) Len() int
	"""
	vt = Named(path, "ValueType")
	elem = Named(path, "Element")
	lst = Named(path, "List")
	recv = A.Param("l", Pointer(lst))
	decls: List[A.Decl] = [
		A.TypeDecl("ValueType", Interface(), loc=at(3, file="list.go")),
		A.TypeDecl("Element", Struct((Field("Value", vt), Field("next", Pointer(elem)))), loc=at(4, file="list.go")),
		A.TypeDecl("List", Struct((Field("front", Pointer(elem)), Field("len", INT))), loc=at(5, file="list.go")),
		func("New", [A.Return([A.AddrOf(A.Composite(lst))], loc=at(8))], results=[Pointer(lst)], line=7),
		func(
			"PushBack",
			[
				A.VarStmt("e", value=A.AddrOf(A.Composite(elem, [("Value", ident("v"))])), loc=at(12)),
				A.Assign(sel("l", "front"), ident("e"), loc=at(13)),
				A.Return([ident("e")], loc=at(14)),
			],
			params=[A.Param("v", vt)],
			results=[Pointer(elem)],
			receiver=recv,
			line=11,
		),
		func("Front", [A.Return([sel("l", "front")], loc=at(17))], results=[Pointer(elem)], receiver=recv, line=16),
		func("Len", [A.Return([sel("l", "len")], loc=at(20))], results=[INT], receiver=recv, line=19),
	]
	return A.Package(path, [A.SourceFile("list.go", decls=decls)])


def omap_package(path: str = OMAP) -> A.Package:
	"""Ordered map keeping the last entry: KeyType and ValueType parameters."""
	kt = Named(path, "KeyType")
	vt = Named(path, "ValueType")
	m = Named(path, "Map")
	recv = A.Param("m", Pointer(m))
	decls: List[A.Decl] = [
		A.TypeDecl("KeyType", Interface(), loc=at(3)),
		A.TypeDecl("ValueType", Interface(), loc=at(4)),
		A.TypeDecl("Map", Struct((Field("lastKey", kt), Field("lastVal", vt), Field("size", INT))), loc=at(5)),
		func("New", [A.Return([A.AddrOf(A.Composite(m))])], results=[Pointer(m)], line=7),
		func(
			"Put",
			[
				A.Assign(sel("m", "lastKey"), ident("k"), loc=at(11)),
				A.Assign(sel("m", "lastVal"), ident("v"), loc=at(12)),
				A.Assign(sel("m", "size"), A.Binary("+", sel("m", "size"), lit(1)), loc=at(13)),
			],
			params=[A.Param("k", kt), A.Param("v", vt)],
			receiver=recv,
			line=10,
		),
		func("Get", [A.Return([sel("m", "lastVal")])], params=[A.Param("k", kt)], results=[vt], receiver=recv, line=15),
		func("LastKey", [A.Return([sel("m", "lastKey")])], results=[kt], receiver=recv, line=18),
	]
	return A.Package(path, [A.SourceFile("map.go", decls=decls)])


def guard_package(path: str = GUARD) -> A.Package:
	"""
	type Locker interface { Lock(); Unlock() }
	type Guard struct { l Locker }
	func New(l Locker) *Guard
	func (g *Guard) Do()
	"""
	locker = Named(path, "Locker")
	guard = Named(path, "Guard")
	recv = A.Param("g", Pointer(guard))
	decls: List[A.Decl] = [
		A.TypeDecl("Locker", Interface(methods=(MethodSig("Lock"), MethodSig("Unlock"))), loc=at(3)),
		A.TypeDecl("Guard", Struct((Field("l", locker),)), loc=at(5)),
		func(
			"New",
			[A.Return([A.AddrOf(A.Composite(guard, [("l", ident("l"))]))])],
			params=[A.Param("l", locker)],
			results=[Pointer(guard)],
			line=7,
		),
		func(
			"Do",
			[
				A.ExprStmt(call(sel(sel("g", "l"), "Lock")), loc=at(11)),
				A.ExprStmt(call(sel(sel("g", "l"), "Unlock")), loc=at(12)),
			],
			receiver=recv,
			line=10,
		),
	]
	return A.Package(path, [A.SourceFile("guard.go", decls=decls)])


def rwlock_package(path: str = RWLOCK) -> A.Package:
	"""
	type Locker interface { Lock(); Unlock() }
	type RWLocker interface { Locker; RLock() }
	"""
	locker = Named(path, "Locker")
	decls: List[A.Decl] = [
		A.TypeDecl("Locker", Interface(methods=(MethodSig("Lock"), MethodSig("Unlock"))), loc=at(3)),
		A.TypeDecl("RWLocker", Interface(methods=(MethodSig("RLock"),), embeds=(locker,)), loc=at(4)),
	]
	return A.Package(path, [A.SourceFile("rw.go", decls=decls)])


def mixing_package(path: str = MIXING) -> A.Package:
	"""`Item` accepts a string inside the package, so it is not used nominally."""
	item = Named(path, "Item")
	decls: List[A.Decl] = [
		A.TypeDecl("Item", Interface(), loc=at(3, file="mixing.go")),
		func("Wrap", [A.Return([ident("s")], loc=at(6, file="mixing.go"))], params=[A.Param("s", STRING)], results=[item], line=5),
	]
	test_decls: List[A.Decl] = [
		func("helper", [A.VarStmt("x", type=item, value=lit(1), loc=at(3))], line=2),
	]
	return A.Package(
		path,
		[A.SourceFile("mixing.go", decls=decls), A.SourceFile("mixing_test.go", decls=test_decls, is_test=True)],
	)


def strs_package(path: str = STRS) -> A.Package:
	"""No parameter types at all."""
	pair = Named(path, "Pair")
	decls: List[A.Decl] = [
		A.TypeDecl("Pair", Struct((Field("A", STRING), Field("B", STRING)))),
		func("Same", [A.Return([ident("s")])], params=[A.Param("s", STRING)], results=[STRING], line=4),
		func(
			"MakePair",
			[A.Return([A.Composite(pair, [("A", ident("a")), ("B", ident("b"))])])],
			params=[A.Param("a", STRING), A.Param("b", STRING)],
			results=[pair],
			line=7,
		),
	]
	return A.Package(path, [A.SourceFile("strs.go", decls=decls)])


def counter_package(path: str = COUNTER) -> A.Package:
	"""Package-level mutable counter bumped by `Track`."""
	vt = Named(path, "ValueType")
	decls: List[A.Decl] = [
		A.TypeDecl("ValueType", Interface(), loc=at(3)),
		A.VarDecl("count", type=INT, value=lit(0), loc=at(5)),
		A.VarDecl("Limit", type=INT, value=lit(10), const=True, loc=at(6)),
		func(
			"Track",
			[
				A.Assign(ident("count"), A.Binary("+", ident("count"), lit(1)), loc=at(9)),
				A.Return([ident("v")], loc=at(10)),
			],
			params=[A.Param("v", vt)],
			results=[vt],
			line=8,
		),
	]
	return A.Package(path, [A.SourceFile("counter.go", decls=decls)])


def binding_pair(x_path: str, y_path: str, *, cyclic: bool = False) -> List[A.Package]:
	"""
	Package X binds Y's parameter `F` to its own parameter `E`:

		import y "Y" (y.F => E)
		type E interface{}
		func Make(v E) *y.Box { return &y.Box{Item: v} }

	With `cyclic`, Y binds X's `E` to its own `F` as well.
	"""
	box = Named(y_path, "Box")
	x_decls: List[A.Decl] = [
		A.TypeDecl("E", Interface(), loc=at(3)),
		func(
			"Make",
			[A.Return([A.AddrOf(A.Composite(box, [("Item", ident("v"))]))])],
			params=[A.Param("v", Named(x_path, "E"))],
			results=[Pointer(box)],
			line=5,
		),
	]
	x = A.Package(x_path, [A.SourceFile("x.go", imports=imports(f'import y "{y_path}" (y.F => E)', "x.go"), decls=x_decls)])
	y_decls: List[A.Decl] = [
		A.TypeDecl("F", Interface(), loc=at(3)),
		A.TypeDecl("Box", Struct((Field("Item", Named(y_path, "F")),)), loc=at(4)),
	]
	y_imports = imports(f'import x "{x_path}" (x.E => F)', "y.go") if cyclic else []
	y = A.Package(y_path, [A.SourceFile("y.go", imports=y_imports, decls=y_decls)])
	return [x, y]


def chain_packages(prefix: str, length: int) -> List[A.Package]:
	"""`prefix/p0` .. `prefix/p{length-1}`; each binds the next one's `T` to its own `T`."""
	out: List[A.Package] = []
	for i in range(length):
		path = f"{prefix}/p{i}"
		decls: List[A.Decl] = [A.TypeDecl("T", Interface(), loc=at(2))]
		imps: List[A.ImportClause] = []
		if i + 1 < length:
			imps = imports(f'import next "{prefix}/p{i + 1}" (next.T => T)', f"p{i}.go")
		out.append(A.Package(path, [A.SourceFile(f"p{i}.go", imports=imps, decls=decls)]))
	return out


def standard_universe(*extra: A.Package) -> Universe:
	"""Universe holding every fixture package above plus `extra`."""
	return Universe(
		[
			list_package(),
			omap_package(),
			guard_package(),
			rwlock_package(),
			mixing_package(),
			strs_package(),
			counter_package(),
			*extra,
		]
	)


def scope_of(u: A.CompilationUnit) -> Scope:
	return Scope(package=u.package, imports={i.local_name: i.path for i in u.imports}, files=(u.file,))


@dataclass
class Engine:
	"""Resolver, cache and monomorphic transformer wired over one universe."""

	universe: Universe
	budget: int = DEFAULT_INSTANTIATION_BUDGET
	eligibility: EligibilityChecker = field(init=False)
	resolver: BindingResolver = field(init=False)
	cache: InstantiationCache = field(init=False)
	monomorphic: MonomorphicTransformer = field(init=False)

	def __post_init__(self) -> None:
		self.eligibility = EligibilityChecker(self.universe)
		self.resolver = BindingResolver(self.universe, self.eligibility)
		self.cache = InstantiationCache(budget=self.budget)
		self.monomorphic = MonomorphicTransformer(self.universe, self.resolver, self.cache)

	def resolve_all(self, u: A.CompilationUnit) -> List[ResolvedClause]:
		"""Register `u` with the universe and resolve each of its imports."""
		self.universe.register_unit(u)
		scope = scope_of(u)
		return [self.resolver.resolve(imp, scope) for imp in u.imports]

	def resolve(self, import_src: str, decls: Iterable[A.Decl] = ()) -> ResolvedClause:
		return self.resolve_all(unit("main", import_src, decls))[0]


__all__ = [
	"LIST",
	"OMAP",
	"GUARD",
	"RWLOCK",
	"MIXING",
	"STRS",
	"COUNTER",
	"at",
	"ident",
	"sel",
	"call",
	"lit",
	"imports",
	"func",
	"unit",
	"main_unit",
	"list_package",
	"omap_package",
	"guard_package",
	"rwlock_package",
	"mixing_package",
	"strs_package",
	"counter_package",
	"binding_pair",
	"chain_packages",
	"standard_universe",
	"scope_of",
	"Engine",
]
