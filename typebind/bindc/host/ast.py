# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Already-built syntax tree of the reference host language.

Type positions hold resolved descriptors (`host.types`); only the concrete side
of a binding clause is still an unresolved `TypeExpr`, because it has to be
resolved in the importing unit's scope.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, Iterator, List, Optional, Tuple

from .types import Type


@dataclass(frozen=True)
class Located:
	line: int
	column: int = 1
	file: Optional[str] = None


# --- expressions -----------------------------------------------------------


class Expr:
	loc: Optional[Located]


@dataclass(eq=False)
class Ident(Expr):
	name: str
	loc: Optional[Located] = None


@dataclass(eq=False)
class Lit(Expr):
	"""Untyped constant (int, float, str or bool Python value)."""

	value: object
	loc: Optional[Located] = None


@dataclass(eq=False)
class Selector(Expr):
	"""`x.name`: package member, struct field or method value."""

	x: Expr
	name: str
	loc: Optional[Located] = None


@dataclass(eq=False)
class Call(Expr):
	fn: Expr
	args: List[Expr] = field(default_factory=list)
	loc: Optional[Located] = None


@dataclass(eq=False)
class Convert(Expr):
	"""Explicit conversion `T(x)`."""

	type: Type
	x: Expr
	loc: Optional[Located] = None


@dataclass(eq=False)
class TypeAssert(Expr):
	"""Checked conversion from an interface value `x.(T)`."""

	x: Expr
	type: Type
	loc: Optional[Located] = None


@dataclass(eq=False)
class AddrOf(Expr):
	x: Expr
	loc: Optional[Located] = None


@dataclass(eq=False)
class BoxedAddr(Expr):
	"""
	Reflective address of an interface-typed location viewed as `*type`.

	Only the polymorphic lowering emits this node (address-of fallback policy).
	"""

	x: Expr
	type: Type
	loc: Optional[Located] = None


@dataclass(eq=False)
class Composite(Expr):
	type: Type
	fields: List[Tuple[str, Expr]] = field(default_factory=list)
	loc: Optional[Located] = None


@dataclass(eq=False)
class Binary(Expr):
	op: str
	left: Expr
	right: Expr
	loc: Optional[Located] = None


@dataclass(eq=False)
class Zero(Expr):
	type: Type
	loc: Optional[Located] = None


# --- statements ------------------------------------------------------------


class Stmt:
	loc: Optional[Located]


@dataclass(eq=False)
class VarStmt(Stmt):
	"""`var name T = value` (type and value optional, not both absent)."""

	name: str
	type: Optional[Type] = None
	value: Optional[Expr] = None
	loc: Optional[Located] = None


@dataclass(eq=False)
class Assign(Stmt):
	target: Expr
	value: Expr
	loc: Optional[Located] = None


@dataclass(eq=False)
class ExprStmt(Stmt):
	expr: Expr
	loc: Optional[Located] = None


@dataclass(eq=False)
class Return(Stmt):
	values: List[Expr] = field(default_factory=list)
	loc: Optional[Located] = None


# --- declarations ----------------------------------------------------------


@dataclass(frozen=True)
class Param:
	name: str
	type: Type


class Decl:
	name: str
	loc: Optional[Located]


@dataclass(eq=False)
class TypeDecl(Decl):
	name: str
	type: Type
	alias: bool = False
	loc: Optional[Located] = None


@dataclass(eq=False)
class FuncDecl(Decl):
	name: str
	params: List[Param] = field(default_factory=list)
	results: List[Type] = field(default_factory=list)
	body: List[Stmt] = field(default_factory=list)
	receiver: Optional[Param] = None
	loc: Optional[Located] = None
	# Set on methods synthesized by the eligibility check; names the embedded
	# interface a stub forwards for (None for the type's own methods).
	forwards_for: Optional[str] = None


@dataclass(eq=False)
class VarDecl(Decl):
	name: str
	type: Optional[Type] = None
	value: Optional[Expr] = None
	const: bool = False
	loc: Optional[Located] = None


# --- imports, files, packages ----------------------------------------------


@dataclass(frozen=True)
class TypeExpr:
	"""Unresolved type expression (concrete side of a binding)."""

	name: str
	qualifier: Optional[str] = None
	ctor: str = "named"  # named | pointer | slice | map
	args: Tuple["TypeExpr", ...] = ()

	def __str__(self) -> str:
		if self.ctor == "pointer":
			return f"*{self.args[0]}"
		if self.ctor == "slice":
			return f"[]{self.args[0]}"
		if self.ctor == "map":
			return f"map[{self.args[0]}]{self.args[1]}"
		return f"{self.qualifier}.{self.name}" if self.qualifier else self.name


@dataclass(frozen=True)
class BindingSpec:
	"""One `param => type` pair as written at the import site."""

	param: str
	type_expr: TypeExpr
	qualifier: Optional[str] = None
	loc: Optional[Located] = None

	def param_text(self) -> str:
		return f"{self.qualifier}.{self.param}" if self.qualifier else self.param


@dataclass(frozen=True)
class ImportClause:
	path: str
	alias: Optional[str] = None
	bindings: Tuple[BindingSpec, ...] = ()
	# True when a (possibly empty) binding list was written at all.
	has_bindings: bool = False
	loc: Optional[Located] = None

	@property
	def local_name(self) -> str:
		return self.alias or package_name_of(self.path)

	@property
	def is_bound(self) -> bool:
		return self.has_bindings or bool(self.bindings)


@dataclass(eq=False)
class SourceFile:
	name: str
	imports: List[ImportClause] = field(default_factory=list)
	decls: List[Decl] = field(default_factory=list)
	is_test: bool = False


@dataclass(eq=False)
class Package:
	"""
	A parsed package. Immutable after construction except for the eligible
	parameter set, which the eligibility checker publishes once.
	"""

	path: str
	files: List[SourceFile] = field(default_factory=list)
	name: str = ""
	_eligible: Optional[FrozenSet[str]] = field(default=None, init=False, repr=False)
	_lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

	def __post_init__(self) -> None:
		if not self.name:
			self.name = package_name_of(self.path)

	def source_files(self, *, include_tests: bool = True) -> List[SourceFile]:
		return [f for f in self.files if include_tests or not f.is_test]

	def decls(self, *, include_tests: bool = True) -> Iterator[Decl]:
		for f in self.source_files(include_tests=include_tests):
			yield from f.decls

	def imports(self, *, include_tests: bool = True) -> Iterator[ImportClause]:
		for f in self.source_files(include_tests=include_tests):
			yield from f.imports

	def type_decl(self, name: str) -> Optional[TypeDecl]:
		for d in self.decls():
			if isinstance(d, TypeDecl) and d.name == name:
				return d
		return None

	def type_decls(self, *, include_tests: bool = True) -> List[TypeDecl]:
		return [d for d in self.decls(include_tests=include_tests) if isinstance(d, TypeDecl)]

	def mutable_state(self) -> List[VarDecl]:
		"""Package-level variables (non-test files) that are not constants."""
		return [d for d in self.decls(include_tests=False) if isinstance(d, VarDecl) and not d.const]

	@property
	def eligible_params(self) -> Optional[FrozenSet[str]]:
		return self._eligible

	def publish_eligible(self, names: Iterable[str]) -> FrozenSet[str]:
		"""Publish the derived eligible set; later calls return the first value."""
		with self._lock:
			if self._eligible is None:
				self._eligible = frozenset(names)
			return self._eligible


@dataclass(eq=False)
class CompilationUnit:
	"""One source file compiled as part of package `package`."""

	package: str
	file: SourceFile

	@property
	def imports(self) -> List[ImportClause]:
		return self.file.imports


def package_name_of(path: str) -> str:
	base = path.rsplit("/", 1)[-1]
	return base.split("@", 1)[0]


def iter_stmt_exprs(stmt: Stmt) -> Iterator[Expr]:
	"""Top-level expressions of a statement."""
	if isinstance(stmt, VarStmt):
		if stmt.value is not None:
			yield stmt.value
	elif isinstance(stmt, Assign):
		yield stmt.target
		yield stmt.value
	elif isinstance(stmt, ExprStmt):
		yield stmt.expr
	elif isinstance(stmt, Return):
		yield from stmt.values


def iter_subexprs(expr: Expr) -> Iterator[Expr]:
	"""Pre-order walk over an expression tree."""
	yield expr
	for child in child_exprs(expr):
		yield from iter_subexprs(child)


def child_exprs(expr: Expr) -> List[Expr]:
	if isinstance(expr, Selector):
		return [expr.x]
	if isinstance(expr, Call):
		return [expr.fn, *expr.args]
	if isinstance(expr, (Convert, TypeAssert, AddrOf, BoxedAddr)):
		return [expr.x]
	if isinstance(expr, Composite):
		return [v for _, v in expr.fields]
	if isinstance(expr, Binary):
		return [expr.left, expr.right]
	return []


__all__ = [
	"Located",
	"Expr",
	"Ident",
	"Lit",
	"Selector",
	"Call",
	"Convert",
	"TypeAssert",
	"AddrOf",
	"BoxedAddr",
	"Composite",
	"Binary",
	"Zero",
	"Stmt",
	"VarStmt",
	"Assign",
	"ExprStmt",
	"Return",
	"Param",
	"Decl",
	"TypeDecl",
	"FuncDecl",
	"VarDecl",
	"TypeExpr",
	"BindingSpec",
	"ImportClause",
	"SourceFile",
	"Package",
	"CompilationUnit",
	"package_name_of",
	"iter_stmt_exprs",
	"iter_subexprs",
	"child_exprs",
]
