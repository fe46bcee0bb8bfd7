# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Ordinary type checker of the reference host language.

Rules (a deliberately small, Go-like subset):
- assignability: identical types; untyped constants to basic types of a
  compatible kind; any value to an interface type it implements; values whose
  underlying types are identical when at least one side is unnamed;
- interface satisfaction is structural (method name + identical signature);
- conversions additionally allow identical underlying types and numeric pairs;
  interface values are narrowed only by type assertion;
- named types used across packages must be exported.

The checker keeps typing after an error so callers (the polymorphic lowering)
can use the recorded static and expected types of an ill-typed tree.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from typebind.bindc.core.diagnostics import Diagnostic
from typebind.bindc.core.span import Span

from . import ast as A
from .protocol import CheckResult
from .symbols import SymbolTable
from .types import (
	BOOL,
	NUMERIC_BASICS,
	VOID,
	Basic,
	Func,
	Interface,
	Named,
	Pointer,
	ResultTuple,
	Struct,
	Type,
	Untyped,
	describe,
	is_exported,
	named_refs,
)

INVALID = Basic("invalid type")

_COMPARISON_OPS = frozenset({"==", "!=", "<", "<=", ">", ">="})
_LOGICAL_OPS = frozenset({"&&", "||"})
_ARITH_OPS = frozenset({"+", "-", "*", "/", "%"})


def _lit_type(value: object) -> Type:
	if isinstance(value, bool):
		return Untyped("bool")
	if isinstance(value, int):
		return Untyped("int")
	if isinstance(value, float):
		return Untyped("float")
	if isinstance(value, str):
		return Untyped("string")
	return INVALID


class Checker:
	"""Checks the files of one package against a symbol table."""

	def __init__(self, symbols: SymbolTable, package: str, files: Iterable[A.SourceFile]) -> None:
		self.symbols = symbols
		self.package = package
		self.files = list(files)
		self.result = CheckResult()
		self.funcs: Dict[str, A.FuncDecl] = {}
		self.vars: Dict[str, A.VarDecl] = {}
		self._var_types: Dict[str, Type] = {}
		self._var_in_progress: set[str] = set()
		for f in self.symbols.package_files(package):
			for d in f.decls:
				if isinstance(d, A.FuncDecl) and d.receiver is None:
					self.funcs.setdefault(d.name, d)
				elif isinstance(d, A.VarDecl):
					self.vars.setdefault(d.name, d)
		self._imports: Dict[str, str] = {}
		self._scopes: List[Dict[str, Type]] = []
		self._loc: Optional[A.Located] = None
		self._file: Optional[str] = None

	# --- entry points ------------------------------------------------------

	def check(self) -> CheckResult:
		for f in self.files:
			self.check_file(f)
		return self.result

	def check_file(self, f: A.SourceFile) -> None:
		self._file = f.name
		self._imports = {}
		for imp in f.imports:
			self._loc = imp.loc
			if not self.symbols.has_package(imp.path):
				self._error(f"unknown package '{imp.path}'")
				continue
			self._imports[imp.local_name] = imp.path
		seen_types: Dict[str, A.Located | None] = {}
		for d in f.decls:
			self._loc = d.loc
			if isinstance(d, A.TypeDecl):
				if d.name in seen_types:
					self._error(f"type {d.name} redeclared in this block")
				seen_types[d.name] = d.loc
				self._check_type_decl(d)
			elif isinstance(d, A.VarDecl):
				self._check_var_decl(d)
			elif isinstance(d, A.FuncDecl):
				self._check_func(d)

	# --- diagnostics -------------------------------------------------------

	def _error(self, message: str, loc: Optional[A.Located] = None) -> None:
		where = loc or self._loc
		self.result.diagnostics.append(
			Diagnostic(message=message, phase="typecheck", severity="error", span=Span.from_loc(where, file=self._file))
		)

	# --- declarations ------------------------------------------------------

	def _check_type(self, t: Type) -> None:
		for n in named_refs(t):
			if self.symbols.type_decl(n) is None:
				self._error(f"undefined type {describe(n)}")
			elif not self.symbols.visible_from(n, self.package):
				self._error(f"type {n.name} is not exported by package {n.package}")

	def _check_type_decl(self, d: A.TypeDecl) -> None:
		self._check_type(d.type)
		if isinstance(d.type, Interface):
			for e in d.type.embeds:
				if self.symbols.type_decl(e) is not None and not self.symbols.is_interface(e):
					self._error(f"interface contains type constraints: {describe(e)} is not an interface")

	def _var_type(self, name: str) -> Type:
		if name in self._var_types:
			return self._var_types[name]
		d = self.vars[name]
		if d.type is not None:
			self._var_types[name] = d.type
			return d.type
		if name in self._var_in_progress or d.value is None:
			self._error(f"initialization cycle or missing type for {name}", d.loc)
			return INVALID
		self._var_in_progress.add(name)
		saved_scopes, self._scopes = self._scopes, []
		t = self._single(self._expr(d.value), d.value)
		self._scopes = saved_scopes
		self._var_in_progress.discard(name)
		t = t.default() if isinstance(t, Untyped) else t
		self._var_types[name] = t
		return t

	def _check_var_decl(self, d: A.VarDecl) -> None:
		if d.type is not None:
			self._check_type(d.type)
		if d.value is None:
			return
		if d.type is None:
			self._var_type(d.name)
			return
		vt = self._single(self._expr(d.value, expected=d.type), d.value)
		self._require_assignable(vt, d.type, d.value, f"in variable declaration of {d.name}")

	def _check_func(self, d: A.FuncDecl) -> None:
		scope: Dict[str, Type] = {}
		if d.receiver is not None:
			self._check_type(d.receiver.type)
			if d.receiver.name:
				scope[d.receiver.name] = d.receiver.type
		for p in d.params:
			self._check_type(p.type)
			if p.name in scope:
				self._error(f"duplicate argument {p.name}")
			scope[p.name] = p.type
		for r in d.results:
			self._check_type(r)
		self._scopes = [scope]
		for s in d.body:
			self._check_stmt(s, d)
		self._scopes = []

	# --- statements --------------------------------------------------------

	def _check_stmt(self, s: A.Stmt, fn: A.FuncDecl) -> None:
		if s.loc is not None:
			self._loc = s.loc
		if isinstance(s, A.VarStmt):
			if s.type is not None:
				self._check_type(s.type)
			declared = s.type
			if s.value is not None:
				vt = self._single(self._expr(s.value, expected=s.type), s.value)
				if declared is None:
					declared = vt.default() if isinstance(vt, Untyped) else vt
				else:
					self._require_assignable(vt, declared, s.value, "in assignment")
			if declared is None:
				self._error(f"missing type or value for {s.name}")
				declared = INVALID
			if s.name in self._scopes[-1]:
				self._error(f"{s.name} redeclared in this block")
			self._scopes[-1][s.name] = declared
		elif isinstance(s, A.Assign):
			tt = self._single(self._expr(s.target), s.target)
			if not self._addressable(s.target):
				self._error("cannot assign to non-addressable expression")
			vt = self._single(self._expr(s.value, expected=tt), s.value)
			self._require_assignable(vt, tt, s.value, "in assignment")
		elif isinstance(s, A.ExprStmt):
			self._expr(s.expr)
			if not isinstance(s.expr, A.Call):
				self._error("expression evaluated but not used")
		elif isinstance(s, A.Return):
			if len(s.values) != len(fn.results):
				self._error(f"wrong number of return values (have {len(s.values)}, want {len(fn.results)})")
			for v, want in zip(s.values, fn.results):
				vt = self._single(self._expr(v, expected=want), v)
				self._require_assignable(vt, want, v, "in return statement")
			for v in s.values[len(fn.results) :]:
				self._expr(v)

	# --- relations ---------------------------------------------------------

	def assignable(self, v: Type, t: Type) -> bool:
		if v is INVALID or t is INVALID:
			return True
		if self.symbols.identical(v, t):
			return True
		ut = self.symbols.underlying(t)
		if isinstance(v, Untyped):
			if isinstance(ut, Basic):
				return _untyped_fits(v.kind, ut.name)
			if isinstance(ut, Interface):
				return not self.symbols.interface_methods(ut)
			return False
		if isinstance(ut, Interface):
			return self.symbols.implements(v, t)
		uv = self.symbols.underlying(v)
		named_v = isinstance(self.symbols.resolve_alias(v), Named)
		named_t = isinstance(self.symbols.resolve_alias(t), Named)
		if not (named_v and named_t) and self.symbols.identical(uv, ut):
			return True
		return False

	def convertible(self, v: Type, t: Type) -> bool:
		if self.assignable(v, t):
			return True
		uv = self.symbols.underlying(v)
		ut = self.symbols.underlying(t)
		if isinstance(uv, Interface):
			return False
		if isinstance(v, Untyped):
			return isinstance(ut, Basic) and _untyped_converts(v.kind, ut.name)
		if self.symbols.identical(uv, ut):
			return True
		return isinstance(uv, Basic) and isinstance(ut, Basic) and uv.name in NUMERIC_BASICS and ut.name in NUMERIC_BASICS

	def _require_assignable(self, v: Type, t: Type, node: A.Expr, context: str) -> None:
		if self.assignable(v, t):
			return
		reason = ""
		gaps = self.symbols.missing_methods(v, t) if self.symbols.is_interface(t) else []
		if gaps:
			reason = f" ({describe(v)} does not implement {describe(t)}: {gaps[0].describe()})"
		self._error(f"cannot use value of type {describe(v)} as type {describe(t)} {context}{reason}", node.loc)

	# --- expressions -------------------------------------------------------

	def _lookup_local(self, name: str) -> Optional[Type]:
		for scope in reversed(self._scopes):
			if name in scope:
				return scope[name]
		return None

	def _addressable(self, e: A.Expr) -> bool:
		if isinstance(e, A.Ident):
			return self._lookup_local(e.name) is not None or e.name in self.vars
		if isinstance(e, A.Selector):
			if isinstance(e.x, A.Ident) and self._is_import(e.x.name):
				return True
			xt = self.result.type_of(e.x)
			if xt is not None and isinstance(self.symbols.underlying(xt), Pointer):
				return True
			return self._addressable(e.x)
		return isinstance(e, A.Composite)

	def _is_import(self, name: str) -> bool:
		return name in self._imports and self._lookup_local(name) is None

	def _single(self, t: Type, node: A.Expr) -> Type:
		if isinstance(t, ResultTuple):
			if not t.items:
				self._error("call with no value used as value", node.loc)
			else:
				self._error("multiple-value call in single-value context", node.loc)
			return INVALID
		return t

	def _record(self, e: A.Expr, t: Type, expected: Optional[Type]) -> Type:
		key = id(e)
		self.result.types[key] = t
		self.result.nodes[key] = e
		if expected is not None:
			self.result.expected[key] = expected
		return t

	def _expr(self, e: A.Expr, *, expected: Optional[Type] = None) -> Type:
		if e.loc is not None:
			self._loc = e.loc
		return self._record(e, self._expr_inner(e), expected)

	def _expr_inner(self, e: A.Expr) -> Type:
		if isinstance(e, A.Lit):
			t = _lit_type(e.value)
			if t is INVALID:
				self._error(f"invalid constant {e.value!r}")
			return t
		if isinstance(e, A.Ident):
			local = self._lookup_local(e.name)
			if local is not None:
				return local
			if e.name in self.vars:
				return self._var_type(e.name)
			if e.name in self.funcs:
				return _func_type(self.funcs[e.name])
			if e.name in self._imports:
				self._error(f"use of package {e.name} without selector")
				return INVALID
			self._error(f"undefined: {e.name}")
			return INVALID
		if isinstance(e, A.Selector):
			return self._selector(e)
		if isinstance(e, A.Call):
			return self._call(e)
		if isinstance(e, A.Convert):
			self._check_type(e.type)
			xt = self._single(self._expr(e.x), e.x)
			if not self.convertible(xt, e.type):
				self._error(f"cannot convert value of type {describe(xt)} to type {describe(e.type)}")
			return e.type
		if isinstance(e, A.TypeAssert):
			self._check_type(e.type)
			xt = self._single(self._expr(e.x), e.x)
			self._check_assertion(xt, e.type)
			return e.type
		if isinstance(e, A.AddrOf):
			xt = self._single(self._expr(e.x), e.x)
			if not self._addressable(e.x):
				self._error("cannot take the address of a non-addressable expression")
			return Pointer(xt)
		if isinstance(e, A.BoxedAddr):
			self._check_type(e.type)
			xt = self._single(self._expr(e.x), e.x)
			if not self._addressable(e.x):
				self._error("cannot take the address of a non-addressable expression")
			self._check_assertion(xt, e.type)
			return Pointer(e.type)
		if isinstance(e, A.Composite):
			return self._composite(e)
		if isinstance(e, A.Binary):
			return self._binary(e)
		if isinstance(e, A.Zero):
			self._check_type(e.type)
			return e.type
		raise TypeError(f"unknown expression node {type(e).__name__}")

	def _check_assertion(self, xt: Type, t: Type) -> None:
		if xt is INVALID:
			return
		if not self.symbols.is_interface(xt):
			self._error(f"invalid type assertion: {describe(xt)} is not an interface")
			return
		if self.symbols.is_interface(t):
			return
		gaps = self.symbols.missing_methods(t, xt)
		if gaps:
			self._error(f"impossible type assertion: {describe(t)} does not implement {describe(xt)} ({gaps[0].describe()})")

	def _selector(self, e: A.Selector) -> Type:
		if isinstance(e.x, A.Ident) and self._is_import(e.x.name):
			path = self._imports[e.x.name]
			return self._package_member(path, e.name)
		xt = self._single(self._expr(e.x), e.x)
		if xt is INVALID:
			return INVALID
		st = self.symbols.struct_of(xt)
		if st is not None:
			f = st.field(e.name)
			if f is not None:
				return f.type
		methods = self.symbols.method_set(xt)
		if e.name in methods:
			return methods[e.name]
		self._error(f"{describe(xt)}.{e.name} undefined (type has no field or method {e.name})")
		return INVALID

	def _package_member(self, path: str, name: str) -> Type:
		for f in self.symbols.package_files(path):
			for d in f.decls:
				if d.name != name:
					continue
				if isinstance(d, A.FuncDecl) and d.receiver is None:
					if not is_exported(name):
						self._error(f"cannot refer to unexported name {name} of package {path}")
					return _func_type(d)
				if isinstance(d, A.VarDecl):
					if not is_exported(name):
						self._error(f"cannot refer to unexported name {name} of package {path}")
					return d.type if d.type is not None else _foreign_var_type(self.symbols, path, d)
		self._error(f"undefined: {path}.{name}")
		return INVALID

	def _call(self, e: A.Call) -> Type:
		ft = self._single(self._expr(e.fn), e.fn)
		if ft is INVALID:
			for a in e.args:
				self._expr(a)
			return INVALID
		uf = self.symbols.underlying(ft)
		if not isinstance(uf, Func):
			self._error(f"cannot call non-function of type {describe(ft)}")
			for a in e.args:
				self._expr(a)
			return INVALID
		if len(e.args) != len(uf.params):
			self._error(f"wrong argument count in call (have {len(e.args)}, want {len(uf.params)})")
		for a, p in zip(e.args, uf.params):
			at = self._single(self._expr(a, expected=p), a)
			self._require_assignable(at, p, a, "in argument")
		for a in e.args[len(uf.params) :]:
			self._expr(a)
		if not uf.results:
			return VOID
		if len(uf.results) == 1:
			return uf.results[0]
		return ResultTuple(tuple(uf.results))

	def _composite(self, e: A.Composite) -> Type:
		self._check_type(e.type)
		st = self.symbols.underlying(e.type)
		if not isinstance(st, Struct):
			self._error(f"invalid composite literal type {describe(e.type)}")
			for _, v in e.fields:
				self._expr(v)
			return e.type
		for name, v in e.fields:
			f = st.field(name)
			if f is None:
				self._error(f"unknown field {name} in struct literal of type {describe(e.type)}")
				self._expr(v)
				continue
			vt = self._single(self._expr(v, expected=f.type), v)
			self._require_assignable(vt, f.type, v, f"in struct literal field {name}")
		return e.type

	def _binary(self, e: A.Binary) -> Type:
		lt = self._single(self._expr(e.left), e.left)
		rt = self._single(self._expr(e.right), e.right)
		if lt is INVALID or rt is INVALID:
			return INVALID
		if isinstance(lt, Untyped) and not isinstance(rt, Untyped):
			if not self.assignable(lt, rt):
				self._error(f"mismatched types {describe(lt)} and {describe(rt)}")
				return INVALID
			lt = rt
		elif isinstance(rt, Untyped) and not isinstance(lt, Untyped):
			if not self.assignable(rt, lt):
				self._error(f"mismatched types {describe(lt)} and {describe(rt)}")
				return INVALID
			rt = lt
		elif isinstance(lt, Untyped) and isinstance(rt, Untyped):
			if lt.kind != rt.kind and {lt.kind, rt.kind} != {"int", "float"}:
				self._error(f"mismatched types {describe(lt)} and {describe(rt)}")
				return INVALID
		elif not self.symbols.identical(lt, rt):
			self._error(f"mismatched types {describe(lt)} and {describe(rt)}")
			return INVALID
		if e.op in _COMPARISON_OPS:
			return Untyped("bool") if isinstance(lt, Untyped) else BOOL
		if e.op in _LOGICAL_OPS:
			ul = lt if isinstance(lt, Untyped) else self.symbols.underlying(lt)
			if ul not in (BOOL, Untyped("bool")):
				self._error(f"operator {e.op} not defined on {describe(lt)}")
			return lt
		if e.op in _ARITH_OPS:
			ul = self.symbols.underlying(lt) if not isinstance(lt, Untyped) else lt
			ok = (isinstance(ul, Untyped) and ul.kind in ("int", "float", "string")) or (
				isinstance(ul, Basic) and (ul.name in NUMERIC_BASICS or (ul.name == "string" and e.op == "+"))
			)
			if isinstance(ul, Untyped) and ul.kind == "string" and e.op != "+":
				ok = False
			if not ok:
				self._error(f"operator {e.op} not defined on {describe(lt)}")
			if isinstance(lt, Untyped) and isinstance(rt, Untyped) and "float" in (lt.kind, rt.kind):
				return Untyped("float")
			return lt
		self._error(f"unknown operator {e.op}")
		return INVALID


def _func_type(d: A.FuncDecl) -> Func:
	return Func(tuple(p.type for p in d.params), tuple(d.results))


def _foreign_var_type(symbols: SymbolTable, path: str, d: A.VarDecl) -> Type:
	sub = Checker(symbols, path, [])
	return sub._var_type(d.name)


def _untyped_fits(kind: str, basic: str) -> bool:
	if kind == "int":
		return basic in NUMERIC_BASICS
	if kind == "float":
		return basic == "float64"
	if kind == "string":
		return basic == "string"
	if kind == "bool":
		return basic == "bool"
	return False


def _untyped_converts(kind: str, basic: str) -> bool:
	if kind in ("int", "float"):
		return basic in NUMERIC_BASICS
	return _untyped_fits(kind, basic)


def check_package(symbols: SymbolTable, package: A.Package) -> CheckResult:
	return Checker(symbols, package.path, package.files).check()


def check_files(symbols: SymbolTable, package: str, files: Iterable[A.SourceFile]) -> CheckResult:
	return Checker(symbols, package, files).check()


__all__ = ["Checker", "INVALID", "check_package", "check_files"]
