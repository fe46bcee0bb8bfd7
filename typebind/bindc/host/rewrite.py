# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Deep-copying type substitution over host syntax trees.

Every function returns fresh nodes even when no type changed, so a copied
package never shares mutable nodes with its source.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Callable, List, Optional

from . import ast as A
from .types import Named, Type, substitute

TypeFn = Callable[[Named], Optional[Type]]


def subst_type(t: Optional[Type], fn: TypeFn) -> Optional[Type]:
	if t is None:
		return None
	return substitute(t, fn)


def subst_expr(e: A.Expr, fn: TypeFn) -> A.Expr:
	if isinstance(e, A.Ident):
		return replace(e)
	if isinstance(e, A.Lit):
		return replace(e)
	if isinstance(e, A.Selector):
		return replace(e, x=subst_expr(e.x, fn))
	if isinstance(e, A.Call):
		return replace(e, fn=subst_expr(e.fn, fn), args=[subst_expr(a, fn) for a in e.args])
	if isinstance(e, A.Convert):
		return replace(e, type=substitute(e.type, fn), x=subst_expr(e.x, fn))
	if isinstance(e, A.TypeAssert):
		return replace(e, type=substitute(e.type, fn), x=subst_expr(e.x, fn))
	if isinstance(e, A.BoxedAddr):
		return replace(e, type=substitute(e.type, fn), x=subst_expr(e.x, fn))
	if isinstance(e, A.AddrOf):
		return replace(e, x=subst_expr(e.x, fn))
	if isinstance(e, A.Composite):
		return replace(e, type=substitute(e.type, fn), fields=[(n, subst_expr(v, fn)) for n, v in e.fields])
	if isinstance(e, A.Binary):
		return replace(e, left=subst_expr(e.left, fn), right=subst_expr(e.right, fn))
	if isinstance(e, A.Zero):
		return replace(e, type=substitute(e.type, fn))
	raise TypeError(f"unknown expression node {type(e).__name__}")


def subst_stmt(s: A.Stmt, fn: TypeFn) -> A.Stmt:
	if isinstance(s, A.VarStmt):
		return replace(
			s,
			type=subst_type(s.type, fn),
			value=subst_expr(s.value, fn) if s.value is not None else None,
		)
	if isinstance(s, A.Assign):
		return replace(s, target=subst_expr(s.target, fn), value=subst_expr(s.value, fn))
	if isinstance(s, A.ExprStmt):
		return replace(s, expr=subst_expr(s.expr, fn))
	if isinstance(s, A.Return):
		return replace(s, values=[subst_expr(v, fn) for v in s.values])
	raise TypeError(f"unknown statement node {type(s).__name__}")


def subst_decl(d: A.Decl, fn: TypeFn) -> A.Decl:
	if isinstance(d, A.TypeDecl):
		return replace(d, type=substitute(d.type, fn))
	if isinstance(d, A.FuncDecl):
		receiver = None
		if d.receiver is not None:
			receiver = A.Param(d.receiver.name, substitute(d.receiver.type, fn))
		return replace(
			d,
			params=[A.Param(p.name, substitute(p.type, fn)) for p in d.params],
			results=[substitute(r, fn) for r in d.results],
			body=[subst_stmt(s, fn) for s in d.body],
			receiver=receiver,
		)
	if isinstance(d, A.VarDecl):
		return replace(
			d,
			type=subst_type(d.type, fn),
			value=subst_expr(d.value, fn) if d.value is not None else None,
		)
	raise TypeError(f"unknown declaration node {type(d).__name__}")


def subst_file(f: A.SourceFile, fn: TypeFn, *, imports: Optional[List[A.ImportClause]] = None) -> A.SourceFile:
	return A.SourceFile(
		name=f.name,
		imports=list(f.imports if imports is None else imports),
		decls=[subst_decl(d, fn) for d in f.decls],
		is_test=f.is_test,
	)


def retarget(old_path: str, new_path: str) -> TypeFn:
	"""Type function moving self-references of `old_path` to `new_path`."""

	def fn(n: Named) -> Optional[Type]:
		if n.package == old_path:
			return Named(new_path, n.name)
		return None

	return fn


def copy_package(pkg: A.Package, new_path: str, *, include_tests: bool = True, fn: Optional[TypeFn] = None) -> A.Package:
	"""Copy `pkg` under `new_path`, retargeting self-references (plus `fn`, applied after)."""
	move = retarget(pkg.path, new_path)

	def combined(n: Named) -> Optional[Type]:
		moved = move(n)
		target = moved if isinstance(moved, Named) else n
		if fn is not None:
			extra = fn(target)
			if extra is not None:
				return extra
		return moved

	files = [subst_file(f, combined) for f in pkg.source_files(include_tests=include_tests)]
	return A.Package(path=new_path, files=files, name=pkg.name)


__all__ = [
	"TypeFn",
	"subst_type",
	"subst_expr",
	"subst_stmt",
	"subst_decl",
	"subst_file",
	"retarget",
	"copy_package",
]
