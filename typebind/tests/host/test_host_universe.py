# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

import pytest

from typebind.bindc.host import ast as A
from typebind.bindc.host.protocol import Scope, UnresolvedType
from typebind.bindc.host.rewrite import copy_package
from typebind.bindc.host.types import EMPTY_INTERFACE, INT, STRING, MapOf, Named, Pointer, Slice, Struct
from typebind.test_support import LIST, list_package, standard_universe


def _main_scope() -> Scope:
	decls = [A.TypeDecl("point", Struct()), A.TypeDecl("Alias", INT, alias=True)]
	return Scope(package="main", imports={"list": LIST}, files=(A.SourceFile("main.go", decls=decls),))


def test_resolve_type_handles_every_constructor() -> None:
	universe = standard_universe()
	scope = _main_scope()
	expr = A.TypeExpr("map", ctor="map", args=(A.TypeExpr("string"), A.TypeExpr("*", ctor="pointer", args=(A.TypeExpr("point"),))))
	assert universe.resolve_type(scope, A.TypeExpr("int")) == INT
	assert universe.resolve_type(scope, A.TypeExpr("any")) == EMPTY_INTERFACE
	assert universe.resolve_type(scope, A.TypeExpr("List", qualifier="list")) == Named(LIST, "List")
	assert universe.resolve_type(scope, expr) == MapOf(STRING, Pointer(Named("main", "point")))
	assert universe.resolve_type(scope, A.TypeExpr("[]", ctor="slice", args=(A.TypeExpr("int"),))) == Slice(INT)


def test_resolve_type_reports_unknown_names() -> None:
	universe = standard_universe()
	scope = _main_scope()
	with pytest.raises(UnresolvedType, match="undefined package qualifier 'sync'"):
		universe.resolve_type(scope, A.TypeExpr("Locker", qualifier="sync"))
	with pytest.raises(UnresolvedType, match="undefined type list.Missing"):
		universe.resolve_type(scope, A.TypeExpr("Missing", qualifier="list"))
	with pytest.raises(UnresolvedType, match="undefined type nothing"):
		universe.resolve_type(scope, A.TypeExpr("nothing"))


def test_aliases_resolve_to_their_target() -> None:
	universe = standard_universe()
	scope = _main_scope()
	alias = universe.resolve_type(scope, A.TypeExpr("Alias"))
	assert alias == Named("main", "Alias")
	assert universe.resolve_alias(alias, scope=scope) == INT


def test_promote_export_registers_alias_once() -> None:
	universe = standard_universe()
	universe.register_unit(A.CompilationUnit("main", A.SourceFile("main.go", decls=[A.TypeDecl("point", Struct()), A.TypeDecl("Taken", Struct())])))
	assert universe.promote_export("main", "point", "Point") is True
	assert universe.promote_export("main", "point", "Point") is True
	assert universe.promote_export("main", "point", "Taken") is False
	assert universe.promote_export("main", "missing", "Missing") is False
	assert universe.promote_export("main", "point", "point") is False
	assert universe.resolve_alias(Named("main", "Point")) == Named("main", "point")


def test_copy_package_retargets_self_references_with_fresh_nodes() -> None:
	base = list_package()
	copy = copy_package(base, LIST + "@abc")
	assert copy.path == LIST + "@abc"
	assert copy.name == "list"
	elem = copy.type_decl("Element")
	assert elem is not base.type_decl("Element")
	assert elem.type.fields[0].type == Named(LIST + "@abc", "ValueType")
	push = [d for d in copy.decls() if isinstance(d, A.FuncDecl) and d.name == "PushBack"][0]
	assert push.receiver.type == Pointer(Named(LIST + "@abc", "List"))
	orig_push = [d for d in base.decls() if isinstance(d, A.FuncDecl) and d.name == "PushBack"][0]
	assert push.body[0] is not orig_push.body[0]
	assert orig_push.receiver.type == Pointer(Named(LIST, "List"))
