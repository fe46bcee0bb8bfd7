# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

import pytest

from typebind.bindc.core.config import ADDRESS_OF_REFLECT
from typebind.bindc.core.diagnostics import DiagnosticKind
from typebind.bindc.host import ast as A
from typebind.bindc.host.types import INT, STRING, Named
from typebind.bindc.transform import PolymorphicTransformer
from typebind.test_support import LIST, Engine, call, ident, lit, main_unit, sel, standard_universe

LIST_INT = 'import "container/list" (list.ValueType => int)'
VALUE_TYPE = Named(LIST, "ValueType")


def _lower(body, *, policy: str = "reject", import_src: str = LIST_INT):
	engine = Engine(standard_universe())
	u = main_unit(import_src, body)
	resolved = engine.resolve_all(u)
	pt = PolymorphicTransformer(engine.universe, address_of_policy=policy)
	return u, pt.transform(u, resolved)


def _new_list() -> A.VarStmt:
	return A.VarStmt("l", value=call(sel("list", "New")))


def _front_value() -> A.Selector:
	return sel(call(sel("l", "Front")), "Value")


def _main_body(result) -> list:
	return result.unit.file.decls[-1].body


def test_import_keeps_package_and_drops_clause() -> None:
	u, result = _lower([_new_list()])
	(imp,) = result.unit.imports
	assert imp.path == LIST
	assert not imp.is_bound
	assert u.imports[0].is_bound
	assert result.ok


def test_mismatched_insert_compiles_under_conversion_lowering() -> None:
	_, result = _lower([_new_list(), A.ExprStmt(call(sel("l", "PushBack"), lit("hello", line=12)))])
	assert result.ok
	push = _main_body(result)[1].expr
	converted = push.args[0]
	assert isinstance(converted, A.Convert) and converted.type == VALUE_TYPE
	assert isinstance(converted.x, A.Lit) and converted.x.value == "hello"


def test_later_explicit_conversion_is_a_type_error() -> None:
	body = [
		_new_list(),
		A.ExprStmt(call(sel("l", "PushBack"), lit("hello"))),
		A.VarStmt("s", value=A.Convert(STRING, _front_value())),
	]
	_, result = _lower(body)
	assert not result.ok
	(diag,) = result.diagnostics
	assert diag.code == DiagnosticKind.TYPE_ERROR
	assert diag.message == "cannot convert value of type int to type string"
	assert diag.notes == ["in main.go after conversion insertion"]


def test_bound_results_get_checked_conversions() -> None:
	body = [_new_list(), A.VarStmt("n", type=INT, value=_front_value())]
	_, result = _lower(body)
	assert result.ok
	value = _main_body(result)[1].value
	assert isinstance(value, A.TypeAssert)
	assert value.type == INT


def test_rewriting_repeats_until_inferred_locals_settle() -> None:
	body = [
		_new_list(),
		A.VarStmt("v", value=_front_value()),
		A.ExprStmt(call(sel("l", "PushBack"), ident("v"))),
	]
	_, result = _lower(body)
	assert result.ok
	assert result.passes == 3
	v, push = _main_body(result)[1], _main_body(result)[2].expr
	assert isinstance(v.value, A.TypeAssert)
	assert isinstance(push.args[0], A.Convert)
	assert push.args[0].type == VALUE_TYPE
	assert push.args[0].x.name == "v"


def test_conversions_follow_the_import_a_value_comes_from() -> None:
	import_src = '\n'.join(
		[
			'import il "container/list" (il.ValueType => int);',
			'import sl "container/list" (sl.ValueType => string)',
		]
	)
	body = [
		A.VarStmt("a", value=call(sel("il", "New"))),
		A.ExprStmt(call(sel("a", "PushBack"), lit(1))),
		A.VarStmt("n", type=INT, value=sel(call(sel("a", "Front")), "Value")),
		A.VarStmt("b", value=call(sel("sl", "New"))),
		A.ExprStmt(call(sel("b", "PushBack"), lit("x"))),
		A.VarStmt("s", type=STRING, value=sel(call(sel("b", "Front")), "Value")),
	]
	_, result = _lower(body, import_src=import_src)
	assert result.ok, [str(d) for d in result.diagnostics]
	assert [imp.local_name for imp in result.unit.imports] == ["il", "sl"]
	n, s = _main_body(result)[2].value, _main_body(result)[5].value
	assert isinstance(n, A.TypeAssert) and n.type == INT
	assert isinstance(s, A.TypeAssert) and s.type == STRING


def test_unit_without_bindings_is_unchanged() -> None:
	_, result = _lower([_new_list()], import_src='import "container/list"')
	assert result.passes == 0
	assert result.ok


def _address_body() -> list:
	return [
		_new_list(),
		A.VarStmt("v", value=_front_value()),
		A.ExprStmt(call(sel("l", "PushBack"), ident("v"))),
		A.VarStmt("e", value=call(sel("l", "Front"))),
		A.VarStmt("p", value=A.AddrOf(sel("e", "Value"), loc=A.Located(line=15, column=10))),
	]


def test_address_of_bound_field_is_rejected_once() -> None:
	_, result = _lower(_address_body())
	assert result.passes == 3
	errors = [d for d in result.diagnostics if d.code == DiagnosticKind.ADDRESS_OF_BOUND_FIELD]
	(diag,) = errors
	assert diag.is_error
	assert diag.message == (
		"cannot take the address of &e.Value: field has bound type container/list.ValueType "
		"which is int only after conversion"
	)
	assert (diag.span.line, diag.span.column) == (15, 10)
	assert not result.ok


def test_address_of_bound_field_lowered_reflectively() -> None:
	_, result = _lower(_address_body(), policy=ADDRESS_OF_REFLECT)
	assert result.ok
	(diag,) = result.diagnostics
	assert diag.severity == "warning"
	assert diag.code == DiagnosticKind.ADDRESS_OF_BOUND_FIELD
	boxed = _main_body(result)[4].value
	assert isinstance(boxed, A.BoxedAddr)
	assert boxed.type == INT


def test_unknown_policy() -> None:
	with pytest.raises(ValueError):
		PolymorphicTransformer(standard_universe(), address_of_policy="ignore")
