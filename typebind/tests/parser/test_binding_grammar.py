# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

import pytest

from typebind.bindc.parser import BindingClauseSyntaxError, format_import_clause, parse_import_clause, parse_imports


def test_plain_import_has_no_binding_list() -> None:
	clause = parse_import_clause('import "container/list"')
	assert clause.path == "container/list"
	assert clause.local_name == "list"
	assert clause.bindings == ()
	assert clause.is_bound is False


def test_parenthesized_bindings_with_qualifier() -> None:
	clause = parse_import_clause('import "container/list" (list.ValueType => int)', file="main.go")
	assert clause.is_bound
	(binding,) = clause.bindings
	assert binding.qualifier == "list"
	assert binding.param == "ValueType"
	assert str(binding.type_expr) == "int"
	assert binding.loc is not None and binding.loc.line == 1 and binding.loc.file == "main.go"


def test_alias_and_suffix_form() -> None:
	clause = parse_import_clause('import il "container/list" with ValueType => int')
	assert clause.alias == "il"
	assert clause.local_name == "il"
	assert [b.param_text() for b in clause.bindings] == ["ValueType"]


def test_multiple_bindings_and_type_constructors() -> None:
	clause = parse_import_clause(
		'import "sync" (sync.Locker => *MyLock, sync.MapKey => []string, sync.MapValue => map[string]lib.Item,)'
	)
	assert [b.param for b in clause.bindings] == ["Locker", "MapKey", "MapValue"]
	assert [str(b.type_expr) for b in clause.bindings] == ["*MyLock", "[]string", "map[string]lib.Item"]
	assert clause.bindings[2].type_expr.args[1].qualifier == "lib"


def test_empty_binding_list_is_distinct_from_no_list() -> None:
	clause = parse_import_clause('import "util/strs" ()')
	assert clause.bindings == ()
	assert clause.has_bindings is True
	assert clause.is_bound is True


def test_several_declarations_keep_their_lines() -> None:
	source = '\n'.join(
		[
			'// two views of one list package',
			'import il "container/list" (list.ValueType => int);',
			'import sl "container/list" (list.ValueType => string)',
		]
	)
	clauses = parse_imports(source, file="main.go")
	assert [c.local_name for c in clauses] == ["il", "sl"]
	assert [c.loc.line for c in clauses] == [2, 3]
	assert [str(c.bindings[0].type_expr) for c in clauses] == ["int", "string"]


@pytest.mark.parametrize(
	"source",
	[
		'import "container/list" (list.ValueType int)',
		'import "container/list" (=> int)',
		'import "container/list" with',
		'import container/list',
		'import "container/list" (list.ValueType => )',
	],
)
def test_malformed_clauses_raise_syntax_errors(source: str) -> None:
	with pytest.raises(BindingClauseSyntaxError):
		parse_import_clause(source)


def test_empty_path_is_rejected() -> None:
	with pytest.raises(BindingClauseSyntaxError, match="import path must not be empty"):
		parse_import_clause('import ""')


def test_exactly_one_clause_is_required() -> None:
	with pytest.raises(BindingClauseSyntaxError, match="found 2"):
		parse_import_clause('import "a" import "b"')


def test_format_round_trips_through_the_parser() -> None:
	source = 'import om "container/omap" (omap.KeyType => string, omap.ValueType => *lib.Item)'
	clause = parse_import_clause(source)
	assert format_import_clause(clause) == source
	assert parse_import_clause(format_import_clause(clause)).bindings[1].type_expr == clause.bindings[1].type_expr
