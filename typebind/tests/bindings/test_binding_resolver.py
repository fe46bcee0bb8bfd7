# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

import pytest

from typebind.bindc.bindings import BindingResolver, ParameterTypeRef, TypeBinding
from typebind.bindc.core.diagnostics import BindingError, DiagnosticKind
from typebind.bindc.eligibility import EligibilityChecker
from typebind.bindc.host import ast as A
from typebind.bindc.host.protocol import Scope
from typebind.bindc.host.types import INT, STRING, Named, Pointer, Struct
from typebind.test_support import GUARD, LIST, OMAP, func, imports, standard_universe, unit


def _scope(u: A.CompilationUnit) -> Scope:
	return Scope(package=u.package, imports={i.local_name: i.path for i in u.imports}, files=(u.file,))


def _resolve(source: str, decls=()):
	universe = standard_universe()
	resolver = BindingResolver(universe, EligibilityChecker(universe))
	u = unit("main", source, decls)
	return resolver.resolve(u.imports[0], _scope(u))


def _errors(source: str, decls=()) -> BindingError:
	with pytest.raises(BindingError) as excinfo:
		_resolve(source, decls)
	return excinfo.value


def test_import_without_clause_resolves_to_base_package() -> None:
	resolved = _resolve('import "util/strs"')
	assert not resolved.is_bound
	assert resolved.package.path == "util/strs"
	assert resolved.bindings == ()
	assert resolved.key.empty


def test_binding_resolves_concrete_type_in_importing_scope() -> None:
	point = A.TypeDecl("point", Struct(), loc=None)
	resolved = _resolve('import "container/list" (list.ValueType => *point)', [point])
	assert resolved.bindings == (TypeBinding(ParameterTypeRef(LIST, "ValueType"), Pointer(Named("main", "point"))),)
	assert str(resolved.key) == "ValueType=>*main.point"
	assert resolved.substitution() == {"ValueType": Pointer(Named("main", "point"))}
	assert resolved.binding_for("Missing") is None


def test_unqualified_parameter_name_is_accepted() -> None:
	resolved = _resolve('import "container/list" (ValueType => int)')
	assert resolved.binding_for("ValueType").concrete == INT


def test_alias_to_a_named_type_resolves_to_its_target() -> None:
	decls = [A.TypeDecl("label", STRING, alias=True)]
	resolved = _resolve('import "container/list" (list.ValueType => label)', decls)
	assert resolved.binding_for("ValueType").concrete == STRING


def test_foreign_qualifier_is_not_eligible() -> None:
	err = _errors('import l "container/list" (omap.ValueType => int)')
	(diag,) = err.diagnostics
	assert diag.code == DiagnosticKind.PARAM_NOT_ELIGIBLE
	assert diag.message == (
		"'omap.ValueType' does not name a type of the imported package (qualifier must be 'l' or 'list')"
	)


@pytest.mark.parametrize("qualifier", ["il", "list"])
def test_renamed_import_accepts_local_and_package_qualifier(qualifier: str) -> None:
	resolved = _resolve(f'import il "container/list" ({qualifier}.ValueType => int)')
	assert resolved.clause.local_name == "il"
	assert resolved.binding_for("ValueType").concrete == INT


@pytest.mark.parametrize(
	"source, reason",
	[
		('import "container/list" (list.Missing => int)', "container/list.Missing is not declared"),
		('import "container/list" (list.List => int)', "container/list.List is not an exported interface type"),
		('import "util/mixing" (mixing.Item => int)', "util/mixing.Item is not used nominally"),
	],
)
def test_parameter_not_eligible(source: str, reason: str) -> None:
	err = _errors(source)
	(diag,) = err.diagnostics
	assert diag.code == DiagnosticKind.PARAM_NOT_ELIGIBLE
	assert diag.message == f"{reason} and cannot be bound"


def test_not_nominal_parameter_carries_the_violation_as_note() -> None:
	(diag,) = _errors('import "util/mixing" (mixing.Item => int)').diagnostics
	assert any("[NTECViolation]" in n and "mixing.go:6" in n for n in diag.notes)


def test_unknown_concrete_type() -> None:
	(diag,) = _errors('import "container/list" (list.ValueType => widget)').diagnostics
	assert diag.code == DiagnosticKind.UNKNOWN_TYPE
	assert diag.message == "cannot bind list.ValueType: undefined type widget"


def test_duplicate_binding_points_at_first_occurrence() -> None:
	(diag,) = _errors('import "container/omap" (omap.KeyType => int,\n\tomap.KeyType => string)').diagnostics
	assert diag.code == DiagnosticKind.DUPLICATE_BINDING
	assert diag.message == "parameter type container/omap.KeyType is bound more than once"
	assert diag.span.line == 2
	assert diag.notes and diag.notes[0].startswith("first bound at ")


def test_unknown_package() -> None:
	(diag,) = _errors('import "no/such" (such.T => int)').diagnostics
	assert diag.code == DiagnosticKind.UNKNOWN_PACKAGE
	assert diag.message == "unknown package 'no/such'"


def test_syntax_error_through_resolve_text() -> None:
	universe = standard_universe()
	resolver = BindingResolver(universe, EligibilityChecker(universe))
	with pytest.raises(BindingError) as excinfo:
		resolver.resolve_text('import "container/list" (list.ValueType =>)', Scope(package="main"), file="main.go")
	(diag,) = excinfo.value.diagnostics
	assert diag.code == DiagnosticKind.BINDING_SYNTAX
	assert diag.span.file == "main.go"


def test_all_problems_of_a_clause_are_reported_together() -> None:
	err = _errors('import "container/omap" (omap.Nope => int, omap.KeyType => widget, omap.ValueType => int)')
	assert err.kinds == ["ParamNotEligible", "UnknownType"]


def test_concrete_type_missing_a_method_is_unsatisfied() -> None:
	mu = Named("main", "mu")
	decls = [
		A.TypeDecl("mu", Struct()),
		func("Lock", receiver=A.Param("m", mu), line=4),
	]
	(diag,) = _errors('import "sync/guard" (guard.Locker => mu)', decls).diagnostics
	assert diag.code == DiagnosticKind.BINDING_UNSATISFIED
	assert diag.message == f"main.mu does not satisfy {GUARD}.Locker: missing method Unlock()"
	assert diag.notes == ["missing method Unlock()"]


def test_concrete_type_with_full_method_set_satisfies() -> None:
	mu = Named("main", "mu")
	decls = [
		A.TypeDecl("mu", Struct()),
		func("Lock", receiver=A.Param("m", mu), line=4),
		func("Unlock", receiver=A.Param("m", mu), line=5),
	]
	resolved = _resolve('import "sync/guard" (guard.Locker => mu)', decls)
	assert resolved.binding_for("Locker").concrete == mu


def test_eligible_set_is_computed_once_per_package() -> None:
	universe = standard_universe()
	checker = EligibilityChecker(universe)
	resolver = BindingResolver(universe, checker)
	scope = Scope(package="main")
	for src in ('import "container/omap" (omap.KeyType => int)', 'import "container/omap" (omap.ValueType => string)'):
		resolver.resolve(imports(src)[0], scope)
	assert checker.computations == 2
	assert universe.parse_package(OMAP).eligible_params == frozenset({"KeyType", "ValueType"})
