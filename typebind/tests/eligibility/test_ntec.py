# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor

from typebind.bindc.core.diagnostics import DiagnosticKind
from typebind.bindc.eligibility import EligibilityChecker, build_shadow, candidate_params
from typebind.bindc.host import ast as A
from typebind.bindc.host.types import Named, Struct
from typebind.test_support import (
	GUARD,
	LIST,
	MIXING,
	OMAP,
	RWLOCK,
	STRS,
	standard_universe,
)


def test_candidates_are_exported_interface_types() -> None:
	universe = standard_universe()
	assert candidate_params(universe.parse_package(LIST)) == ["ValueType"]
	assert candidate_params(universe.parse_package(OMAP)) == ["KeyType", "ValueType"]
	assert candidate_params(universe.parse_package(STRS)) == []


def test_nominal_parameter_is_eligible() -> None:
	universe = standard_universe()
	checker = EligibilityChecker(universe)
	result = checker.check(universe.parse_package(LIST), "ValueType")
	assert result.eligible
	assert result.diagnostics == ()


def test_parameter_with_methods_is_eligible_through_stub_methods() -> None:
	universe = standard_universe()
	checker = EligibilityChecker(universe)
	assert checker.check(universe.parse_package(GUARD), "Locker").eligible


def test_mixing_parameter_with_string_is_a_violation() -> None:
	universe = standard_universe()
	checker = EligibilityChecker(universe)
	result = checker.check(universe.parse_package(MIXING), "Item")
	assert not result.eligible
	(diag,) = result.diagnostics
	assert diag.code == DiagnosticKind.NTEC_VIOLATION
	assert "util/mixing.Item is not used nominally" in diag.message
	assert "cannot use value of type string as type util/mixing.Item" in diag.message
	# the offending return statement, not the declaration
	assert (diag.span.file, diag.span.line) == ("mixing.go", 6)


def test_test_files_are_ignored() -> None:
	universe = standard_universe()
	shadow = build_shadow(universe, universe.parse_package(MIXING), "Item")
	assert [f.name for f in shadow.files] == ["mixing.go"]


def test_embedding_a_parameter_in_another_interface_is_a_violation() -> None:
	universe = standard_universe()
	checker = EligibilityChecker(universe)
	pkg = universe.parse_package(RWLOCK)
	assert not checker.check(pkg, "Locker").eligible
	assert checker.check(pkg, "RWLocker").eligible
	assert checker.eligible_params(pkg) == frozenset({"RWLocker"})


def test_shadow_replaces_type_with_struct_and_forwarding_stubs() -> None:
	universe = standard_universe()
	pkg = universe.parse_package(RWLOCK)
	shadow = build_shadow(universe, pkg, "RWLocker")
	decl = shadow.type_decl("RWLocker")
	assert decl.type == Struct()
	stubs = {
		d.name: d.forwards_for
		for d in shadow.decls()
		if isinstance(d, A.FuncDecl) and d.receiver is not None and d.receiver.type == Named(RWLOCK, "RWLocker")
	}
	assert stubs == {"RLock": None, "Lock": "Locker", "Unlock": "Locker"}
	# the package itself is untouched
	assert pkg.type_decl("RWLocker").type != Struct()


def test_results_are_deterministic_and_memoized() -> None:
	universe = standard_universe()
	checker = EligibilityChecker(universe)
	pkg = universe.parse_package(MIXING)
	first = checker.check(pkg, "Item")
	second = checker.check(pkg, "Item")
	assert first is second
	assert checker.computations == 1
	fresh = EligibilityChecker(universe).check(pkg, "Item")
	assert [str(d) for d in fresh.diagnostics] == [str(d) for d in first.diagnostics]


def test_concurrent_first_checks_converge() -> None:
	universe = standard_universe()
	checker = EligibilityChecker(universe)
	pkg = universe.parse_package(MIXING)
	barrier = threading.Barrier(8)

	def first_check(_: int):
		barrier.wait()
		return checker.check(pkg, "Item")

	with ThreadPoolExecutor(max_workers=8) as pool:
		results = list(pool.map(first_check, range(8)))
	assert all(r is results[0] for r in results)
	assert not results[0].eligible
	assert 1 <= checker.computations <= 8
	assert checker.check(pkg, "Item") is results[0]


def test_eligible_set_is_published_once_on_the_package() -> None:
	universe = standard_universe()
	checker = EligibilityChecker(universe, parallel=True, max_workers=4)
	pkg = universe.parse_package(OMAP)
	assert pkg.eligible_params is None
	assert checker.eligible_params(pkg) == frozenset({"KeyType", "ValueType"})
	assert pkg.eligible_params == frozenset({"KeyType", "ValueType"})
	before = checker.computations
	checker.eligible_params(pkg)
	assert checker.computations == before


def test_non_candidate_is_not_eligible() -> None:
	universe = standard_universe()
	checker = EligibilityChecker(universe)
	result = checker.check(universe.parse_package(LIST), "List")
	assert not result.eligible
	assert result.diagnostics[0].code == DiagnosticKind.PARAM_NOT_ELIGIBLE
