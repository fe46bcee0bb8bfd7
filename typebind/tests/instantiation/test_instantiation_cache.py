# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

import re
import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from typebind.bindc.bindings import CanonicalKey
from typebind.bindc.core.diagnostics import BindingError, DiagnosticKind, make_diag
from typebind.bindc.host import ast as A
from typebind.bindc.instantiation import BuildContext, Instantiation, InstantiationCache, InstantiationGraph, InstantiationKey


def _key(base: str, *pairs) -> InstantiationKey:
	return InstantiationKey(base, CanonicalKey(tuple(pairs)))


def _inst(key: InstantiationKey) -> Instantiation:
	return Instantiation(key=key, package=A.Package(path=key.namespace))


def test_namespace_is_deterministic_and_distinct_per_key() -> None:
	a = _key("container/omap", ("KeyType", "string"), ("ValueType", "int"))
	b = _key("container/omap", ("KeyType", "string"), ("ValueType", "int"))
	c = _key("container/omap", ("KeyType", "int"), ("ValueType", "int"))
	assert re.match(r"^container/omap@[0-9a-f]{16}$", a.namespace)
	assert a.namespace == b.namespace
	assert a.namespace != c.namespace
	assert str(a) == "container/omap(KeyType=>string;ValueType=>int)"


def test_concurrent_requests_build_once() -> None:
	cache = InstantiationCache()
	key = _key("container/list", ("ValueType", "int"))
	calls = []
	barrier = threading.Barrier(8)

	def build(ctx: BuildContext) -> Instantiation:
		calls.append(ctx.depth)
		time.sleep(0.05)
		return _inst(key)

	def request(_: int) -> Instantiation:
		barrier.wait()
		return cache.get_or_build(key, build)

	with ThreadPoolExecutor(max_workers=8) as pool:
		results = list(pool.map(request, range(8)))
	assert calls == [1]
	assert cache.builds == 1
	assert all(r is results[0] for r in results)
	assert cache.get(key) is results[0]
	assert cache.completed == [key]


def test_failure_is_replayed_without_rebuilding() -> None:
	cache = InstantiationCache()
	key = _key("container/list", ("ValueType", "main.point"))
	calls = []

	def build(ctx: BuildContext) -> Instantiation:
		calls.append(1)
		raise BindingError([make_diag(DiagnosticKind.BINDING_VISIBILITY, "not visible")])

	for _ in range(3):
		with pytest.raises(BindingError) as excinfo:
			cache.get_or_build(key, build)
		assert excinfo.value.kinds == ["BindingVisibility"]
	assert len(calls) == 1
	assert cache.get(key) is None
	assert cache.completed == []


def test_requested_keys_are_tracked_per_base() -> None:
	cache = InstantiationCache()
	k1 = _key("stats/counter", ("ValueType", "int"))
	k2 = _key("stats/counter", ("ValueType", "string"))
	for k in (k1, k2, k1):
		cache.get_or_build(k, lambda ctx, k=k: _inst(k))
	assert cache.bases() == ["stats/counter"]
	assert cache.requested_keys("stats/counter") == [k1.key, k2.key]
	assert [i.key for i in cache.instantiations()] == [k1, k2]


def test_cycle_within_one_build_chain() -> None:
	cache = InstantiationCache()
	x = _key("demo/x", ("E", "int"))
	y = _key("demo/y", ("F", "int"))

	def build_x(ctx: BuildContext) -> Instantiation:
		cache.get_or_build(y, build_y, ctx)
		return _inst(x)

	def build_y(ctx: BuildContext) -> Instantiation:
		cache.get_or_build(x, build_x, ctx)
		return _inst(y)

	with pytest.raises(BindingError) as excinfo:
		cache.get_or_build(x, build_x)
	(diag,) = excinfo.value.diagnostics
	assert diag.code == DiagnosticKind.CYCLIC_BINDING
	assert diag.notes == ["cycle: demo/y(F=>int) -> demo/x(E=>int) -> demo/y(F=>int)"]
	# both ends failed; nothing is left waiting
	assert cache.get(x) is None and cache.get(y) is None
	assert cache.graph.waiting_on(x) == []
	assert cache.graph.waiting_on(y) == []


def test_cycle_across_threads_fails_instead_of_hanging() -> None:
	cache = InstantiationCache()
	x = _key("demo/x", ("E", "int"))
	y = _key("demo/y", ("F", "int"))
	barrier = threading.Barrier(2)

	def build_x(ctx: BuildContext) -> Instantiation:
		barrier.wait(timeout=5)
		cache.get_or_build(y, build_y, ctx)
		return _inst(x)

	def build_y(ctx: BuildContext) -> Instantiation:
		barrier.wait(timeout=5)
		cache.get_or_build(x, build_x, ctx)
		return _inst(y)

	with ThreadPoolExecutor(max_workers=2) as pool:
		futures = [pool.submit(cache.get_or_build, x, build_x), pool.submit(cache.get_or_build, y, build_y)]
		for fut in futures:
			with pytest.raises(BindingError) as excinfo:
				fut.result(timeout=10)
			assert "CyclicBinding" in excinfo.value.kinds
	assert cache.builds == 2


def test_budget_bounds_chain_depth() -> None:
	cache = InstantiationCache(budget=2)
	keys = [_key(f"chain/p{i}", ("T", "int")) for i in range(3)]

	def builder(i: int):
		def build(ctx: BuildContext) -> Instantiation:
			if i + 1 < len(keys):
				cache.get_or_build(keys[i + 1], builder(i + 1), ctx)
			return _inst(keys[i])

		return build

	with pytest.raises(BindingError) as excinfo:
		cache.get_or_build(keys[0], builder(0))
	(diag,) = excinfo.value.diagnostics
	assert diag.code == DiagnosticKind.INSTANTIATION_BUDGET_EXCEEDED
	assert diag.message == "instantiation chain deeper than 2 while instantiating chain/p2(T=>int)"
	assert diag.notes == ["chain: chain/p0(T=>int) -> chain/p1(T=>int) -> chain/p2(T=>int)"]
	# the over-budget key was never started
	assert cache.builds == 2


def test_graph_refuses_edge_closing_a_cycle() -> None:
	graph = InstantiationGraph()
	a, b, c = (_key(n) for n in ("a", "b", "c"))
	assert graph.add_edge(a, b) is None
	assert graph.add_edge(b, c) is None
	assert graph.add_edge(c, a) == [c, a, b, c]
	assert graph.waiting_on(c) == []
	graph.add_edge(a, b)
	graph.remove_edge(a, b)
	assert graph.waiting_on(a) == [b]
	graph.remove_edge(a, b)
	assert graph.waiting_on(a) == []
	assert graph.add_edge(c, a) is None
