# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Program-wide instantiation cache.

Each `InstantiationKey` owns one `concurrent.futures.Future`, created under the
cache lock by the first requester. That requester runs the build inline and
resolves the future; every other requester waits on it. Failures are stored in
the future as well, so a failed key is replayed without rebuilding.

Before a requester blocks on a key it records a wait-for edge in the
`InstantiationGraph`; an edge that would close a cycle is reported as
`CyclicBinding`. The depth of a transitive build chain is bounded by the
instantiation budget.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Set

from typebind.bindc.bindings.key import CanonicalKey
from typebind.bindc.core.config import DEFAULT_INSTANTIATION_BUDGET
from typebind.bindc.core.diagnostics import BindingError, DiagnosticKind, make_diag
from typebind.bindc.host.ast import Located

from .graph import InstantiationGraph
from .model import Instantiation, InstantiationKey

logger = logging.getLogger(__name__)

PHASE = "monomorphic"


@dataclass(frozen=True)
class BuildContext:
	"""Position of a request in a transitive build chain."""

	key: Optional[InstantiationKey] = None
	parent: Optional["BuildContext"] = None
	depth: int = 0

	def child(self, key: InstantiationKey) -> "BuildContext":
		return BuildContext(key=key, parent=self, depth=self.depth + 1)

	def chain(self) -> List[InstantiationKey]:
		out: List[InstantiationKey] = []
		ctx: Optional[BuildContext] = self
		while ctx is not None:
			if ctx.key is not None:
				out.append(ctx.key)
			ctx = ctx.parent
		out.reverse()
		return out


ROOT = BuildContext()

Builder = Callable[[BuildContext], Instantiation]


class InstantiationCache:
	def __init__(self, *, budget: int = DEFAULT_INSTANTIATION_BUDGET) -> None:
		self.budget = budget
		self.graph = InstantiationGraph()
		self._lock = threading.Lock()
		self._futures: Dict[InstantiationKey, Future] = {}
		self._requested: Dict[str, Set[CanonicalKey]] = {}
		self._completed: List[InstantiationKey] = []
		self._builds = 0

	# --- queries -----------------------------------------------------------

	@property
	def builds(self) -> int:
		"""Number of builds actually executed."""
		with self._lock:
			return self._builds

	@property
	def completed(self) -> List[InstantiationKey]:
		"""Successfully published keys, in completion order."""
		with self._lock:
			return list(self._completed)

	def bases(self) -> List[str]:
		with self._lock:
			return sorted(self._requested)

	def requested_keys(self, base: str) -> List[CanonicalKey]:
		with self._lock:
			return sorted(self._requested.get(base, ()), key=str)

	def get(self, key: InstantiationKey) -> Optional[Instantiation]:
		"""Published instantiation for `key`, without waiting or building."""
		with self._lock:
			fut = self._futures.get(key)
		if fut is None or not fut.done() or fut.exception() is not None:
			return None
		return fut.result()

	def instantiations(self) -> List[Instantiation]:
		with self._lock:
			keys = list(self._completed)
		return [inst for inst in (self.get(k) for k in keys) if inst is not None]

	# --- requests ----------------------------------------------------------

	def get_or_build(
		self,
		key: InstantiationKey,
		build: Builder,
		ctx: BuildContext = ROOT,
		*,
		loc: Optional[Located] = None,
	) -> Instantiation:
		with self._lock:
			self._requested.setdefault(key.base, set()).add(key.key)
			fut = self._futures.get(key)
		if fut is not None and fut.done():
			logger.debug("instantiation cache hit: %s", key)
			return self._result(fut)
		if fut is None and ctx.depth + 1 > self.budget:
			chain = " -> ".join(str(k) for k in [*ctx.chain(), key])
			raise BindingError(
				[
					make_diag(
						DiagnosticKind.INSTANTIATION_BUDGET_EXCEEDED,
						f"instantiation chain deeper than {self.budget} while instantiating {key}",
						loc,
						phase=PHASE,
						notes=[f"chain: {chain}"],
					)
				]
			)
		owner = False
		with self._lock:
			fut = self._futures.get(key)
			if fut is None:
				fut = Future()
				self._futures[key] = fut
				owner = True
		requester = ctx.key
		if requester is not None:
			cycle = self.graph.add_edge(requester, key)
			if cycle is not None:
				err = BindingError(
					[
						make_diag(
							DiagnosticKind.CYCLIC_BINDING,
							f"cyclic type binding: instantiating {key} requires itself",
							loc,
							phase=PHASE,
							notes=[f"cycle: {' -> '.join(str(k) for k in cycle)}"],
						)
					]
				)
				if owner:
					fut.set_exception(err)
				raise err
		try:
			if owner:
				self._run(key, fut, build, ctx.child(key))
			return self._result(fut)
		finally:
			if requester is not None:
				self.graph.remove_edge(requester, key)

	def _run(self, key: InstantiationKey, fut: Future, build: Builder, ctx: BuildContext) -> None:
		with self._lock:
			self._builds += 1
		self.graph.start(key)
		logger.debug("building instantiation %s (depth %d)", key, ctx.depth)
		try:
			inst = build(ctx)
		except BaseException as err:
			logger.debug("instantiation %s failed: %s", key, err)
			fut.set_exception(err)
			return
		finally:
			self.graph.finish(key)
		with self._lock:
			self._completed.append(key)
		fut.set_result(inst)

	@staticmethod
	def _result(fut: Future) -> Instantiation:
		try:
			return fut.result()
		except BindingError as err:
			raise BindingError(err.diagnostics) from err


__all__ = ["InstantiationCache", "BuildContext", "ROOT"]
