# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Wait-for graph between instantiation builds.

An edge A -> B means the build of A is blocked on B (building it inline or
waiting for another thread's build). Adding an edge that closes a path back to
its source is refused and the cycle is returned instead, so a cyclic request is
reported rather than waited on forever.
"""

from __future__ import annotations

import threading
from typing import Dict, List, Optional, Set

from .model import InstantiationKey


class InstantiationGraph:
	def __init__(self) -> None:
		self._lock = threading.Lock()
		self._edges: Dict[InstantiationKey, Dict[InstantiationKey, int]] = {}
		self._in_progress: Set[InstantiationKey] = set()

	def start(self, key: InstantiationKey) -> None:
		with self._lock:
			self._in_progress.add(key)

	def finish(self, key: InstantiationKey) -> None:
		with self._lock:
			self._in_progress.discard(key)

	def in_progress(self, key: InstantiationKey) -> bool:
		with self._lock:
			return key in self._in_progress

	def add_edge(self, src: InstantiationKey, dst: InstantiationKey) -> Optional[List[InstantiationKey]]:
		"""Record src -> dst, or return the cycle src -> dst -> ... -> src it would close."""
		with self._lock:
			path = self._path(dst, src)
			if path is not None:
				return [src, *path]
			targets = self._edges.setdefault(src, {})
			targets[dst] = targets.get(dst, 0) + 1
			return None

	def remove_edge(self, src: InstantiationKey, dst: InstantiationKey) -> None:
		with self._lock:
			targets = self._edges.get(src)
			if not targets or dst not in targets:
				return
			targets[dst] -= 1
			if targets[dst] <= 0:
				del targets[dst]
			if not targets:
				del self._edges[src]

	def waiting_on(self, key: InstantiationKey) -> List[InstantiationKey]:
		with self._lock:
			return sorted(self._edges.get(key, {}), key=str)

	def _path(self, start: InstantiationKey, goal: InstantiationKey) -> Optional[List[InstantiationKey]]:
		stack: List[List[InstantiationKey]] = [[start]]
		seen: Set[InstantiationKey] = {start}
		while stack:
			path = stack.pop()
			node = path[-1]
			if node == goal:
				return path
			for nxt in self._edges.get(node, {}):
				if nxt not in seen:
					seen.add(nxt)
					stack.append([*path, nxt])
		return None


__all__ = ["InstantiationGraph"]
