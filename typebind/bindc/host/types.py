# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Type descriptors of the reference host language.

Descriptors are frozen value objects: two descriptors are the same type when
they compare equal after alias resolution (the symbol layer does that part).
`describe` renders the canonical textual form used by canonical binding keys,
so it must stay stable across runs.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterator, Optional, Tuple


class Type:
	"""Marker base class for every type descriptor."""

	__slots__ = ()


@dataclass(frozen=True)
class Basic(Type):
	name: str


@dataclass(frozen=True)
class Untyped(Type):
	"""Type of an untyped constant; `kind` is one of int/float/string/bool."""

	kind: str

	def default(self) -> Basic:
		return _UNTYPED_DEFAULTS[self.kind]


@dataclass(frozen=True)
class Named(Type):
	package: str
	name: str


@dataclass(frozen=True)
class MethodSig:
	name: str
	params: Tuple[Type, ...] = ()
	results: Tuple[Type, ...] = ()

	def signature(self) -> "Func":
		return Func(params=self.params, results=self.results)


@dataclass(frozen=True)
class Interface(Type):
	methods: Tuple[MethodSig, ...] = ()
	embeds: Tuple[Named, ...] = ()


@dataclass(frozen=True)
class Field:
	name: str
	type: Type


@dataclass(frozen=True)
class Struct(Type):
	fields: Tuple[Field, ...] = ()

	def field(self, name: str) -> Optional[Field]:
		for f in self.fields:
			if f.name == name:
				return f
		return None


@dataclass(frozen=True)
class Pointer(Type):
	elem: Type


@dataclass(frozen=True)
class Slice(Type):
	elem: Type


@dataclass(frozen=True)
class MapOf(Type):
	key: Type
	value: Type


@dataclass(frozen=True)
class Func(Type):
	params: Tuple[Type, ...] = ()
	results: Tuple[Type, ...] = ()


@dataclass(frozen=True)
class ResultTuple(Type):
	"""Type of a call expression returning zero or several results."""

	items: Tuple[Type, ...] = ()


BOOL = Basic("bool")
INT = Basic("int")
INT64 = Basic("int64")
FLOAT64 = Basic("float64")
STRING = Basic("string")
BYTE = Basic("byte")
RUNE = Basic("rune")
BASIC_TYPES = {t.name: t for t in (BOOL, INT, INT64, FLOAT64, STRING, BYTE, RUNE)}
NUMERIC_BASICS = frozenset({"int", "int64", "float64", "byte", "rune"})
EMPTY_INTERFACE = Interface()
VOID = ResultTuple(())

_UNTYPED_DEFAULTS = {"int": INT, "float": FLOAT64, "string": STRING, "bool": BOOL}


def is_exported(name: str) -> bool:
	return name[:1].isupper()


def describe(t: Type) -> str:
	"""Canonical textual form of a descriptor."""
	if isinstance(t, Basic):
		return t.name
	if isinstance(t, Untyped):
		return f"untyped {t.kind}"
	if isinstance(t, Named):
		return f"{t.package}.{t.name}"
	if isinstance(t, Pointer):
		return f"*{describe(t.elem)}"
	if isinstance(t, Slice):
		return f"[]{describe(t.elem)}"
	if isinstance(t, MapOf):
		return f"map[{describe(t.key)}]{describe(t.value)}"
	if isinstance(t, Func):
		return "func" + _describe_signature(t.params, t.results)
	if isinstance(t, Interface):
		parts = [describe(e) for e in t.embeds]
		parts.extend(m.name + _describe_signature(m.params, m.results) for m in t.methods)
		return "interface{" + "; ".join(parts) + "}"
	if isinstance(t, Struct):
		return "struct{" + "; ".join(f"{f.name} {describe(f.type)}" for f in t.fields) + "}"
	if isinstance(t, ResultTuple):
		return "(" + ", ".join(describe(i) for i in t.items) + ")"
	raise TypeError(f"unknown type descriptor {t!r}")


def _describe_signature(params: Tuple[Type, ...], results: Tuple[Type, ...]) -> str:
	out = "(" + ", ".join(describe(p) for p in params) + ")"
	if len(results) == 1:
		return f"{out} {describe(results[0])}"
	if results:
		return f"{out} (" + ", ".join(describe(r) for r in results) + ")"
	return out


def substitute(t: Type, fn: Callable[[Named], Optional[Type]]) -> Type:
	"""
	Rebuild `t`, replacing every Named `n` for which `fn(n)` is not None.

	Returns the original object when nothing changed so callers can use `is`
	to detect a no-op.
	"""
	if isinstance(t, Named):
		repl = fn(t)
		return t if repl is None else repl
	if isinstance(t, Pointer):
		elem = substitute(t.elem, fn)
		return t if elem is t.elem else Pointer(elem)
	if isinstance(t, Slice):
		elem = substitute(t.elem, fn)
		return t if elem is t.elem else Slice(elem)
	if isinstance(t, MapOf):
		key = substitute(t.key, fn)
		value = substitute(t.value, fn)
		return t if key is t.key and value is t.value else MapOf(key, value)
	if isinstance(t, Func):
		params = _subst_all(t.params, fn)
		results = _subst_all(t.results, fn)
		return t if params is t.params and results is t.results else Func(params, results)
	if isinstance(t, ResultTuple):
		items = _subst_all(t.items, fn)
		return t if items is t.items else ResultTuple(items)
	if isinstance(t, Struct):
		new_fields = tuple(Field(f.name, substitute(f.type, fn)) for f in t.fields)
		if all(a.type is b.type for a, b in zip(new_fields, t.fields)):
			return t
		return Struct(new_fields)
	if isinstance(t, Interface):
		methods = tuple(substitute_method(m, fn) for m in t.methods)
		embeds = tuple(substitute(e, fn) for e in t.embeds)
		if all(a is b for a, b in zip(methods, t.methods)) and all(a is b for a, b in zip(embeds, t.embeds)):
			return t
		return Interface(methods=methods, embeds=embeds)  # type: ignore[arg-type]
	return t


def substitute_method(m: MethodSig, fn: Callable[[Named], Optional[Type]]) -> MethodSig:
	params = _subst_all(m.params, fn)
	results = _subst_all(m.results, fn)
	if params is m.params and results is m.results:
		return m
	return MethodSig(m.name, params, results)


def _subst_all(items: Tuple[Type, ...], fn: Callable[[Named], Optional[Type]]) -> Tuple[Type, ...]:
	new = tuple(substitute(i, fn) for i in items)
	if all(a is b for a, b in zip(new, items)):
		return items
	return new


def named_refs(t: Type) -> Iterator[Named]:
	"""Yield every Named descriptor reachable from `t` (pre-order)."""
	if isinstance(t, Named):
		yield t
	elif isinstance(t, (Pointer, Slice)):
		yield from named_refs(t.elem)
	elif isinstance(t, MapOf):
		yield from named_refs(t.key)
		yield from named_refs(t.value)
	elif isinstance(t, Func):
		for p in t.params + t.results:
			yield from named_refs(p)
	elif isinstance(t, ResultTuple):
		for i in t.items:
			yield from named_refs(i)
	elif isinstance(t, Struct):
		for f in t.fields:
			yield from named_refs(f.type)
	elif isinstance(t, Interface):
		for e in t.embeds:
			yield e
		for m in t.methods:
			for p in m.params + m.results:
				yield from named_refs(p)


__all__ = [
	"Type",
	"Basic",
	"Untyped",
	"Named",
	"MethodSig",
	"Interface",
	"Field",
	"Struct",
	"Pointer",
	"Slice",
	"MapOf",
	"Func",
	"ResultTuple",
	"BOOL",
	"INT",
	"INT64",
	"FLOAT64",
	"STRING",
	"BYTE",
	"RUNE",
	"BASIC_TYPES",
	"NUMERIC_BASICS",
	"EMPTY_INTERFACE",
	"VOID",
	"is_exported",
	"describe",
	"substitute",
	"substitute_method",
	"named_refs",
]
