# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Parser for import declarations with type binding clauses.

The grammar lives next to this module (`grammar.lark`). The tree is walked by
hand into host `ImportClause` values; positions come from lark's propagated
metadata so every binding keeps the line/column it was written at.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from lark import Lark, Token, Tree
from lark.exceptions import UnexpectedInput

from typebind.bindc.host.ast import BindingSpec, ImportClause, Located, TypeExpr

_GRAMMAR_PATH = Path(__file__).with_name("grammar.lark")
_GRAMMAR_SRC = _GRAMMAR_PATH.read_text()

_PARSER = Lark(
	_GRAMMAR_SRC,
	parser="lalr",
	lexer="basic",
	start="imports",
	propagate_positions=True,
	maybe_placeholders=False,
)


class BindingClauseSyntaxError(ValueError):
	"""User-facing syntax error in an import binding clause."""

	def __init__(self, message: str, *, loc: Optional[Located]) -> None:
		super().__init__(message)
		self.loc = loc


def _name(node: Tree | Token) -> str:
	if isinstance(node, Tree):
		data = node.data
		if isinstance(data, Token):
			return data.value
		return data
	return node.type


def _loc(node: Tree | Token, file: Optional[str]) -> Optional[Located]:
	if isinstance(node, Token):
		line = node.line
		column = node.column
	else:
		meta = getattr(node, "meta", None)
		if meta is None or getattr(meta, "empty", True):
			return None
		line = meta.line
		column = meta.column
	if line is None:
		return None
	return Located(line=line, column=column or 1, file=file)


def _tokens(node: Tree) -> List[Token]:
	return [c for c in node.children if isinstance(c, Token)]


def _build_type(node: Tree | Token) -> TypeExpr:
	kind = _name(node)
	if kind == "named_type":
		return TypeExpr(name=_tokens(node)[0].value)
	if kind == "qualified_type":
		qual, name = _tokens(node)
		return TypeExpr(name=name.value, qualifier=qual.value)
	if kind == "pointer_type":
		inner = _build_type(node.children[-1])
		return TypeExpr(name="*", ctor="pointer", args=(inner,))
	if kind == "slice_type":
		inner = _build_type(node.children[-1])
		return TypeExpr(name="[]", ctor="slice", args=(inner,))
	if kind == "map_type":
		subtrees = [c for c in node.children if isinstance(c, Tree)]
		key, value = (_build_type(c) for c in subtrees)
		return TypeExpr(name="map", ctor="map", args=(key, value))
	raise TypeError(f"unexpected type node {kind}")


def _build_binding(node: Tree, file: Optional[str]) -> BindingSpec:
	param_node, type_node = [c for c in node.children if isinstance(c, Tree)]
	names = _tokens(param_node)
	if _name(param_node) == "qualified_param":
		qualifier, param = names[0].value, names[1].value
	else:
		qualifier, param = None, names[0].value
	return BindingSpec(
		param=param,
		qualifier=qualifier,
		type_expr=_build_type(type_node),
		loc=_loc(node, file),
	)


def _build_clause(node: Tree, file: Optional[str]) -> ImportClause:
	alias: Optional[str] = None
	path: Optional[str] = None
	bindings: List[BindingSpec] = []
	has_bindings = False
	for child in node.children:
		if isinstance(child, Token) and child.type == "STRING":
			path = child.value[1:-1]
		elif isinstance(child, Tree) and _name(child) == "alias":
			alias = _tokens(child)[0].value
		elif isinstance(child, Tree) and _name(child) in ("paren_bindings", "suffix_bindings"):
			has_bindings = True
			bindings.extend(_build_binding(b, file) for b in child.children if isinstance(b, Tree))
	loc = _loc(node, file)
	if not path:
		raise BindingClauseSyntaxError("import path must not be empty", loc=loc)
	return ImportClause(path=path, alias=alias, bindings=tuple(bindings), has_bindings=has_bindings, loc=loc)


def parse_imports(source: str, *, file: Optional[str] = None) -> List[ImportClause]:
	"""Parse zero or more import declarations."""
	try:
		tree = _PARSER.parse(source)
	except UnexpectedInput as err:
		line = getattr(err, "line", None)
		column = getattr(err, "column", None)
		loc = Located(line=line, column=column or 1, file=file) if isinstance(line, int) and line > 0 else None
		raise BindingClauseSyntaxError(f"invalid import binding clause: {err}", loc=loc) from err
	return [_build_clause(c, file) for c in tree.children if isinstance(c, Tree)]


def parse_import_clause(source: str, *, file: Optional[str] = None) -> ImportClause:
	"""Parse exactly one import declaration."""
	clauses = parse_imports(source, file=file)
	if len(clauses) != 1:
		raise BindingClauseSyntaxError(
			f"expected exactly one import declaration, found {len(clauses)}",
			loc=clauses[1].loc if len(clauses) > 1 else None,
		)
	return clauses[0]


def format_import_clause(clause: ImportClause) -> str:
	"""Render a clause back to source form (parenthesized binding list)."""
	head = "import "
	if clause.alias:
		head += f"{clause.alias} "
	head += f'"{clause.path}"'
	if not clause.is_bound:
		return head
	pairs = ", ".join(f"{b.param_text()} => {b.type_expr}" for b in clause.bindings)
	return f"{head} ({pairs})"


__all__ = [
	"BindingClauseSyntaxError",
	"parse_imports",
	"parse_import_clause",
	"format_import_clause",
]
