# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""Import binding clause parser (lark grammar in `grammar.lark`)."""

from .parser import BindingClauseSyntaxError, format_import_clause, parse_import_clause, parse_imports

__all__ = ["BindingClauseSyntaxError", "format_import_clause", "parse_import_clause", "parse_imports"]
