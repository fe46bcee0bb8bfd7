# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Source span used by every diagnostic the engine emits.

Host AST nodes carry a `Located` position; binding clauses parsed from text carry
lark token positions. `Span.from_loc` accepts either and keeps the original
object in `raw` so renderers can recover more detail later.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


@dataclass(frozen=True)
class Span:
	"""Best-effort file/line/column of a source construct."""

	file: Optional[str] = None
	line: Optional[int] = None
	column: Optional[int] = None
	raw: Any = None

	@classmethod
	def from_loc(cls, loc: Any, *, file: Optional[str] = None) -> "Span":
		if loc is None:
			return cls(file=file)
		if isinstance(loc, cls):
			if file is not None and loc.file is None:
				return cls(file=file, line=loc.line, column=loc.column, raw=loc.raw)
			return loc
		return cls(
			file=getattr(loc, "file", None) or getattr(loc, "filename", None) or file,
			line=getattr(loc, "line", None),
			column=getattr(loc, "column", None),
			raw=loc,
		)

	@property
	def known(self) -> bool:
		return self.line is not None

	def __str__(self) -> str:
		where = self.file or "<unknown>"
		if self.line is None:
			return where
		if self.column is None:
			return f"{where}:{self.line}"
		return f"{where}:{self.line}:{self.column}"


__all__ = ["Span"]
