# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Structured diagnostics for the binding engine.

Every condition the engine detects is reported as a `Diagnostic` carrying a
`DiagnosticKind` code and a `Span`. Fatal conditions travel as `BindingError`
until the build session catches them at the compilation-unit boundary and
hands them to a `DiagnosticSink`.
"""

from __future__ import annotations

import json
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Optional, Sequence

from .span import Span


class DiagnosticKind(str, Enum):
	"""Stable diagnostic codes (the value is what JSON output carries)."""

	PARAM_NOT_ELIGIBLE = "ParamNotEligible"
	BINDING_UNSATISFIED = "BindingUnsatisfied"
	DUPLICATE_BINDING = "DuplicateBinding"
	ADDRESS_OF_BOUND_FIELD = "AddressOfBoundField"
	CYCLIC_BINDING = "CyclicBinding"
	INSTANTIATION_BUDGET_EXCEEDED = "InstantiationBudgetExceeded"
	BINDING_VISIBILITY = "BindingVisibility"
	TYPE_MISMATCH_AT_USE = "TypeMismatchAtUse"
	AMBIGUOUS_SHARED_STATE = "AmbiguousSharedState"
	NTEC_VIOLATION = "NTECViolation"
	BINDING_SYNTAX = "BindingSyntax"
	UNKNOWN_TYPE = "UnknownType"
	UNKNOWN_PACKAGE = "UnknownPackage"
	TYPE_ERROR = "TypeError"
	TRANSFORM_DIVERGENCE = "TransformDivergence"

	def __str__(self) -> str:
		return self.value


@dataclass
class Diagnostic:
	"""Represents an engine diagnostic (error/warning)."""

	message: str
	code: Optional[str] = None
	# Phase label: eligibility, binding, polymorphic, monomorphic, validate or
	# typecheck (host errors before the engine maps them to a kind).
	phase: Optional[str] = None
	severity: str = "error"
	span: Span = field(default_factory=Span)
	notes: List[str] = field(default_factory=list)

	def __post_init__(self) -> None:
		if self.span is None:  # type: ignore[unreachable]
			self.span = Span()

	@property
	def is_error(self) -> bool:
		return self.severity == "error"

	def to_dict(self) -> dict:
		return {
			"kind": str(self.code) if self.code is not None else None,
			"phase": self.phase,
			"message": self.message,
			"severity": self.severity,
			"file": self.span.file,
			"line": self.span.line,
			"column": self.span.column,
			"notes": list(self.notes),
		}

	def __str__(self) -> str:
		code = f"[{self.code}] " if self.code else ""
		return f"{self.span}: {self.severity}: {code}{self.message}"


def make_diag(
	kind: DiagnosticKind,
	message: str,
	loc: object | None = None,
	*,
	phase: Optional[str] = None,
	severity: str = "error",
	notes: Sequence[str] = (),
	file: Optional[str] = None,
) -> Diagnostic:
	return Diagnostic(
		message=message,
		code=kind,
		phase=phase,
		severity=severity,
		span=Span.from_loc(loc, file=file),
		notes=list(notes),
	)


class BindingError(ValueError):
	"""Raised for fatal binding/instantiation conditions; carries the diagnostics."""

	def __init__(self, diagnostics: Iterable[Diagnostic]) -> None:
		self.diagnostics: List[Diagnostic] = list(diagnostics)
		first = self.diagnostics[0].message if self.diagnostics else "binding failed"
		super().__init__(first)

	@property
	def kinds(self) -> List[str]:
		return [str(d.code) for d in self.diagnostics]


class DiagnosticSink:
	"""Thread-safe collector standing in for the host's diagnostic emitter."""

	def __init__(self) -> None:
		self._lock = threading.Lock()
		self._diagnostics: List[Diagnostic] = []

	def emit(self, diag: Diagnostic) -> None:
		with self._lock:
			self._diagnostics.append(diag)

	def extend(self, diags: Iterable[Diagnostic]) -> None:
		items = list(diags)
		with self._lock:
			self._diagnostics.extend(items)

	@property
	def diagnostics(self) -> List[Diagnostic]:
		with self._lock:
			return list(self._diagnostics)

	def errors(self) -> List[Diagnostic]:
		return [d for d in self.diagnostics if d.severity == "error"]

	def warnings(self) -> List[Diagnostic]:
		return [d for d in self.diagnostics if d.severity == "warning"]

	def of_kind(self, kind: DiagnosticKind) -> List[Diagnostic]:
		return [d for d in self.diagnostics if d.code == kind]

	@property
	def has_errors(self) -> bool:
		return bool(self.errors())

	def to_json(self) -> str:
		diags = self.diagnostics
		payload = {
			"exit_code": 1 if any(d.severity == "error" for d in diags) else 0,
			"diagnostics": [d.to_dict() for d in diags],
		}
		return json.dumps(payload)


__all__ = ["Diagnostic", "DiagnosticKind", "DiagnosticSink", "BindingError", "make_diag"]
