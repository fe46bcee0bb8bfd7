# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Monomorphic lowering and the program-wide instantiation cache.

Modules:
  - model: InstantiationKey (with its namespace), Instantiation, ExportPromotion
  - graph: wait-for graph used for cycle detection
  - cache: at-most-once builds per key, failure replay, depth budget
  - promote: export promotion of bound concrete types
  - monomorphize: package instantiation and unit lowering
"""

from .cache import ROOT, BuildContext, InstantiationCache
from .graph import InstantiationGraph
from .model import ExportPromotion, Instantiation, InstantiationKey
from .monomorphize import MonomorphicResult, MonomorphicTransformer

__all__ = [
	"BuildContext",
	"ROOT",
	"InstantiationCache",
	"InstantiationGraph",
	"ExportPromotion",
	"Instantiation",
	"InstantiationKey",
	"MonomorphicResult",
	"MonomorphicTransformer",
]
