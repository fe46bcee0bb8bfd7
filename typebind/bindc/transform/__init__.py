# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""Polymorphic lowering of compilation units (conversion insertion)."""

from .polymorphic import PolymorphicTransformer, TransformResult

__all__ = ["PolymorphicTransformer", "TransformResult"]
