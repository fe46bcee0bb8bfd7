# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""Binding clause resolution: validated bindings and their canonical key."""

from .key import CanonicalKey, ParameterTypeRef, TypeBinding, canonical_key
from .resolver import BindingResolver, ResolvedClause

__all__ = [
	"BindingResolver",
	"ResolvedClause",
	"CanonicalKey",
	"ParameterTypeRef",
	"TypeBinding",
	"canonical_key",
]
