# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
typebind: import-site type binding for interface-parameterized packages.

Packages:
  bindc: the binding engine (eligibility, binding resolution, polymorphic and
         monomorphic lowering, instantiation cache, dual-compile validation)
"""

__all__ = ["bindc"]
