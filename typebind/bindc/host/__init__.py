# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Host compiler interface and the reference host implementation.

Modules:
  - protocol: HostInterface consumed by the engine, Scope, CheckResult
  - ast: already-built syntax tree (packages, files, declarations, imports)
  - types: type descriptors and their canonical textual form
  - symbols: alias resolution, underlying types, method sets
  - checker: ordinary type checker of the reference host language
  - universe: in-memory package registry implementing HostInterface
  - rewrite: deep-copying type substitution over syntax trees
"""

__all__ = ["protocol", "ast", "types", "symbols", "checker", "universe", "rewrite"]
