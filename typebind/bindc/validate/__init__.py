# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""Cross-checks between the two lowerings (strict builds only)."""

from .dual import DualCompileValidator

__all__ = ["DualCompileValidator"]
