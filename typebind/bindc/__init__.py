# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Binding engine package (`bindc`).

A build goes through `typebind.bindc.driver.BuildSession`; the reference host
lives under `typebind.bindc.host`.
"""

__all__ = []
