"""
typebind.bindc.core: diagnostics, spans, configuration and capability sets
shared by every pass of the binding engine.
"""

__all__ = ["diagnostics", "span", "config", "capabilities"]
