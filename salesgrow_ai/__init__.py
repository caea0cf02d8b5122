"""
SalesGrow AI gateway.

Routes AI tasks across upstream model providers with quotas, caching and
fallback, and runs the roleplay sales coach on top of it.
"""

__version__ = "0.1.0"
