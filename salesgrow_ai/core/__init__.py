"""
Core modules for the SalesGrow AI gateway.

This package contains the model registry, quota tracking, response
caching and the gateway orchestrator.
"""
