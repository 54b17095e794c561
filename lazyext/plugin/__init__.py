"""
lazyext Extension System - registration, resolution and activation.

This package handles:
- Extension declarations and state
- Trigger indexing
- Dependency resolution
- Activation (install + setup)
- Git installation, build hooks and the lock file
- TOML manifest parsing and deferred setup entry points
"""

__all__ = []
