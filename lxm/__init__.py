"""
lxm - lazyext command line front-end.

Installs and inspects the extensions declared in a lazyext config file.
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
