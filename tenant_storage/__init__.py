# tenant_storage/__init__.py

"""
Tenant-isolated file storage.

Exposes the package version so scripts can read it
(e.g. `from tenant_storage import __version__`).
"""

__version__ = "0.1.0"
