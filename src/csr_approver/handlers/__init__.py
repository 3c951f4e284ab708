"""
Kopf handlers for the CSR approver.

Importing this package registers the handlers with kopf.
"""

from . import csr

__all__ = ["csr"]
