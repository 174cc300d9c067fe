"""Stockyard: multi-tenant data-access core of the warehouse back office.

Resolves the tenant scope of a request, expresses it as query filters,
allocates per-tenant reference numbers and runs generic list queries.
"""

__version__ = "0.1.0"
