"""School ERP API - multi-tenant school administration backend."""

__version__ = "0.1.0"
