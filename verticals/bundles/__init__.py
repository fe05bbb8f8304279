"""Bundles vertical — build-your-own gift box engine.

Brings the storefront patterns together in one domain:
- Pydantic configuration aggregate stored as a JSON document
- Async repository with whole-record replacement
- Pure rule resolver, selection validator and pricing engine
- WooCommerce catalog and CoCart adapters on AdapterBase
- FastAPI router for merchandising and storefront calls
- Dataclass configuration
"""
