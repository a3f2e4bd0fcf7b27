# apps/core/calculations/__init__.py
"""
Pure calculators shared by models, services and the API.

Nothing in this package touches the database.
"""
