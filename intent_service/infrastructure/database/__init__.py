"""
Database connectivity for the catalog store.
"""
