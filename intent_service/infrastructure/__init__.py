"""
Infrastructure package for the Intent Service.

This package contains implementation details, external integrations,
and other infrastructure-level components that support the application's
core domain logic.
"""
