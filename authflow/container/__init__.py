"""
Dependency injection container for the auth service.
"""
from .container import Container

__all__ = ["Container"]
