"""
Repository layer for data access.
"""
from .credential_repository import CredentialRepository

__all__ = ["CredentialRepository"]
