"""
Providers - External Capabilities

Interfaces for the collaborators the engine consumes: the browser action
provider and the credential resolver.
"""

from crane.providers.interface import (
    ActionProvider,
    ActResult,
    AdapterContext,
    AdapterFactory,
    CredentialResolver,
    ResolvedCredential,
)
from crane.providers.credentials import StaticCredentialResolver

__all__ = [
    "ActionProvider",
    "ActResult",
    "AdapterContext",
    "AdapterFactory",
    "CredentialResolver",
    "ResolvedCredential",
    "StaticCredentialResolver",
]
