from typing import Dict, Mapping, Optional

from .interface import CredentialResolver, ResolvedCredential


class StaticCredentialResolver(CredentialResolver):
    """
    Resolves credentials from an in-memory mapping for testing/dev purposes.

    A credential registered for "example.com" also serves "portal.example.com"
    unless a more specific entry exists.
    """

    def __init__(self, credentials: Optional[Mapping[str, ResolvedCredential]] = None):
        self._store: Dict[str, ResolvedCredential] = {
            domain.lower(): cred for domain, cred in (credentials or {}).items()
        }

    def add(self, domain: str, credential: ResolvedCredential):
        self._store[domain.lower()] = credential

    async def resolve(self, domain: str) -> Optional[ResolvedCredential]:
        labels = domain.lower().split(".")
        # Most specific first: a.b.example.com, b.example.com, example.com
        for i in range(len(labels) - 1):
            candidate = ".".join(labels[i:])
            if candidate in self._store:
                return self._store[candidate]
        return self._store.get(domain.lower())
