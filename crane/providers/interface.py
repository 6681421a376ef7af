from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

from pydantic import BaseModel, Field


class ActResult(BaseModel):
    """Outcome of a natural-language action."""

    success: bool
    message: Optional[str] = None


class ActionProvider(ABC):
    """
    Abstract Base Class interface that defines the contract for any browser
    automation backend (Stagehand, Playwright + an LLM, a remote browser grid, etc.)

    One instance is created per run and is owned exclusively by that run.
    """

    @abstractmethod
    async def navigate(
        self, url: str, wait_until: str = "load", timeout: int = 30000
    ) -> None:
        """Loads a URL. `timeout` is in milliseconds."""
        pass

    @abstractmethod
    async def act(self, instruction: str) -> ActResult:
        """Performs an action described in natural language."""
        pass

    @abstractmethod
    async def extract(self, instruction: str, schema: Optional[Any] = None) -> Any:
        """Extracts data described in natural language, optionally guided by a schema."""
        pass

    @abstractmethod
    async def screenshot(self, full_page: bool = False) -> bytes:
        pass

    @abstractmethod
    async def current_url(self) -> str:
        pass

    @abstractmethod
    async def close(self) -> None:
        """Releases the browser session."""
        pass


@dataclass
class AdapterContext:
    """What a factory knows about the run it creates a provider for."""

    blueprint_id: str
    context_id: Optional[str] = None


# Creates one ActionProvider per run.
AdapterFactory = Callable[[AdapterContext], Awaitable[ActionProvider]]


class ResolvedCredential(BaseModel):
    """Decrypted login data for one domain. Never stored by the engine."""

    username: str
    password: str
    fields: Dict[str, str] = Field(default_factory=dict)

    def field_value(self, name: str) -> str:
        if name == "username":
            return self.username
        if name == "password":
            return self.password
        return self.fields.get(name, "")


class CredentialResolver(ABC):
    """
    Resolves the credentials to use on a given domain.
    Vault-backed implementations live outside the engine.
    """

    @abstractmethod
    async def resolve(self, domain: str) -> Optional[ResolvedCredential]:
        """
        Returns the credential for `domain`, or None when there is none.
        """
        pass
