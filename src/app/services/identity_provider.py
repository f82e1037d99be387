"""Identity Provider Interface

Resolves a bearer token to the authenticated user.
"""

from abc import ABC, abstractmethod
from typing import Optional
from pydantic import BaseModel


class AuthenticatedUser(BaseModel):
    id: str
    email: Optional[str] = None
    name: Optional[str] = None


class IdentityProvider(ABC):

    @abstractmethod
    async def get_user(self, token: str) -> Optional[AuthenticatedUser]:
        """
        Resolve a bearer token

        Returns:
            AuthenticatedUser, or None if the token is invalid or expired

        Raises:
            IdentityProviderError: If the provider cannot be reached
        """
        pass
