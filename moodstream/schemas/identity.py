from typing import Optional

from pydantic import BaseModel


class IdentityProfile(BaseModel):
    """Principal returned by the identity provider for a valid token."""

    subject: str
    email: Optional[str] = None
    display_name: Optional[str] = None

    @property
    def best_name(self) -> Optional[str]:
        return self.display_name or self.email or None
