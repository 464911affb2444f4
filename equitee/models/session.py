"""Signed-in session handed over by the external OAuth provider."""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class AuthSession:
    name: str | None = None
    email: str | None = None
    avatar_url: str | None = None
    access_token: str | None = None

    @property
    def bearer_header(self) -> dict[str, str]:
        if not self.access_token:
            return {}
        return {"Authorization": f"Bearer {self.access_token}"}
