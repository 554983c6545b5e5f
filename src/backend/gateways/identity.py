from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from common.form_engine.models import Identity


class IdentityProvider(Protocol):
    def current_identity(self) -> Identity:
        ...


@dataclass(frozen=True)
class StaticIdentityProvider:
    """Always reports the same user; for scripts, tests and single-user installs."""

    display_name: str
    user_id: str | None = None

    def current_identity(self) -> Identity:
        return Identity(display_name=self.display_name, user_id=self.user_id)
