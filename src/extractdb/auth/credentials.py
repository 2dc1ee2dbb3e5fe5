# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from extractdb.auth.errors import ConfigurationError
from extractdb.config import Settings

MISSING_CREDENTIALS = "ADMIN_IDENTIFIER and ADMIN_PASSWORD must be configured."


@dataclass(frozen=True)
class CredentialStore:
    """The single administrator account, as configured for this process."""

    identifier: str = ""
    password: str = ""

    @classmethod
    def from_settings(cls, settings: Settings) -> "CredentialStore":
        return cls(
            identifier=(settings.admin_identifier or "").strip(),
            password=(settings.admin_password or "").strip(),
        )

    @property
    def configured(self) -> bool:
        return bool(self.identifier.strip()) and bool(self.password.strip())

    def get_credentials(self) -> Tuple[str, str]:
        if not self.configured:
            raise ConfigurationError(MISSING_CREDENTIALS)
        return self.identifier.strip(), self.password.strip()

    def get_signing_secret(self) -> str:
        identifier, password = self.get_credentials()
        return f"{identifier}:{password}"
