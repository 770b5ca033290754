"""
Service container (dependency injection).

Built once at app startup from an explicit Settings object and stored on
app.state. Route handlers receive it through `get_container`.
"""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import Request

from hearth.auth.credentials import CredentialStore
from hearth.auth.middleware import Authorizer
from hearth.auth.roles import RoleRegistry
from hearth.auth.tokens import TokenService
from hearth.config import Settings
from hearth.services.audit import AuditLog
from hearth.services.onboarding import Onboarding
from hearth.storage import BoundedStorage, InMemoryMetadataStorage, MetadataStorage


@dataclass
class Container:
    settings: Settings
    storage: MetadataStorage
    credentials: CredentialStore
    roles: RoleRegistry
    tokens: TokenService
    authorizer: Authorizer
    audit: AuditLog
    onboarding: Onboarding

    def close(self) -> None:
        self.credentials.close()


def build_container(settings: Settings, backend: MetadataStorage | None = None) -> Container:
    """Wire every service against one storage backend."""
    storage = BoundedStorage(backend or InMemoryMetadataStorage(), settings.store_timeout_seconds)
    credentials = CredentialStore(storage, settings)
    roles = RoleRegistry(storage)
    tokens = TokenService(settings)
    audit = AuditLog(storage)
    return Container(
        settings=settings,
        storage=storage,
        credentials=credentials,
        roles=roles,
        tokens=tokens,
        authorizer=Authorizer(tokens, credentials, roles),
        audit=audit,
        onboarding=Onboarding(storage, credentials, roles, audit),
    )


def get_container(request: Request) -> Container:
    return request.app.state.container
