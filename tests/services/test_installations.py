from unittest.mock import Mock

import pytest

from observatory.core.exceptions import NoCredentialsForRepo
from observatory.schemas.github import Actor, Installation, Repository
from observatory.services.credentials import CredentialStore
from observatory.services.installations import InstallationRegistry


@pytest.fixture
def credentials():
    return Mock(spec=CredentialStore)


@pytest.fixture
def registry(credentials):
    return InstallationRegistry(credentials)


def test_resolve_registered_repository(registry, installation, repository):
    registry.register(installation, [repository])

    assert registry.resolve_tenant("docs/site") == 42
    assert registry.require_tenant("docs/site") == 42


def test_resolve_unknown_repository(registry, installation, repository):
    registry.register(installation, [repository])

    assert registry.resolve_tenant("docs/other") is None
    with pytest.raises(NoCredentialsForRepo):
        registry.require_tenant("docs/other")


def test_register_overwrites_repositories(registry, installation, repository):
    registry.register(installation, [repository])
    moved = Repository(id=10, name="wiki", full_name="docs/wiki")

    registry.register(installation, [moved])

    assert registry.resolve_tenant("docs/site") is None
    assert registry.resolve_tenant("docs/wiki") == 42
    assert len(registry.installations()) == 1


def test_register_does_not_mutate_installation(registry, installation, repository):
    registry.register(installation, [repository])
    assert installation.repositories == []


def test_remove_evicts_token(registry, credentials, installation, repository):
    registry.register(installation, [repository])

    registry.remove(42)

    assert registry.resolve_tenant("docs/site") is None
    assert registry.installations() == []
    credentials.evict.assert_called_once_with(42)


def test_multiple_tenants(registry, installation, repository):
    other = Installation(id=7, account=Actor(id=2, login="other"), app_id=123)
    registry.register(installation, [repository])
    registry.register(other, [Repository(id=11, name="site", full_name="other/site")])

    assert registry.resolve_tenant("other/site") == 7
    assert registry.resolve_tenant("docs/site") == 42
