"""
Tests for ingestion key lookup through the secret resolver.

A key resolved from SSM is cached on the resolver; failures leave the
key unset instead of failing resolution.
"""

from typing import List, Optional, Tuple

import pytest

from logdna_cloudwatch.config import ConfigResolver, get_config_resolver
from logdna_cloudwatch.core.exceptions import SecretResolutionError


class RecordingSecretResolver:
    """Secret resolver returning a fixed value and recording calls."""

    def __init__(self, value: Optional[str] = "ssm-key", error: Optional[Exception] = None) -> None:
        self.value = value
        self.error = error
        self.calls: List[Tuple[Optional[str], str]] = []

    async def resolve(self, path: Optional[str], name: str) -> Optional[str]:
        self.calls.append((path, name))
        if self.error:
            raise self.error
        return self.value


@pytest.fixture
def ssm_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SSM_PARAMS_PATH", "/logdna/prod")
    monkeypatch.setenv("SSM_SECRET_LOGNDA_KEY_NAME", "ingestion_key")


class TestSecretLookup:

    @pytest.mark.asyncio
    async def test_key_resolved_from_ssm(self, ssm_environment: None):
        secrets = RecordingSecretResolver()
        resolver = ConfigResolver(secret_resolver=secrets)

        config = await resolver.resolve()

        assert config.key == "ssm-key"
        assert secrets.calls == [("/logdna/prod", "ingestion_key")]

    @pytest.mark.asyncio
    async def test_explicit_key_skips_lookup(self, ssm_environment: None, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("LOGDNA_KEY", "env-key")
        secrets = RecordingSecretResolver()

        config = await ConfigResolver(secret_resolver=secrets).resolve()

        assert config.key == "env-key"
        assert secrets.calls == []

    @pytest.mark.asyncio
    async def test_no_key_name_skips_lookup(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("SSM_PARAMS_PATH", "/logdna/prod")
        secrets = RecordingSecretResolver()

        config = await ConfigResolver(secret_resolver=secrets).resolve()

        assert config.key is None
        assert secrets.calls == []

    @pytest.mark.asyncio
    async def test_key_cached_across_resolutions(self, ssm_environment: None):
        secrets = RecordingSecretResolver()
        resolver = ConfigResolver(secret_resolver=secrets)

        first = await resolver.resolve()
        second = await resolver.resolve()

        assert first.key == second.key == "ssm-key"
        assert len(secrets.calls) == 1

    @pytest.mark.asyncio
    async def test_invalidate_forces_new_lookup(self, ssm_environment: None):
        secrets = RecordingSecretResolver()
        resolver = ConfigResolver(secret_resolver=secrets)

        await resolver.resolve()
        resolver.invalidate()
        await resolver.resolve()

        assert len(secrets.calls) == 2


class TestSecretFailures:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [
        SecretResolutionError("Failed to read SSM parameters"),
        RuntimeError("unexpected"),
    ])
    async def test_failure_leaves_key_absent(self, ssm_environment: None, error: Exception):
        secrets = RecordingSecretResolver(error=error)
        resolver = ConfigResolver(secret_resolver=secrets)

        config = await resolver.resolve()

        assert config.key is None

    @pytest.mark.asyncio
    async def test_failure_is_not_cached(self, ssm_environment: None):
        secrets = RecordingSecretResolver(error=SecretResolutionError("throttled"))
        resolver = ConfigResolver(secret_resolver=secrets)

        await resolver.resolve()
        secrets.error = None
        config = await resolver.resolve()

        assert config.key == "ssm-key"
        assert len(secrets.calls) == 2

    @pytest.mark.asyncio
    async def test_missing_parameter_leaves_key_absent(self, ssm_environment: None):
        resolver = ConfigResolver(secret_resolver=RecordingSecretResolver(value=None))

        config = await resolver.resolve()

        assert config.key is None


def test_global_resolver_is_shared():
    assert get_config_resolver() is get_config_resolver()
