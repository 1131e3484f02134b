"""
Secret resolution for the LogDNA ingestion key.

The default resolver reads every parameter below an SSM path and
returns the one matching the requested name.
"""

import asyncio
from typing import Any, Dict, Optional, Protocol

import boto3
import structlog
from botocore.exceptions import BotoCoreError, ClientError

from .exceptions import SecretResolutionError

logger = structlog.get_logger(__name__)


class SecretResolver(Protocol):
    """Maps a (path, name) pair to a secret value."""

    async def resolve(self, path: Optional[str], name: str) -> Optional[str]:
        ...


class SSMSecretResolver:
    """
    Resolve secrets from AWS Systems Manager Parameter Store.

    Parameters are looked up by their last path segment, so
    ("/logdna/prod", "api_key") finds "/logdna/prod/api_key".
    """

    def __init__(self, client: Any = None, with_decryption: bool = True) -> None:
        self._client = client
        self.with_decryption = with_decryption

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = boto3.client("ssm")
        return self._client

    async def resolve(self, path: Optional[str], name: str) -> Optional[str]:
        logger.info("Pulling the LogDNA ingestion key from SSM", ssm_path=path)

        if not path:
            logger.info("No SSM path was supplied")
            return None

        try:
            parameters = await asyncio.to_thread(self._fetch_parameters, path)
        except (BotoCoreError, ClientError) as e:
            raise SecretResolutionError(
                f"Failed to read SSM parameters under {path}",
                details={"ssm_path": path, "error": str(e)},
            ) from e

        return parameters.get(name)

    def _fetch_parameters(self, path: str) -> Dict[str, str]:
        paginator = self.client.get_paginator("get_parameters_by_path")
        parameters: Dict[str, str] = {}

        for page in paginator.paginate(
            Path=path,
            Recursive=True,
            WithDecryption=self.with_decryption,
        ):
            for parameter in page.get("Parameters", []):
                parameters[parameter["Name"].rsplit("/", 1)[-1]] = parameter["Value"]

        logger.debug("Fetched SSM parameters", ssm_path=path, parameters_count=len(parameters))
        return parameters
