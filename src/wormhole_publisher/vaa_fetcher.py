import asyncio
import logging
from typing import Any, Awaitable, Callable

import httpx

from .config import ResolverConfig, VaaConfig
from .models import MessageId

logger = logging.getLogger(__name__)


class VaaFetcher:
    """Looks up the guardian-signed VAA for a message id on Wormholescan.

    The guardians only sign once the source transaction reaches the
    requested consistency level, so a 404 is retried with the resolver's
    backoff policy.
    """

    def __init__(
        self,
        config: VaaConfig,
        retry: ResolverConfig,
        wormhole_chain_id: int,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Initialize the fetcher.

        Args:
            config: API location
            retry: Attempt count and backoff delays
            wormhole_chain_id: Wormhole id of the emitter chain
            sleep: Awaitable delay function (injected by tests)
        """
        self.config = config
        self.retry = retry
        self.wormhole_chain_id = wormhole_chain_id
        self._sleep = sleep

    def vaa_path(self, message_id: MessageId) -> str:
        emitter = message_id.emitter.removeprefix("0x")
        return f"/api/v1/vaas/{self.wormhole_chain_id}/{emitter}/{message_id.sequence}"

    async def _api_get(self, path: str) -> dict[str, Any] | None:
        """GET from the API.

        Returns:
            Decoded JSON body, or None if the API answered 404

        Raises:
            httpx.HTTPStatusError: For any other error status
        """
        async with httpx.AsyncClient(base_url=self.config.api_url) as client:
            logger.debug(f"GET {self.config.api_url}{path}")
            response: httpx.Response = await client.get(path, timeout=30.0)
            if response.status_code == 404:
                return None
            response.raise_for_status()
            return response.json()

    async def fetch(self, message_id: MessageId) -> str | None:
        """Fetch the base64 VAA for a message id.

        Returns:
            The VAA, or None if it was not available within the attempts
        """
        path = self.vaa_path(message_id)
        for attempt in range(1, self.retry.max_attempts + 1):
            try:
                body = await self._api_get(path)
            except (httpx.HTTPError, ValueError) as e:
                # ValueError covers a body that is not JSON
                logger.warning(f"VAA lookup failed: {e}")
                body = None

            match body:
                case {"data": {"vaa": str(vaa)}} if vaa:
                    logger.info(f"Signed VAA found for {message_id} ({len(vaa)} base64 chars)")
                    return vaa
                case None:
                    pass
                case _:
                    logger.warning(f"Unknown Wormholescan response format: {body}")

            if attempt < self.retry.max_attempts:
                delay = self.retry.delay_for(attempt)
                logger.info(f"VAA not signed yet, retrying in {delay}s")
                await self._sleep(delay)

        logger.warning(f"No signed VAA for {message_id} after {self.retry.max_attempts} attempt(s)")
        return None
