"""Payload and publication parameter construction."""

import random
import time
from typing import Callable

from .models import MAX_NONCE, Payload, PublicationParams

PAYLOAD_ENCODING = "utf-8"
DEFAULT_MESSAGE_PREFIX = "HelloWormholeSDK"


class PayloadBuilder:
    """Builds the message payload and its publish parameters.

    Deterministic for a given clock and random source, so tests can pin both.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.time,
        rng: random.Random | None = None,
    ) -> None:
        self.clock = clock
        self.rng = rng or random.Random()

    def default_message(self) -> str:
        """Message text stamped with the current time in milliseconds."""
        return f"{DEFAULT_MESSAGE_PREFIX}-{int(self.clock() * 1000)}"

    def build(self, text: str) -> Payload:
        return Payload(data=text.encode(PAYLOAD_ENCODING), text=text)

    def params(self, consistency_level: int, nonce: int | None = None) -> PublicationParams:
        """Publication parameters; a fresh nonce is drawn unless one is given."""
        if nonce is None:
            nonce = self.rng.randrange(MAX_NONCE)
        return PublicationParams(nonce=nonce, consistency_level=consistency_level)

    @staticmethod
    def decode(payload: Payload) -> str:
        return payload.data.decode(PAYLOAD_ENCODING)
