#!/usr/bin/env python3
"""Publish workflow for the Wormhole publisher.

This module wires the four stages together and tracks the run through
its state machine:

    Start -> SignerReady -> PayloadReady -> Published -> Confirmed
          -> IdentifierResolved

Any stage may fail, which moves the run to the terminal Failed state.
"""

import logging
from pathlib import Path

from .config import PublisherConfig
from .core_contract import WormholeCore
from .errors import PublisherError, UnexpectedError
from .models import WorkflowResult, WorkflowState
from .payload import PayloadBuilder
from .progress import PublicationLog
from .publisher import Publisher, TransactionSubmitter
from .resolver import IdentifierResolver
from .signer import SignerResolver
from .vaa_fetcher import VaaFetcher

logger = logging.getLogger(__name__)

_NEXT_STATE: dict[WorkflowState, WorkflowState] = {
    WorkflowState.START: WorkflowState.SIGNER_READY,
    WorkflowState.SIGNER_READY: WorkflowState.PAYLOAD_READY,
    WorkflowState.PAYLOAD_READY: WorkflowState.PUBLISHED,
    WorkflowState.PUBLISHED: WorkflowState.CONFIRMED,
    WorkflowState.CONFIRMED: WorkflowState.IDENTIFIER_RESOLVED,
}


class MessageWorkflow:
    """
    Runs one publication from signer resolution to message id.

    Each collaborator can be replaced, which is how the tests drive the
    workflow without a chain.
    """

    def __init__(
        self,
        config: PublisherConfig,
        signer_resolver: SignerResolver,
        payload_builder: PayloadBuilder,
        publisher: Publisher,
        identifier_resolver: IdentifierResolver,
        vaa_fetcher: VaaFetcher | None = None,
    ) -> None:
        self.config = config
        self.signer_resolver = signer_resolver
        self.payload_builder = payload_builder
        self.publisher = publisher
        self.identifier_resolver = identifier_resolver
        self.vaa_fetcher = vaa_fetcher

    @classmethod
    def from_config(cls, config: PublisherConfig) -> "MessageWorkflow":
        """Create a workflow with the real chain-backed collaborators."""
        core = WormholeCore()
        vaa_fetcher = (
            VaaFetcher(config.vaa, config.resolver, config.chain.wormhole_chain_id)
            if config.vaa.enabled
            else None
        )
        return cls(
            config=config,
            signer_resolver=SignerResolver(config),
            payload_builder=PayloadBuilder(),
            publisher=Publisher(core, TransactionSubmitter(config.publication.receipt_timeout)),
            identifier_resolver=IdentifierResolver(core, config.resolver),
            vaa_fetcher=vaa_fetcher,
        )

    @staticmethod
    def _advance(result: WorkflowResult, state: WorkflowState) -> None:
        if _NEXT_STATE.get(result.state) is not state:
            raise RuntimeError(f"Illegal transition {result.state.value} -> {state.value}")
        result.state = state
        result.history.append(state)
        logger.debug(f"Workflow state: {state.value}")

    @staticmethod
    def _fail(result: WorkflowResult, error: Exception) -> None:
        if result.state.is_terminal:
            raise RuntimeError(f"Run already ended in {result.state.value}") from error
        result.error = error
        result.state = WorkflowState.FAILED
        result.history.append(WorkflowState.FAILED)

    def _load_progress(self) -> PublicationLog | None:
        if not (progress_file := self.config.publication.progress_file):
            return None
        return PublicationLog.load(progress_file)

    async def run(self, message: str | None = None) -> WorkflowResult:
        """
        Run the workflow once.

        Args:
            message: Text to publish; falls back to the configured message,
                then to a timestamped default

        Returns:
            Result in either IdentifierResolved or Failed state
        """
        result = WorkflowResult()
        publication = self.config.publication

        try:
            signer, session = await self.signer_resolver.resolve()
            self._advance(result, WorkflowState.SIGNER_READY)

            if progress := self._load_progress():
                logger.info(
                    f"Resuming publication from {progress.path} "
                    f"({progress.completed} step(s) already accepted)"
                )
                if message is not None and message != progress.message:
                    logger.warning("Ignoring new message text while resuming a logged publication")
                payload = self.payload_builder.build(progress.message)
                params = self.payload_builder.params(progress.consistency_level, nonce=progress.nonce)
            else:
                text = message or publication.message or self.payload_builder.default_message()
                payload = self.payload_builder.build(text)
                params = self.payload_builder.params(publication.consistency_level)
                if publication.progress_file:
                    progress = PublicationLog(
                        path=Path(publication.progress_file),
                        message=payload.text,
                        nonce=params.nonce,
                        consistency_level=params.consistency_level,
                    )
                    progress.save()

            logger.info(f'Message to send: "{payload.text}"')
            logger.info(f"Using Nonce: {params.nonce}, Consistency Level: {params.consistency_level}")
            self._advance(result, WorkflowState.PAYLOAD_READY)

            logger.info("Signing and sending the message publication transaction(s)...")
            publication_result = await self.publisher.publish(
                session, signer, payload, params, progress=progress
            )
            result.transaction_id = publication_result.canonical
            self._advance(result, WorkflowState.PUBLISHED)

            tx_id = publication_result.canonical
            logger.info(f"Primary Transaction ID for parsing: {tx_id.txid}")
            if tx_url := session.chain.tx_url(tx_id.txid):
                logger.info(f"View on explorer: {tx_url}")

            await self.publisher.confirm(session, tx_id)
            self._advance(result, WorkflowState.CONFIRMED)

            result.message_id = await self.identifier_resolver.resolve(session, tx_id)
            self._advance(result, WorkflowState.IDENTIFIER_RESOLVED)

        except PublisherError as e:
            logger.error(f"{type(e).__name__}: {e}", exc_info=True)
            self._fail(result, e)
            return result
        except Exception as e:
            logger.error(f"Unexpected error during publication: {e}", exc_info=True)
            error = UnexpectedError(str(e))
            error.__cause__ = e
            self._fail(result, error)
            return result

        if progress is not None:
            progress.clear()

        if self.vaa_fetcher is not None:
            try:
                result.vaa = await self.vaa_fetcher.fetch(result.message_id)
            except Exception as e:
                # The message id is already resolved; a missing VAA does not fail the run
                logger.warning(f"Signed VAA lookup failed: {e}", exc_info=True)

        return result
