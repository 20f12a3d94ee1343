#!/usr/bin/env python3
"""Command line entry point for the Wormhole publisher.

Publishes one message through the Wormhole core contract and prints the
resulting message id. Exits 0 only when the id was resolved.
"""

import argparse
import asyncio
import logging
import os
import sys

from .config import PublisherConfig
from .models import WorkflowResult
from .workflow import MessageWorkflow

# Get logger for this module
logger = logging.getLogger(__name__)


def setup_logging(level: str = "INFO") -> None:
    """Configure logging for the application.

    Args:
        level: Logging level as string (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    log_level: int = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def build_parser() -> argparse.ArgumentParser:
    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        description="Publish a message through the Wormhole core contract and resolve its id",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""Environment Variables:
  PRIVATE_KEY            - Private key of the publishing account (required)
  SOURCE_CHAIN           - Wormhole chain name (default: Sepolia)
  RPC_URL                - RPC endpoint (default: public endpoint for the chain)
  CORE_CONTRACT_ADDRESS  - Override the Wormhole core contract address
  MESSAGE                - Message text (default: HelloWormholeSDK-<ms>)
  CONSISTENCY_LEVEL      - Finality level 0-255 (default: 1)
  GRACE_PERIOD           - Seconds before parsing the transaction (default: 8)
  MAX_ATTEMPTS           - Parse attempts with exponential backoff (default: 5)
  PROGRESS_FILE          - Resumable progress log location
  WORMHOLESCAN_URL       - API used with --fetch-vaa
  LOG_LEVEL              - Logging level (can be overridden with --log-level)
        """
    )
    parser.add_argument(
        "--message",
        default=None,
        help="Message text to publish"
    )
    parser.add_argument(
        "--consistency-level",
        type=int,
        default=None,
        help="Consistency level for the message (default: 1)"
    )
    parser.add_argument(
        "--progress-file",
        default=None,
        help="Record each accepted transaction here and resume from it on rerun"
    )
    parser.add_argument(
        "--fetch-vaa",
        action="store_true",
        default=False,
        help="Look up the signed VAA on Wormholescan after resolving the message id"
    )
    parser.add_argument(
        "--log-level",
        default=os.environ.get("LOG_LEVEL", "INFO"),
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Set the logging level (default: INFO)"
    )
    return parser


def print_result(result: WorkflowResult) -> None:
    """Print the resolved identifiers to stdout."""
    if (message_id := result.message_id) is None:
        return
    print("--- VAA Identifiers (WormholeMessageId) ---")
    print(f"  Emitter Chain: {message_id.chain}")
    print(f"  Emitter Address: {message_id.emitter}")
    print(f"  Sequence: {message_id.sequence}")
    if result.transaction_id is not None:
        print(f"  Transaction: {result.transaction_id.txid}")
    if result.vaa:
        print(f"  Signed VAA: {result.vaa}")
    print("-----------------------------------------")


async def main(argv: list[str] | None = None) -> int:
    """Run one publication and return the process exit code."""
    args: argparse.Namespace = build_parser().parse_args(argv)
    setup_logging(args.log_level)

    logger.info("=== Wormhole Publisher Starting ===")

    try:
        config: PublisherConfig = PublisherConfig.from_env(
            message=args.message,
            consistency_level=args.consistency_level,
            progress_file=args.progress_file,
            fetch_vaa=args.fetch_vaa,
        )
    except ValueError as e:
        logger.error(f"Configuration Error: {e}")
        logger.error("Please check your environment variables:")
        logger.error("  - PRIVATE_KEY: Private key of the publishing account")
        logger.error("  - RPC_URL: RPC endpoint for the source chain")
        logger.error("  - CONSISTENCY_LEVEL: Integer between 0 and 255")
        return 1

    config.log_config()

    try:
        workflow = MessageWorkflow.from_config(config)
        result = await workflow.run()
    except Exception as e:
        logger.error(f"Fatal Error: {e}", exc_info=True)
        return 1

    if result.succeeded:
        print_result(result)
        logger.info("=== Wormhole Publisher Finished ===")
    else:
        logger.error(
            f"Publication ended in state {result.state.value}: "
            f"{type(result.error).__name__}: {result.error}"
        )
    return result.exit_code


def run() -> None:
    """Console script entry point."""
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        logger.info("\nReceived interrupt signal, aborting...")
        sys.exit(1)
