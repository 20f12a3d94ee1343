"""
Durable progress log for multi-step publication.

Records the message, its publish parameters, every accepted step and the
hash of a step that was broadcast but not yet confirmed, so a crashed run
can resume from the first missing step instead of publishing the message
again.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


@dataclass
class PublicationLog:
    """
    JSON-backed record of one publication.

    The file is rewritten atomically (write to a temp file, then replace)
    as soon as a step is broadcast and again once it is accepted.
    """

    path: Path
    message: str
    nonce: int
    consistency_level: int
    steps: list[str] = field(default_factory=list)
    pending: str | None = None  # broadcast hash of step len(steps), unconfirmed

    @classmethod
    def load(cls, path: str | os.PathLike[str]) -> "PublicationLog | None":
        """
        Load an existing log.

        Args:
            path: Location of the log file

        Returns:
            The log, or None if the file does not exist

        Raises:
            ValueError: If the file exists but is not a valid progress log
        """
        log_path = Path(path)
        if not log_path.exists():
            return None

        try:
            with log_path.open() as file:
                data: dict[str, Any] = json.load(file)
            steps = [step["txid"] for step in sorted(data["steps"], key=lambda s: s["index"])]
            log = cls(
                path=log_path,
                message=data["message"],
                nonce=int(data["nonce"]),
                consistency_level=int(data["consistency_level"]),
                steps=steps,
            )
            if (pending := data.get("pending")) is not None:
                if int(pending["index"]) != len(steps):
                    raise ValueError(
                        f"pending step {pending['index']} does not follow {len(steps)} steps"
                    )
                log.pending = pending["txid"]
        except (ValueError, KeyError, TypeError) as e:
            raise ValueError(f"Corrupt progress log {log_path}: {e}") from e

        logger.info(f"Loaded progress log {log_path} with {len(log.steps)} completed steps")
        if log.pending:
            logger.info(f"Step {len(log.steps) + 1} was broadcast as {log.pending} before the last run stopped")
        return log

    @property
    def completed(self) -> int:
        return len(self.steps)

    def record_pending(self, index: int, txid: str) -> None:
        """
        Record a step that was broadcast but is not yet confirmed.

        Saved before waiting for the receipt, so a crash during the wait
        leaves the hash behind for the next run to check.
        """
        if index != len(self.steps):
            raise ValueError(
                f"Steps must be recorded in order: expected index {len(self.steps)}, got {index}"
            )
        self.pending = txid
        self.save()

    def clear_pending(self) -> None:
        """Forget a broadcast step that was dropped or reverted."""
        self.pending = None
        self.save()

    def record_step(self, index: int, txid: str) -> None:
        """
        Record an accepted step and persist the log.

        Args:
            index: Zero-based position of the step in the publish sequence
            txid: Hash of the accepted transaction
        """
        if index != len(self.steps):
            raise ValueError(
                f"Steps must be recorded in order: expected index {len(self.steps)}, got {index}"
            )
        self.steps.append(txid)
        self.pending = None
        self.save()

    def save(self) -> None:
        data = {
            "message": self.message,
            "nonce": self.nonce,
            "consistency_level": self.consistency_level,
            "steps": [{"index": i, "txid": txid} for i, txid in enumerate(self.steps)],
            "pending": (
                {"index": len(self.steps), "txid": self.pending} if self.pending else None
            ),
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        with tmp_path.open("w") as file:
            json.dump(data, file, indent=2)
        os.replace(tmp_path, self.path)
        logger.debug(f"Progress log saved to {self.path} ({len(self.steps)} steps)")

    def clear(self) -> None:
        """Remove the log once the run has fully succeeded."""
        self.path.unlink(missing_ok=True)
        logger.debug(f"Progress log {self.path} removed")
