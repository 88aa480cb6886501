"""
Schema agreement polling.

DDL changes reach the other nodes asynchronously, so right after a
mutation the cluster may report several schema versions at once. The
waiter polls the version map until exactly one version remains, giving
up after a deadline or a maximum number of polls.
"""

import logging
import time
from typing import Callable, Dict, List, Optional

from .exceptions import InvalidAttributeError, SchemaAgreementCancelled, SchemaAgreementTimeout

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 0.5
DEFAULT_AGREEMENT_TIMEOUT = 60.0


class SchemaAgreementWaiter:
    """
    Blocks until a schema version map has a single key.

    Args:
        describe_versions: callable returning {schema_version: [node, ...]}
        poll_interval: seconds to sleep between polls (default: 0.5)
        timeout: seconds before giving up, or None for no deadline (default: 60)
        max_attempts: maximum number of polls, or None for no cap
        clock: monotonic time source, in seconds
        sleep: sleep function used when no cancel event is given

    Example:
        waiter = SchemaAgreementWaiter(client.describe_schema_versions, poll_interval=0.2, timeout=30)
        waiter.wait()
    """

    def __init__(self, describe_versions: Callable[[], Dict[str, List[str]]],
                 poll_interval: float = DEFAULT_POLL_INTERVAL,
                 timeout: Optional[float] = DEFAULT_AGREEMENT_TIMEOUT,
                 max_attempts: Optional[int] = None,
                 clock: Callable[[], float] = time.monotonic,
                 sleep: Callable[[float], None] = time.sleep):
        if poll_interval is None or poll_interval <= 0:
            raise InvalidAttributeError(f"poll_interval must be positive, got {poll_interval!r}")
        if timeout is not None and timeout < 0:
            raise InvalidAttributeError(f"timeout must be non-negative, got {timeout!r}")
        if max_attempts is not None and max_attempts < 1:
            raise InvalidAttributeError(f"max_attempts must be at least 1, got {max_attempts!r}")

        self.describe_versions = describe_versions
        self.poll_interval = poll_interval
        self.timeout = timeout
        self.max_attempts = max_attempts
        self._clock = clock
        self._sleep = sleep

    def wait(self, cancel_event=None):
        """
        Polls until the cluster agrees on one schema version.

        The version map is checked before the first sleep, so an agreed
        cluster costs a single poll.

        Args:
            cancel_event: optional threading.Event; setting it aborts the wait

        Raises:
            SchemaAgreementTimeout: deadline or max_attempts exceeded
            SchemaAgreementCancelled: cancel_event was set
        """
        deadline = None if self.timeout is None else self._clock() + self.timeout
        attempt = 0

        while True:
            attempt += 1
            versions = self.describe_versions()

            if len(versions) == 1:
                logger.info(f"Schema agreement reached after {attempt} poll(s)")
                return

            logger.debug(f"Schema disagreement on poll {attempt}: {len(versions)} versions {sorted(versions)}")

            if cancel_event is not None and cancel_event.is_set():
                raise self._cancelled(versions, attempt)

            if self.max_attempts is not None and attempt >= self.max_attempts:
                logger.error(f"Schema agreement not reached after {attempt} polls")
                raise SchemaAgreementTimeout(
                    f"Schema agreement not reached after {attempt} polls; "
                    f"{len(versions)} versions reported",
                    versions=versions, attempts=attempt
                )

            delay = self.poll_interval
            if deadline is not None:
                remaining = deadline - self._clock()
                if remaining <= 0:
                    logger.error(f"Schema agreement not reached within {self.timeout}s ({attempt} polls)")
                    raise SchemaAgreementTimeout(
                        f"Schema agreement not reached within {self.timeout}s; "
                        f"{len(versions)} versions reported",
                        versions=versions, attempts=attempt
                    )
                delay = min(delay, remaining)

            if cancel_event is not None:
                if cancel_event.wait(delay):
                    raise self._cancelled(versions, attempt)
            else:
                self._sleep(delay)

    @staticmethod
    def _cancelled(versions, attempt):
        logger.warning(f"Schema agreement wait cancelled after {attempt} poll(s)")
        return SchemaAgreementCancelled(
            f"Schema agreement wait cancelled after {attempt} poll(s)",
            versions=versions, attempts=attempt
        )
