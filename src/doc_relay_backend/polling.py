"""
Poll-until-terminal loop for long-running provider jobs.

The loop queries a status callable, stops on the first terminal status and
otherwise waits ``policy.interval`` seconds before asking again. It is bounded
by ``policy.max_attempts`` (status requests) and ``policy.timeout`` (seconds of
wall-clock time), either of which may be disabled with ``None`` or ``0``.
Cancelling the awaiting task stops the loop at its next suspension point.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from .errors import JobFailedError, MalformedResponseError, PollTimeoutError
from .models import JobStatus, PollPolicy, TERMINAL_STATUSES

logger = logging.getLogger(__name__)

StatusFetcher = Callable[[], Awaitable[Dict[str, Any]]]
Sleeper = Callable[[float], Awaitable[Any]]


async def poll_until_terminal(
    fetch_status: StatusFetcher,
    policy: PollPolicy,
    *,
    job_id: Optional[str] = None,
    sleep: Sleeper = asyncio.sleep,
) -> Dict[str, Any]:
    """
    Poll ``fetch_status`` until the job reaches a terminal status.

    Args:
        fetch_status: Coroutine function returning the provider's status payload
        policy: Interval and bounds for the loop
        job_id: Used for log messages and error context only
        sleep: Awaitable sleep, replaceable in tests

    Returns:
        The status payload in which ``status`` is ``succeeded``

    Raises:
        JobFailedError: The job ended as ``failed`` or ``cancelled``
        MalformedResponseError: A payload had no ``status`` field
        PollTimeoutError: ``max_attempts`` or ``timeout`` was exceeded
    """
    loop = _poll_loop(fetch_status, policy, job_id=job_id, sleep=sleep)
    if not policy.timeout:
        return await loop
    try:
        return await asyncio.wait_for(loop, timeout=policy.timeout)
    except asyncio.TimeoutError as exc:
        raise PollTimeoutError(f"Job {job_id or '<unknown>'} did not finish within {policy.timeout}s") from exc


async def _poll_loop(
    fetch_status: StatusFetcher,
    policy: PollPolicy,
    *,
    job_id: Optional[str],
    sleep: Sleeper,
) -> Dict[str, Any]:
    attempt = 0
    last_status: Optional[str] = None
    while True:
        attempt += 1
        payload = await fetch_status()
        status = payload.get("status") if isinstance(payload, dict) else None
        if not status:
            raise MalformedResponseError(f"Status response for job {job_id or '<unknown>'} has no 'status' field")

        if status != last_status:
            logger.info(f"Job {job_id} status: {status} (attempt {attempt})")
            last_status = status

        if status == JobStatus.SUCCEEDED.value:
            return payload
        if status in TERMINAL_STATUSES:
            raise JobFailedError(status, job_id=job_id)

        if policy.max_attempts and attempt >= policy.max_attempts:
            raise PollTimeoutError(
                f"Job {job_id or '<unknown>'} still '{status}' after {attempt} status checks",
                details={"status": status, "attempts": attempt},
            )
        await sleep(policy.interval)
