"""Start a build and wait for it to finish, as a single logical operation."""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional, Protocol

from typing_extensions import TypedDict

from opentelemetry import trace

from xcode_cloud_mcp.errors import BuildPollingError
from xcode_cloud_mcp.models import CiBuildRun

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

DEFAULT_POLL_INTERVAL_MS = 30_000
DEFAULT_TIMEOUT_MS = 3_600_000
MAX_CONSECUTIVE_ERRORS = 3


class BuildsProtocol(Protocol):
    """The part of `BuildsClient` the poll loop relies on."""

    def start(
        self, workflow_id: str, git_reference_id: Optional[str] = None
    ) -> Awaitable[CiBuildRun]: ...
    def get_by_id(self, build_run_id: str) -> Awaitable[CiBuildRun]: ...


class BuildWaitResult(TypedDict):
    build_run: CiBuildRun
    timeout_exceeded: bool
    total_duration_ms: int
    poll_count: int


def _progress(build_run: CiBuildRun) -> Optional[str]:
    return (build_run.get("attributes") or {}).get("executionProgress")


async def start_build_and_wait(
    builds: BuildsProtocol,
    workflow_id: str,
    git_reference_id: Optional[str] = None,
    poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS,
    timeout_ms: int = DEFAULT_TIMEOUT_MS,
    *,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> BuildWaitResult:
    """Start a build, then poll it until ``executionProgress`` is COMPLETE.

    Running out of time is not an error: the last snapshot is returned with
    ``timeout_exceeded`` set so the caller can keep polling later with the
    build id. The first poll always happens. After that the loop stops as soon
    as the elapsed time is past ``timeout_ms`` or the next interval would end
    past it.

    A failed poll is retried on the next interval. ``MAX_CONSECUTIVE_ERRORS``
    failures in a row abort with `BuildPollingError`, carrying the last error.
    """
    with tracer.start_as_current_span("start_build_and_wait") as span:
        span.set_attribute("xcode_cloud.workflow_id", workflow_id)

        build_run = await builds.start(workflow_id, git_reference_id)
        build_run_id = build_run["id"]
        span.set_attribute("xcode_cloud.build_run_id", build_run_id)
        logger.info("Started build run %s for workflow %s", build_run_id, workflow_id)

        start = clock()
        poll_count = 0
        consecutive_errors = 0

        def elapsed_ms() -> int:
            return int((clock() - start) * 1000)

        while _progress(build_run) != "COMPLETE":
            elapsed = elapsed_ms()
            if elapsed > timeout_ms or (
                poll_count > 0 and elapsed + poll_interval_ms > timeout_ms
            ):
                logger.info(
                    "Build run %s still %s after %d ms; giving up waiting",
                    build_run_id,
                    _progress(build_run),
                    elapsed,
                )
                span.add_event("timeout_exceeded")
                return {
                    "build_run": build_run,
                    "timeout_exceeded": True,
                    "total_duration_ms": elapsed,
                    "poll_count": poll_count,
                }

            await sleep(poll_interval_ms / 1000)
            poll_count += 1

            try:
                build_run = await builds.get_by_id(build_run_id)
            except Exception as e:
                consecutive_errors += 1
                logger.warning(
                    "Polling build run %s failed (%d/%d): %s",
                    build_run_id,
                    consecutive_errors,
                    MAX_CONSECUTIVE_ERRORS,
                    e,
                )
                if consecutive_errors >= MAX_CONSECUTIVE_ERRORS:
                    raise BuildPollingError(
                        f"Failed to poll build status after {MAX_CONSECUTIVE_ERRORS} "
                        f"consecutive errors: {e}"
                    ) from e
                continue

            consecutive_errors = 0
            logger.info(
                "Build run %s poll #%d: %s", build_run_id, poll_count, _progress(build_run)
            )

        span.set_attribute("xcode_cloud.poll_count", poll_count)
        return {
            "build_run": build_run,
            "timeout_exceeded": False,
            "total_duration_ms": elapsed_ms(),
            "poll_count": poll_count,
        }
