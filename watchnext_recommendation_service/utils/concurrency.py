"""Bounded parallel execution helpers for provider lookups."""
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Callable, Iterable, List, Optional, TypeVar

from watchnext_recommendation_service.errors import NotFoundError

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


def is_cancelled(cancel_event: Optional[threading.Event]) -> bool:
    return cancel_event is not None and cancel_event.is_set()


def bounded_map(
        func: Callable[[T], R],
        items: Iterable[T],
        max_workers: int = 8,
        timeout: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
        label: str = "lookup"
) -> List[Optional[R]]:
    """
    Apply func to every item with at most max_workers calls in flight.

    A call that raises, times out or is skipped because of cancellation
    resolves to None at its position; it never aborts the batch.

    Args:
        func: Callable applied to each item
        items: Inputs, results keep their order
        max_workers: Concurrency cap
        timeout: Overall wait for the batch in seconds (None = no limit)
        cancel_event: When set, calls that have not started are skipped
        label: Name used in log messages

    Returns:
        List of results (None for failures) aligned with items
    """
    items = list(items)
    results: List[Optional[R]] = [None] * len(items)
    if not items or is_cancelled(cancel_event):
        return results

    def _run(item: T) -> Optional[R]:
        if is_cancelled(cancel_event):
            return None
        return func(item)

    executor = ThreadPoolExecutor(
        max_workers=max(1, min(max_workers, len(items))),
        thread_name_prefix=label
    )
    try:
        futures: dict[Future, int] = {
            executor.submit(_run, item): idx for idx, item in enumerate(items)
        }
        done, not_done = wait(futures, timeout=timeout)

        for future in not_done:
            future.cancel()
            logger.warning(f"{label} for {items[futures[future]]!r} timed out after {timeout}s")

        for future in done:
            idx = futures[future]
            try:
                results[idx] = future.result()
            except NotFoundError as e:
                logger.info(f"{label} for {items[idx]!r} found nothing: {e}")
            except Exception as e:
                logger.warning(f"{label} for {items[idx]!r} failed: {e}")
    finally:
        executor.shutdown(wait=False, cancel_futures=True)

    return results
