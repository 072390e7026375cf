"""Shared fixtures for the sponsors tests."""

import threading
from collections.abc import Callable

import pytest
from django.db import connection


def _run_concurrently(*calls: Callable[[], object]) -> list[object]:
    barrier = threading.Barrier(len(calls))
    results: list[object] = [None] * len(calls)

    def worker(index: int, call: Callable[[], object]) -> None:
        try:
            barrier.wait()
            results[index] = call()
        except Exception as exc:  # noqa: BLE001
            results[index] = exc
        finally:
            connection.close()

    threads = [threading.Thread(target=worker, args=(index, call)) for index, call in enumerate(calls)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)
    return results


@pytest.fixture
def run_concurrently():
    """Start callables on separate threads at the same moment.

    Each thread uses its own database connection, so the test must be marked
    ``django_db(transaction=True)``.  Returns each call's result, or the
    exception it raised, in call order.
    """
    return _run_concurrently
