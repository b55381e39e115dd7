from __future__ import annotations

import threading
from contextlib import contextmanager

import pytest


@pytest.fixture()
def hold_lock():
    """
    Return a context manager that keeps a store's lock held by a background
    thread until the block exits, so calls from the test thread contend for it.
    """

    @contextmanager
    def _hold(store):
        acquired = threading.Event()
        release = threading.Event()

        def hold():
            with store._critical_section():
                acquired.set()
                release.wait(5)

        t = threading.Thread(target=hold, daemon=True)
        t.start()
        assert acquired.wait(5)
        try:
            yield store
        finally:
            release.set()
            t.join()

    return _hold
