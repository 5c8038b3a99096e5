"""
Unit tests for per-attempt stdout and warning capture.
"""

import sys
import threading
import warnings

from drover.engine.capture import capturing, current_capture


def test_captures_stdout_and_warnings():
    with capturing() as capture:
        print("hello")
        print("")
        warnings.warn("careful", RuntimeWarning, stacklevel=1)
    assert capture.messages == ["hello"]
    assert capture.warnings == ["RuntimeWarning: careful"]


def test_repeated_warnings_are_all_reported():
    def warn_once_per_location():
        warnings.warn("again", UserWarning, stacklevel=1)

    for _ in range(2):
        with capturing() as capture:
            warn_once_per_location()
        assert capture.warnings == ["UserWarning: again"]


def test_hooks_are_restored():
    original_stdout = sys.stdout
    original_showwarning = warnings.showwarning
    filters = list(warnings.filters)
    with capturing():
        assert sys.stdout is not original_stdout
    assert sys.stdout is original_stdout
    assert warnings.showwarning is original_showwarning
    assert warnings.filters == filters
    assert current_capture() is None


def test_threads_capture_separately():
    results = {}
    barrier = threading.Barrier(2, timeout=5)

    def attempt(name):
        with capturing() as capture:
            barrier.wait()
            print(f"from {name}")
            barrier.wait()
        results[name] = capture.messages

    threads = [threading.Thread(target=attempt, args=(name,)) for name in ("a", "b")]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert results == {"a": ["from a"], "b": ["from b"]}


def test_other_threads_pass_through(capsys):
    ready = threading.Event()
    release = threading.Event()

    def attempt():
        with capturing():
            ready.set()
            release.wait(5)

    thread = threading.Thread(target=attempt)
    thread.start()
    ready.wait(5)
    print("scheduler output")
    release.set()
    thread.join()

    assert "scheduler output" in capsys.readouterr().out
