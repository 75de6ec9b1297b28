"""Test the process-wide cloner cache and field index under concurrent use."""

import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Optional

from prototype import convert
from prototype.dispatch import type_cloner
from prototype.fields import cached_struct_fields

WORKERS = 8


@dataclass
class Chain:
    name: str = ""
    next: Optional["Chain"] = None


@dataclass
class Branch:
    label: str = ""
    children: list["Branch"] = field(default_factory=list)


@dataclass
class Ring:
    value: int = 0
    parent: Optional["Ring"] = None


def _run_together(fn):
    """Call ``fn`` from WORKERS threads released at the same moment."""
    barrier = threading.Barrier(WORKERS)

    def task(_):
        barrier.wait(timeout=10)
        return fn()

    with ThreadPoolExecutor(max_workers=WORKERS) as pool:
        return list(pool.map(task, range(WORKERS)))


class TestConcurrentCloners:
    def test_self_referential_type_built_from_many_threads(self):
        source = Chain("a", Chain("b", Chain("c")))
        results = _run_together(lambda: convert(source, Chain))
        assert len(results) == WORKERS
        for result in results:
            assert result == source
            assert result is not source
            assert result.next is not source.next

    def test_every_thread_sees_the_same_cloner(self):
        source = Branch("root", [Branch("x"), Branch("y", [Branch("z")])])
        results = _run_together(lambda: convert(source, Branch))
        assert all(result == source for result in results)
        cloners = _run_together(lambda: type_cloner(Branch))
        assert all(cloner is cloners[0] for cloner in cloners)


class TestConcurrentFieldIndex:
    def test_index_built_from_many_threads(self):
        indices = _run_together(lambda: cached_struct_fields(Ring, "prototype"))
        assert list(indices[0].dominants) == ["value", "parent"]
        assert all(index is indices[0] for index in indices)
