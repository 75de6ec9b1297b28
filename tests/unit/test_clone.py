"""Test the clone entry points and error modes."""

import logging
from dataclasses import dataclass
from typing import Any, Optional

import numpy as np
import pytest

from prototype import (
    CloneErrors,
    InvalidTargetError,
    NegativeNumberError,
    NumberOverflowError,
    Ref,
    UnsupportedValueError,
    clone,
    convert,
    interrupt_on_error,
)


@dataclass
class Limits:
    small: np.int8 = np.int8(0)
    tiny: np.uint8 = np.uint8(0)
    name: str = ""


class TestInvalidTarget:
    @pytest.mark.parametrize("target", [None, 5, [], {}])
    def test_non_ref_target(self, target):
        with pytest.raises(InvalidTargetError):
            clone(target, 1)


class TestNilSource:
    def test_optional_target_is_cleared(self):
        ref = Ref(Optional[int], 3)
        clone(ref, None)
        assert ref.value is None

    def test_dynamic_target_is_cleared(self):
        ref = Ref(Any, 3)
        clone(ref, None)
        assert ref.value is None

    def test_value_target_is_untouched(self):
        ref = Ref(int, 3)
        clone(ref, None)
        assert ref.value == 3


class TestConvert:
    def test_returns_value(self):
        assert convert(5, str) == "5"

    def test_keyword_overrides(self):
        with pytest.raises(CloneErrors):
            convert({"small": 1000}, Limits, interrupt_on_error=False)


class TestErrorModes:
    def test_first_error_interrupts(self):
        ref = Ref(Limits)
        with pytest.raises(NumberOverflowError):
            clone(ref, {"name": "ok", "small": 1000, "tiny": -1})

    def test_best_effort_collects_every_failure(self):
        ref = Ref(Limits)
        with pytest.raises(CloneErrors) as info:
            clone(ref, {"name": "ok", "small": 1000, "tiny": -1}, interrupt_on_error(False))
        kinds = sorted(type(e).__name__ for e in info.value.errors)
        assert kinds == [NegativeNumberError.__name__, NumberOverflowError.__name__]
        assert ref.value.name == "ok"

    def test_best_effort_single_error_is_still_aggregated(self):
        with pytest.raises(CloneErrors) as info:
            clone(Ref(list[np.uint8]), [1, 256, 3], interrupt_on_error(False))
        assert len(info.value.errors) == 1
        assert info.value.errors[0].full_path == ("1",)

    def test_best_effort_without_failures(self):
        ref = Ref(Limits)
        clone(ref, {"small": 1}, interrupt_on_error(False))
        assert ref.value.small == 1

    def test_deep_nesting_reports_unsupported_value(self):
        nested: list = []
        for _ in range(5000):
            nested = [nested]
        with pytest.raises(UnsupportedValueError):
            clone(Ref(), nested)

    def test_context_is_reusable_after_failure(self, cyclic_map):
        with pytest.raises(UnsupportedValueError):
            clone(Ref(), cyclic_map)
        assert convert({"a": 1}, dict[str, int]) == {"a": 1}


class TestLogging:
    def test_debug_record_per_call(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="prototype"):
            convert(5, str)
        assert any("clone int -> str" in r.getMessage() for r in caplog.records)
