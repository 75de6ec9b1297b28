"""Test the clone error hierarchy."""

import numpy as np
import pytest

from prototype.errors import (
    CloneError,
    CloneErrors,
    ConvertError,
    ErrorKind,
    InvalidTargetError,
    NegativeNumberError,
    NumberOverflowError,
    StringParseError,
    UnsupportedTypeError,
    UnsupportedValueError,
)


class TestErrorHierarchy:
    @pytest.mark.parametrize(
        "error",
        [
            InvalidTargetError(None),
            NumberOverflowError(["a"], np.uint8, 300),
            NegativeNumberError(["a"], np.uint32, -1),
            StringParseError(["a"], int, "x"),
            UnsupportedTypeError(["a"], bool, bytes),
            UnsupportedValueError(["a"], 1.0, "nan"),
            ConvertError(["a"], int, "x", "bad"),
            CloneErrors([]),
        ],
    )
    def test_all_are_clone_errors(self, error):
        assert isinstance(error, CloneError)
        assert isinstance(error, Exception)

    def test_kinds(self):
        assert InvalidTargetError(None).kind is ErrorKind.INVALID_TARGET
        assert NumberOverflowError([], int, 1).kind is ErrorKind.OVERFLOW
        assert NegativeNumberError([], int, 1).kind is ErrorKind.NEGATIVE_NUMBER
        assert StringParseError([], int, "x").kind is ErrorKind.STRING_PARSE
        assert UnsupportedTypeError([], int, str).kind is ErrorKind.UNSUPPORTED_TYPE
        assert UnsupportedValueError([], 1, "r").kind is ErrorKind.UNSUPPORTED_VALUE
        assert ConvertError([], int, 1, "r").kind is ErrorKind.CONVERT
        assert CloneErrors([]).kind is ErrorKind.MULTIPLE


class TestErrorRendering:
    def test_path_is_dotted(self):
        error = NumberOverflowError(["code", "0", "value"], np.uint8, 300)
        assert error.path == "code.0.value"
        assert str(error) == "prototype: code.0.value: value 300 overflows uint8"

    def test_root_errors_have_no_path(self):
        assert str(InvalidTargetError(None)) == "prototype: clone(None)"
        assert str(InvalidTargetError(5)) == "prototype: clone(non-Ref int)"

    def test_value_is_literal_text(self):
        assert NumberOverflowError([], np.uint8, 300).value == "300"
        assert NegativeNumberError([], np.uint32, -1).value == "-1"

    def test_parse_error_keeps_cause(self):
        cause = ValueError("invalid syntax")
        error = StringParseError(["n"], int, "abc", cause)
        assert error.literal == "abc"
        assert error.cause is cause
        assert "invalid syntax" in str(error)

    def test_aggregate_error(self):
        first = NumberOverflowError(["a"], np.int8, 1000)
        second = NegativeNumberError(["b"], np.uint8, -1)
        error = CloneErrors([first, second])
        assert error.errors == [first, second]
        assert str(error).startswith("prototype: 2 errors:")
