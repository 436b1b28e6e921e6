"""Tests for the Ok/Err result envelope."""

import pytest

from reportspine.core.errors import SchemaError
from reportspine.core.result import Err, Ok


class TestOk:
    """Tests for Ok."""

    def test_unwrap(self):
        assert Ok(3).unwrap() == 3

    def test_matches_by_pattern(self):
        match Ok([1, 2]):
            case Ok(value):
                assert value == [1, 2]
            case Err():
                pytest.fail("Ok matched Err")


class TestErr:
    """Tests for Err."""

    def test_unwrap_raises_wrapped_error(self):
        error = SchemaError(("Clients",))
        with pytest.raises(SchemaError) as exc_info:
            Err(error).unwrap()
        assert exc_info.value is error

    def test_repr(self):
        assert repr(Err(ValueError("x"))) == "Err(ValueError('x'))"
