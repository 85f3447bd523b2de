"""
Unit tests for the JSON exchange format.
"""

import pytest

from request_cache.cache import serialization
from request_cache.shared.errors import SerializationError


def test_dumps_keeps_unicode():
    assert serialization.dumps({"city": "Zürich"}) == '{"city": "Zürich"}'


def test_dumps_rejects_nan():
    with pytest.raises(SerializationError):
        serialization.dumps({"ratio": float("inf")})


def test_dumps_rejects_unknown_types():
    with pytest.raises(SerializationError) as exc_info:
        serialization.dumps({"when": object()})

    assert exc_info.value.details["value_type"] == "dict"
    assert isinstance(exc_info.value.__cause__, TypeError)


def test_loads_none_is_absent():
    assert serialization.loads(None) is None


def test_loads_bytes():
    assert serialization.loads('{"value": 1}'.encode("utf-8")) == {"value": 1}


@pytest.mark.parametrize("data", ["", "{", b"\xff\xfe"])
def test_loads_rejects_invalid_text(data):
    with pytest.raises(SerializationError):
        serialization.loads(data)
