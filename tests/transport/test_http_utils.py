from unittest.mock import Mock

import httpx
import pytest

from analytics.errors import (
    DeliveryError,
    InvalidCredentialError,
    ServerError,
    TooManyRequestsError,
)
from analytics.transport.http_utils import extract_detail, raise_for_delivery_status


def test_extract_detail_valid_json_with_detail():
    response = Mock()
    response.json.return_value = {"detail": "Error message"}
    assert extract_detail(response) == "Error message"


def test_extract_detail_falls_back_to_message():
    response = Mock()
    response.json.return_value = {"message": "Something else"}
    assert extract_detail(response) == "Something else"


def test_extract_detail_invalid_json():
    response = Mock()
    response.json.side_effect = ValueError()
    assert extract_detail(response) is None


def test_extract_detail_empty_response():
    response = Mock()
    response.json.return_value = {}
    assert extract_detail(response) is None


@pytest.mark.parametrize(
    "status_code, expected",
    [
        (401, InvalidCredentialError),
        (403, InvalidCredentialError),
        (429, TooManyRequestsError),
        (500, ServerError),
        (503, ServerError),
        (400, DeliveryError),
        (413, DeliveryError),
    ],
)
def test_raise_for_delivery_status(status_code, expected):
    response = httpx.Response(status_code, json={"detail": "nope"})

    with pytest.raises(expected) as exc_info:
        raise_for_delivery_status(response)

    assert type(exc_info.value) is expected
    assert exc_info.value.status_code == status_code
