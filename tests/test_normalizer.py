"""Tests for response normalization."""

import pytest

from cleanspeak.errors import AuthenticationFailed, RequestFailed
from cleanspeak.normalizer import application_id_from, error_from_response, normalize_error, parse_filter_result


def test_no_matches_is_not_filtered():
    result = parse_filter_result('{"replacement": "hello"}')
    assert result.filtered is False
    assert result.replacement == "hello"


def test_matches_are_filtered():
    result = parse_filter_result(b'{"matches": [{"matched": "dirty"}], "replacement": "*****"}')
    assert result.filtered is True
    assert result.replacement == "*****"


def test_undecodable_filter_body():
    with pytest.raises(RequestFailed) as excinfo:
        parse_filter_result("<html>oops</html>")
    assert excinfo.value.message == "<html>oops</html>"


def test_normalize_json_error():
    error = normalize_error(400, '{"fieldErrors": {"content": [{"code": "[blank]"}]}}')
    assert error.status_code == 400
    assert error.message == {"fieldErrors": {"content": [{"code": "[blank]"}]}}


def test_normalize_text_error():
    error = normalize_error(503, "Service Unavailable")
    assert error.to_dict() == {"statusCode": 503, "message": "Service Unavailable"}


@pytest.mark.parametrize("body", [None, b"\xff\xfe", "", "{not json", "[" * 100000])
def test_normalize_never_raises(body):
    error = normalize_error(500, body)
    assert error.status_code == 500
    assert isinstance(error.message, str)


def test_error_message_is_json():
    assert str(normalize_error(404, "missing")) == '{"statusCode": 404, "message": "missing"}'


def test_unauthorized_gets_fixed_message():
    error = error_from_response(401, '{"whatever": true}')
    assert isinstance(error, AuthenticationFailed)
    assert error.status_code == 401


def test_other_statuses_are_normalized():
    error = error_from_response(403, "nope")
    assert type(error) is RequestFailed


def test_application_id():
    assert application_id_from('{"application": {"id": "a1", "name": "x"}}') == "a1"
    with pytest.raises(RequestFailed):
        application_id_from('{"application": {}}')


def test_deeply_nested_body_is_kept_as_text():
    body = "[" * 100000
    assert normalize_error(400, body).message == body
    with pytest.raises(RequestFailed) as excinfo:
        parse_filter_result(body)
    assert excinfo.value.message == body
    with pytest.raises(RequestFailed):
        application_id_from(body.encode())
