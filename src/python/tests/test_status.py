import pytest

from fluenthttp.status import ResponseStatus, StatusClass


@pytest.mark.parametrize("code, expected", [
    (100, ResponseStatus.CONTINUE),
    (200, ResponseStatus.OK),
    (204, ResponseStatus.NO_CONTENT),
    (302, ResponseStatus.FOUND),
    (404, ResponseStatus.NOT_FOUND),
    (418, ResponseStatus.IM_A_TEAPOT),
    (500, ResponseStatus.INTERNAL_SERVER_ERROR),
    (511, ResponseStatus.NETWORK_AUTHENTICATION_REQUIRED),
])
def test_by_code_known(code, expected):
    assert ResponseStatus.by_code(code) is expected
    assert ResponseStatus.by_code(code).code == code


@pytest.mark.parametrize("code", [0, -1, 99, 299, 306, 499, 599, 600, 1000])
def test_by_code_unknown_falls_back(code):
    assert ResponseStatus.by_code(code) is ResponseStatus.UNKNOWN


def test_unknown_is_not_a_lookup_target():
    # UNKNOWN's own value must not resolve back to it through the table.
    assert ResponseStatus.by_code(ResponseStatus.UNKNOWN.value) is ResponseStatus.UNKNOWN
    assert ResponseStatus.UNKNOWN.status_class is StatusClass.UNKNOWN


def test_status_class_of_ranges():
    assert StatusClass.of(101) is StatusClass.INFORMATIONAL
    assert StatusClass.of(299) is StatusClass.SUCCESS
    assert StatusClass.of(399) is StatusClass.REDIRECTION
    assert StatusClass.of(450) is StatusClass.CLIENT_ERROR
    assert StatusClass.of(599) is StatusClass.SERVER_ERROR
    assert StatusClass.of(600) is StatusClass.UNKNOWN
    assert StatusClass.of(42) is StatusClass.UNKNOWN


def test_predicates():
    assert ResponseStatus.OK.is_success
    assert not ResponseStatus.OK.is_error
    assert ResponseStatus.MOVED_PERMANENTLY.is_redirect
    assert ResponseStatus.NOT_FOUND.is_error
    assert ResponseStatus.BAD_GATEWAY.is_error
    assert not ResponseStatus.UNKNOWN.is_success


def test_reason_phrases():
    assert ResponseStatus.OK.reason == "OK"
    assert ResponseStatus.NOT_FOUND.reason == "Not Found"
    assert ResponseStatus.UNKNOWN.reason == "Unknown"
