"""
Tests for the repository Result type
"""
import pytest

from hymnal.exceptions import (
    AuthenticationException,
    AuthorizationException,
    NotFoundException,
    RemoteUnavailableException,
    ValidationException,
)
from hymnal.result import AccessReason, ErrorKind, Result


class TestResult:
    def test_success(self):
        result = Result.success([1, 2])
        assert result.ok
        assert result.unwrap() == [1, 2]
        assert result.to_dict() == {"success": True, "is_online": True, "data": [1, 2]}

    def test_denied_carries_empty_value_and_reason(self):
        result = Result.denied(AccessReason.PREMIUM_REQUIRED, empty=[])
        assert not result.ok
        assert result.value == []
        assert result.error == ErrorKind.ACCESS_DENIED
        assert result.reason == "premium_required"
        assert result.is_online

    def test_unavailable_is_offline(self):
        result = Result.unavailable("timeout", empty=[])
        assert not result.is_online
        assert result.value_or(None) is None
        assert result.to_dict()["reason"] == "remote_unavailable"

    def test_map(self):
        assert Result.success(2, is_online=False).map(lambda v: v * 3) == Result.success(6, is_online=False)
        failed = Result.not_found("missing")
        assert failed.map(lambda v: v * 3) is failed

    def test_to_dict_serializer(self):
        assert Result.success(["a"]).to_dict(lambda v: [x.upper() for x in v])["data"] == ["A"]

    @pytest.mark.parametrize(
        "result,exception",
        [
            (Result.not_found("no such song"), NotFoundException),
            (Result.denied(AccessReason.LOGIN_REQUIRED), AuthenticationException),
            (Result.denied(AccessReason.PREMIUM_REQUIRED), AuthorizationException),
            (Result.denied(AccessReason.ACCESS_DENIED), AuthorizationException),
            (Result.unavailable("offline"), RemoteUnavailableException),
            (Result.failure(ErrorKind.CORRUPT, message="bad entry"), ValidationException),
        ],
    )
    def test_unwrap_raises_matching_exception(self, result, exception):
        with pytest.raises(exception):
            result.unwrap()

    def test_unwrap_message_falls_back_to_reason(self):
        with pytest.raises(AuthorizationException) as excinfo:
            Result.denied(AccessReason.PREMIUM_REQUIRED).unwrap()
        assert excinfo.value.message == "premium_required"
