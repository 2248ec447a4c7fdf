"""
Result type shared by every repository operation.

A Result carries either a value or an ErrorKind with a reason code. Access
denial is an ordinary failed Result (never an exception) so callers can branch
on ``reason`` to choose between a login prompt and an upgrade prompt.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Generic, Optional, TypeVar

from hymnal.exceptions import (
    AuthenticationException,
    AuthorizationException,
    NotFoundException,
    RemoteUnavailableException,
    ValidationException,
)

T = TypeVar("T")


class ErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    ACCESS_DENIED = "access_denied"
    REMOTE_UNAVAILABLE = "remote_unavailable"
    CORRUPT = "corrupt"


class AccessReason:
    LOGIN_REQUIRED = "login_required"
    PREMIUM_REQUIRED = "premium_required"
    ACCESS_DENIED = "access_denied"


@dataclass(frozen=True)
class Result(Generic[T]):
    value: Optional[T] = None
    error: Optional[ErrorKind] = None
    reason: Optional[str] = None
    message: Optional[str] = None
    is_online: bool = True

    @classmethod
    def success(cls, value: T, is_online: bool = True) -> "Result[T]":
        return cls(value=value, is_online=is_online)

    @classmethod
    def failure(
        cls,
        error: ErrorKind,
        reason: Optional[str] = None,
        message: Optional[str] = None,
        value: Any = None,
        is_online: bool = True,
    ) -> "Result[T]":
        return cls(value=value, error=error, reason=reason or error.value, message=message, is_online=is_online)

    @classmethod
    def denied(cls, reason: str, empty: Any = None) -> "Result[T]":
        """Access denied: an empty value plus the reason code"""
        return cls.failure(ErrorKind.ACCESS_DENIED, reason=reason, value=empty)

    @classmethod
    def not_found(cls, message: Optional[str] = None) -> "Result[T]":
        return cls.failure(ErrorKind.NOT_FOUND, message=message)

    @classmethod
    def unavailable(cls, message: Optional[str] = None, empty: Any = None) -> "Result[T]":
        return cls.failure(ErrorKind.REMOTE_UNAVAILABLE, message=message, value=empty, is_online=False)

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        """Value of a successful Result, else the matching HymnalException"""
        if self.error is None:
            return self.value
        message = self.message or self.reason
        if self.error == ErrorKind.NOT_FOUND:
            raise NotFoundException(message)
        if self.error == ErrorKind.ACCESS_DENIED:
            if self.reason == AccessReason.LOGIN_REQUIRED:
                raise AuthenticationException(message)
            raise AuthorizationException(message)
        if self.error == ErrorKind.REMOTE_UNAVAILABLE:
            raise RemoteUnavailableException(message)
        raise ValidationException(message)

    def value_or(self, default: T) -> T:
        return self.value if self.error is None else default

    def map(self, fn: Callable[[T], Any]) -> "Result":
        if self.error is not None:
            return self
        return Result(value=fn(self.value), is_online=self.is_online)

    def to_dict(self, serialize: Optional[Callable[[Any], Any]] = None) -> dict:
        data = {"success": self.ok, "is_online": self.is_online}
        if self.value is not None:
            data["data"] = serialize(self.value) if serialize else self.value
        if self.error is not None:
            data["error"] = self.error.value
            data["reason"] = self.reason
            if self.message:
                data["message"] = self.message
        return data
