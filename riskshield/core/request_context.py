"""Per-request client details, set by the request middleware and read when writing audit rows."""

from contextvars import ContextVar
from dataclasses import dataclass


@dataclass(frozen=True)
class RequestInfo:
    ip_address: str | None = None
    user_agent: str | None = None


_current: ContextVar[RequestInfo] = ContextVar("riskshield_request", default=RequestInfo())


def set_request_info(info: RequestInfo) -> None:
    _current.set(info)


def get_request_info() -> RequestInfo:
    return _current.get()
