r"""Discovery of the status code carried by a failure.

Status-code based retry policies need to read an HTTP-like status code
from the failure raised by an operation. ``httpx`` errors carry it on
their response, other errors may expose a ``status_code`` attribute.
"""

from __future__ import annotations

__all__ = ["get_status_code"]

import httpx


def get_status_code(error: BaseException | None) -> int | None:
    """Return the status code carried by a failure.

    Args:
        error: The failure raised by an operation.

    Returns:
        The status code of an ``httpx.HTTPStatusError`` response, the
        integer ``status_code`` attribute of any other error, or ``None``
        if the failure does not carry a status code.

    Example:
        ```pycon
        >>> import httpx
        >>> from aretry.utils.status import get_status_code
        >>> request = httpx.Request("GET", "https://api.example.com")
        >>> response = httpx.Response(503, request=request)
        >>> get_status_code(
        ...     httpx.HTTPStatusError("unavailable", request=request, response=response)
        ... )
        503
        >>> get_status_code(ValueError("no status"))

        ```
    """
    if error is None:
        return None
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code
    status_code = getattr(error, "status_code", None)
    # bool is an int subclass but never a status code
    if isinstance(status_code, int) and not isinstance(status_code, bool):
        return status_code
    return None
