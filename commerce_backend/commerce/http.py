# commerce/http.py

"""
HTTP MAPPING FOR CORE RESULTS

Views call the core, get a Result back and turn it into a DRF Response:
- success -> serialized value with the given status
- failure -> {"detail": message, "code": kind} with the error's http_status
"""

from __future__ import annotations

from typing import Callable

from rest_framework import status
from rest_framework.response import Response

from commerce.errors import CommerceError
from commerce.results import Result


def error_response(error: CommerceError) -> Response:
    return Response(
        {"detail": error.message, "code": error.kind},
        status=error.http_status,
    )


def result_response(
    result: Result,
    *,
    serialize: Callable,
    success_status: int = status.HTTP_200_OK,
) -> Response:
    if not result.ok:
        return error_response(result.error)
    return Response(serialize(result.value), status=success_status)
