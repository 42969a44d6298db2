# med_core/common/api/exceptions.py

from __future__ import annotations

import logging
import uuid
from typing import Any

from django.http import Http404
from rest_framework import status
from rest_framework.exceptions import APIException, NotAuthenticated, PermissionDenied, ValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from med_core.common import errors

logger = logging.getLogger(__name__)


def ensure_request_id(request) -> str:
    """
    Ensures request has a stable request_id attribute and returns it.
    Safe to call from middleware and DRF exception handler.
    """
    rid = getattr(request, "request_id", None) if request is not None else None
    if not rid:
        rid = uuid.uuid4().hex
        if request is not None:
            setattr(request, "request_id", rid)
    return rid


def build_error_envelope(*, request=None, code: str, message: str, details: Any = None) -> dict[str, Any]:
    """
    Canonical error envelope for the medication API.
    Reusable from plain Django views (JsonResponse) and DRF (Response).
    """
    rid = ensure_request_id(request)
    return {
        "error": {
            "code": code,
            "message": message,
            "details": details,
            "request_id": rid,
        }
    }


# Domain error -> HTTP status. AuditError never leaves AuditService.
DOMAIN_STATUS = {
    errors.ValidationError: status.HTTP_400_BAD_REQUEST,
    errors.AuthorizationError: status.HTTP_403_FORBIDDEN,
    errors.NotFoundError: status.HTTP_404_NOT_FOUND,
    errors.StorageError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def _status_for_domain_error(exc: errors.MedicationError) -> int:
    for exc_class, http_status in DOMAIN_STATUS.items():
        if isinstance(exc, exc_class):
            return http_status
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def _code_for(exc: Exception, http_status: int) -> str:
    if isinstance(exc, ValidationError):
        return "validation_error"
    if isinstance(exc, NotAuthenticated):
        return "not_authenticated"
    if isinstance(exc, PermissionDenied):
        return "permission_denied"
    if isinstance(exc, Http404):
        return "not_found"
    if isinstance(exc, APIException):
        return getattr(exc, "default_code", "api_error") or "api_error"
    if http_status >= 500:
        return "server_error"
    return "error"


_FORWARDED_HEADERS = ("WWW-Authenticate", "Retry-After")


def _split_drf_payload(data: Any) -> tuple[str, Any]:
    """
    DRF puts its errors in response.data. A lone {"detail": ...} becomes the
    message; field errors (serializer style) travel as details.
    """
    if isinstance(data, dict) and "detail" in data:
        rest = {k: v for k, v in data.items() if k != "detail"}
        return str(data["detail"]), rest or None
    return "Request failed.", data


def api_exception_handler(exc: Exception, context: dict[str, Any]):
    request = context.get("request")

    if isinstance(exc, errors.MedicationError):
        http_status = _status_for_domain_error(exc)
        if http_status >= 500:
            logger.error("Request failed with %s: %s", exc.code, exc.message, exc_info=exc)
        return Response(
            build_error_envelope(
                request=request,
                code=exc.code,
                message=exc.message,
                details=exc.details,
            ),
            status=http_status,
        )

    response = drf_exception_handler(exc, context)

    # Truly unhandled error
    if response is None:
        logger.error("Unhandled error while serving request", exc_info=exc)
        return Response(
            build_error_envelope(
                request=request,
                code="server_error",
                message="Unexpected server error.",
                details=None,
            ),
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    message, details = _split_drf_payload(response.data)
    envelope = build_error_envelope(
        request=request,
        code=_code_for(exc, response.status_code),
        message=message,
        details=details,
    )

    # 401 needs WWW-Authenticate, throttling sets Retry-After
    headers = {name: response[name] for name in _FORWARDED_HEADERS if response.has_header(name)}
    return Response(envelope, status=response.status_code, headers=headers)
