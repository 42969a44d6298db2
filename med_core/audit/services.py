# med_core/audit/services.py
from __future__ import annotations

import logging
from typing import Any, Dict, Optional
from uuid import UUID

from django.contrib.auth import get_user_model
from django.db import DatabaseError, transaction

from med_core.audit.models import UNKNOWN_USER_ID, UNKNOWN_USER_NAME, AuditLogEntry
from med_core.common.errors import AuditError

logger = logging.getLogger(__name__)

MEDICATION_ENTITY = "Medication"


def resolve_actor_name(actor_user_id: int | None) -> str:
    """
    Best-effort display name for the actor.
    Directory display_name wins, then the auth user's full name, then username.
    """
    if actor_user_id is None:
        return UNKNOWN_USER_NAME

    User = get_user_model()
    try:
        # own savepoint: a failed lookup must not abort the caller's transaction
        with transaction.atomic():
            user = User.objects.select_related("profile").filter(pk=actor_user_id).first()
    except DatabaseError:
        logger.warning("Actor lookup failed for user_id=%s", actor_user_id, exc_info=True)
        return UNKNOWN_USER_NAME

    if user is None:
        return UNKNOWN_USER_NAME

    profile = getattr(user, "profile", None)
    if profile is not None and profile.display_name:
        return profile.display_name

    return user.get_full_name() or user.get_username() or UNKNOWN_USER_NAME


class AuditService:
    """
    Central audit writer.

    Writes are a side channel: any failure is logged and swallowed so the
    medication data path is never blocked by an audit outage. Each write runs
    in its own savepoint, so a failed insert does not break the caller's
    transaction either.
    """

    @staticmethod
    def record(
        *,
        action: str,
        actor_user_id: int | None,
        entity_id: UUID | str,
        entity_name: str = "",
        details: Optional[Dict[str, Any]] = None,
        entity: str = MEDICATION_ENTITY,
    ) -> AuditLogEntry | None:
        try:
            return AuditService._append(
                action=action,
                actor_user_id=actor_user_id,
                entity=entity,
                entity_id=entity_id,
                entity_name=entity_name,
                details=details or {},
            )
        except AuditError as exc:
            logger.error(
                "%s action=%s entity=%s entity_id=%s",
                exc.message,
                action,
                entity,
                entity_id,
                exc_info=exc.__cause__ or exc,
            )
            return None

    @staticmethod
    def _append(
        *,
        action: str,
        actor_user_id: int | None,
        entity: str,
        entity_id: UUID | str,
        entity_name: str,
        details: Dict[str, Any],
    ) -> AuditLogEntry:
        try:
            with transaction.atomic():
                user_name = resolve_actor_name(actor_user_id)
                entry = AuditLogEntry.objects.create(
                    action=action,
                    user_id=str(actor_user_id) if actor_user_id is not None else UNKNOWN_USER_ID,
                    user_name=user_name,
                    entity=entity,
                    entity_id=str(entity_id),
                    entity_name=entity_name or "",
                    details=details,
                )
        except Exception as exc:
            raise AuditError(f"Audit write failed for {action}") from exc

        logger.info(
            "AUDIT: %s %s %s/%s",
            entry.user_name,
            entry.action,
            entry.entity,
            entry.entity_id,
        )
        return entry
