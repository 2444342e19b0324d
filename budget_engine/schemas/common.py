"""
Shared Pydantic v2 schemas reused across multiple modules.

Provides the read-only snapshot base, the message envelope and the typed
error body returned by the exception handlers in ``main.py``.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class Snapshot(BaseModel):
    """Base for every read-only view handed out by the services.

    Snapshots are built from ORM rows (``from_attributes``) and frozen, so a
    collaborator holding one can never mutate engine state through it.
    """

    model_config = ConfigDict(from_attributes=True, frozen=True)


class MessageResponse(BaseModel):
    """Generic message envelope for operations that do not return a resource.

    Attributes:
        message: Short human-readable result summary.
        detail: Optional extended information.
    """

    message: str = Field(..., description="Résumé du résultat de l'opération.")
    detail: str | None = Field(
        default=None,
        description="Information complémentaire (contexte, suggestion, etc.).",
    )


class ErrorResponse(BaseModel):
    """Typed failure body for every ``EngineError``.

    Attributes:
        error: Stable error code, e.g. ``"INSUFFICIENT_CREDIT"``.
        detail: Human-readable message.
        retryable: True only when retrying the same command is safe.
    """

    error: str = Field(..., description="Code d'erreur stable.")
    detail: str = Field(..., description="Message explicatif.")
    retryable: bool = Field(default=False, description="La commande peut être rejouée.")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "error": "INSUFFICIENT_CREDIT",
                "detail": "Crédit insuffisant sur la ligne 61-001.",
                "retryable": False,
            }
        }
    )
