"""Localised user-facing texts, keyed by language."""
from __future__ import annotations

from .enums import Language

MESSAGES: dict[Language, dict[str, str]] = {
    Language.ENGLISH: {
        "id_not_found": "No record was found with id {id}",
        "username_not_available": "The user name '{username}' is not available",
        "email_not_available": "The email '{email}' is not available",
        "user_not_found": "The user does not exist",
        "error_user_update": "The user could not be updated",
        "technician_not_found": "No technician was found with id {id}",
        "message_not_in_ticket": "Message {message_id} does not belong to ticket {ticket_id}",
        "attachment_too_large": "The attachment exceeds the maximum size of {limit} bytes",
        "email_title": "Password recovery",
        "email_body": "We received a request to reset your password. Follow this link to choose a new one:",
        "review_title": "Your ticket #{id} has been resolved",
        "review_body": "Tell us how we did by reviewing the support you received:",
    },
    Language.SPANISH: {
        "id_not_found": "No se ha encontrado ningún registro con id {id}",
        "username_not_available": "El nombre de usuario '{username}' no está disponible",
        "email_not_available": "El email '{email}' no está disponible",
        "user_not_found": "El usuario no existe",
        "error_user_update": "No se ha podido actualizar el usuario",
        "technician_not_found": "No se ha encontrado ningún técnico con id {id}",
        "message_not_in_ticket": "El mensaje {message_id} no pertenece a la incidencia {ticket_id}",
        "attachment_too_large": "El adjunto supera el tamaño máximo de {limit} bytes",
        "email_title": "Recuperación de contraseña",
        "email_body": "Hemos recibido una solicitud para restablecer tu contraseña. Sigue este enlace para elegir una nueva:",
        "review_title": "Tu incidencia #{id} ha sido resuelta",
        "review_body": "Cuéntanos qué tal lo hicimos valorando la atención recibida:",
    },
}


def translate(key: str, language: Language | int | None = None, **values: object) -> str:
    """Return the text for `key` in `language` (English when unset or unknown)."""

    try:
        catalogue = MESSAGES[Language(language)] if language else MESSAGES[Language.ENGLISH]
    except ValueError:
        catalogue = MESSAGES[Language.ENGLISH]
    return catalogue[key].format(**values)
