"""
BookSwap Backend — Error Code Table
====================================

What:  Static table of machine-readable error codes and user-facing messages.
Why:   The frontend switches on `code` and shows `message` verbatim, so both
       must be stable and defined in exactly one place.
Who:   Referenced by the exception classes in `bookswap.exceptions`, which
       the services raise and the global handlers serialise.

Messages are in Spanish because they are displayed as-is to end users.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class ErrorInfo:
    code: str
    message: str


# ── Accounts & authentication ─────────────────────────────────────────────
UNREGISTERED_USER = ErrorInfo(
    "UNREGISTERED_USER", "El correo electrónico no está registrado."
)
UNAUTHENTICATED = ErrorInfo(
    "UNAUTHENTICATED", "Tienes que ingresar sesión para acceder a este recurso."
)
SESSION_EXPIRED = ErrorInfo("SESSION_EXPIRED", "Su sesión ha expirado")
UNVALIDATED = ErrorInfo(
    "UNVALIDATED", "Debes validar tu correo electrónico antes de iniciar sesión."
)
TOKEN_EXPIRED = ErrorInfo("TOKEN_EXPIRED", "Este link ha expirado, pide uno nuevo.")
INCORRECT_PASSWORD = ErrorInfo(
    "INCORRECT_PASSWORD", "La contraseña o usuario son incorrectos."
)
USER_NOT_FOUND = ErrorInfo("USER_NOT_FOUND", "El usuario no fue encontrado.")
USER_ALREADY_EXISTS = ErrorInfo(
    "USER_ALREADY_EXISTS",
    "Ese correo electrónico ya está registrado, intenta ingresando sesión.",
)
INVALID_EMAIL = ErrorInfo("INVALID_EMAIL", "El correo electrónico no es válido.")
INVALID_PASSWORD = ErrorInfo(
    "INVALID_PASSWORD",
    "La contraseña debe de tener una longitud minima de 8 caracteres, además de "
    "contener minimo una letra mayúscula, una minúscula, un número.",
)
ALREADY_VALIDATED = ErrorInfo(
    "ALREADY_VALIDATED",
    "El correo electrónico para este usuario ya fue validado, intenta ingresar.",
)
EMAIL_COULD_NOT_BE_SENT = ErrorInfo(
    "EMAIL_COULD_NOT_BE_SENT", "El correo de verificación no se pudo enviar."
)
UNKNOWN_ERROR_CREATE_USER = ErrorInfo(
    "UNKNOWN_ERROR_CREATE_USER", "Ocurrió un error creando el usuario."
)

# ── Authorization ─────────────────────────────────────────────────────────
UNAUTHORIZED = ErrorInfo(
    "UNAUTHORIZED", "No tienes permiso para acceder a este recurso"
)
FORBIDDEN = ErrorInfo("FORBIDDEN", "No tiene permiso para acceder a este recurso.")

# ── Generic ───────────────────────────────────────────────────────────────
BAD_REQUEST = ErrorInfo("BAD_REQUEST", "Bad request")
NOT_FOUND = ErrorInfo("NOT_FOUND", "El recurso no fue encontrado.")
MISSING_ID = ErrorInfo("MISSING_ID", "El campo `id` es obligatorio.")
UNKNOWN_ERROR = ErrorInfo("UNKNOWN_ERROR", "Ocurrió un error desconocido.")
INTERNAL_SERVER_ERROR = ErrorInfo(
    "INTERNAL_SERVER_ERROR", "Ocurrió un error en el servidor."
)
RATE_LIMITED = ErrorInfo(
    "RATE_LIMITED", "Demasiadas solicitudes, intenta nuevamente más tarde."
)

# ── Publications ──────────────────────────────────────────────────────────
PUBLICATION_NOT_FOUND = ErrorInfo(
    "PUBLICATION_NOT_FOUND", "La publicación no existe."
)
PUBLICATION_FORBIDDEN = ErrorInfo(
    "PUBLICATION_FORBIDDEN", "No tienes permiso para modificar esta publicación."
)
INVALID_BOOK_STATE = ErrorInfo(
    "INVALID_BOOK_STATE", "El estado del libro no es válido."
)
INVALID_PUBLICATION_TYPE = ErrorInfo(
    "INVALID_PUBLICATION_TYPE", "El tipo de publicación no es válido."
)

# ── Interactions ──────────────────────────────────────────────────────────
OWN_PUBLICATION_INTERACTION = ErrorInfo(
    "OWN_PUBLICATION_INTERACTION", "No puedes interactuar con tu propia publicación."
)
INTERACTION_NOT_FOUND = ErrorInfo(
    "INTERACTION_NOT_FOUND", "La interacción o la publicación no existe."
)
INTERACTION_LIST_FORBIDDEN = ErrorInfo(
    "INTERACTION_LIST_FORBIDDEN",
    "No tienes permiso para ver las interacciones de esta publicación.",
)
INTERACTION_COMPLETE_FORBIDDEN = ErrorInfo(
    "INTERACTION_COMPLETE_FORBIDDEN",
    "No tienes permiso para completar esta interacción.",
)

# ── Reviews ───────────────────────────────────────────────────────────────
REVIEW_NOT_FOUND = ErrorInfo("REVIEW_NOT_FOUND", "La reseña no fue encontrada.")
SELF_REVIEW = ErrorInfo("SELF_REVIEW", "No puedes dejarte una reseña a ti mismo.")
