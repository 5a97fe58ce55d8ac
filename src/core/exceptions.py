"""Typed business errors raised by the service layer.

Every error is a ``ValueError`` carrying a French, user-displayable
message, a stable machine ``code`` and the HTTP status the API answers
with. Views catch ``DomainError`` and turn it into a response; nothing
in the service layer swallows these.
"""


class DomainError(ValueError):
    code = "error"
    status_code = 400
    default_message = "Operation refusee."

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def as_payload(self) -> dict:
        return {"detail": self.message, "code": self.code}


class ValidationError(DomainError):
    """Bad input shape or range (amount, method, attribution...)."""

    code = "validation_error"
    default_message = "Donnees invalides."


class InvalidMethod(ValidationError):
    code = "invalid_method"
    default_message = "Mode de paiement invalide."


class DuplicateAttribution(ValidationError):
    code = "duplicate_attribution"
    default_message = (
        "Impossible d'attribuer la commission de vente deux fois a la meme personne."
    )


class BalanceExceeded(DomainError):
    code = "balance_exceeded"
    default_message = "Le paiement depasse le solde restant du forfait."


class WouldLockUsedSessions(DomainError):
    """The mutation would leave fewer unlocked sessions than already used."""

    code = "would_lock_used_sessions"
    status_code = 409

    def __init__(self, used_sessions: int, unlocked_sessions: int, message=None):
        self.used_sessions = used_sessions
        self.unlocked_sessions = unlocked_sessions
        super().__init__(
            message
            or (
                f"Operation impossible : {used_sessions} seance(s) deja utilisee(s), "
                f"mais seulement {unlocked_sessions} seance(s) resteraient debloquees."
            )
        )

    def as_payload(self) -> dict:
        payload = super().as_payload()
        payload["used_sessions"] = self.used_sessions
        payload["unlocked_sessions"] = self.unlocked_sessions
        return payload


class NotFound(DomainError):
    code = "not_found"
    status_code = 404
    default_message = "Ressource introuvable."


class Forbidden(DomainError):
    code = "forbidden"
    status_code = 403
    default_message = "Acces refuse pour cette organisation."


class ConfigurationError(DomainError):
    """Malformed commission tier table."""

    code = "configuration_error"
    default_message = "Configuration de commission invalide."
