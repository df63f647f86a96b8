from packages.auth.models.domain.session import AuthSession, SessionContext

__all__ = [
    "AuthSession",
    "SessionContext",
]
