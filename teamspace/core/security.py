from jose import JWTError, jwt

from teamspace.core.config import settings


def decode_identity_token(token: str) -> dict:
    """Verify a bearer token issued by the identity provider and return its claims."""
    options = {"verify_aud": False}
    try:
        if settings.identity_jwt_issuer:
            return jwt.decode(
                token,
                settings.identity_jwt_key,
                algorithms=[settings.identity_jwt_algorithm],
                issuer=settings.identity_jwt_issuer,
                options=options,
            )
        return jwt.decode(
            token,
            settings.identity_jwt_key,
            algorithms=[settings.identity_jwt_algorithm],
            options=options,
        )
    except JWTError as exc:
        raise ValueError("Invalid token") from exc


def sanitize_input(text: str) -> str:
    """Sanitize input text to prevent XSS."""
    if not text:
        return text
    import bleach
    return bleach.clean(text, tags=[], strip=True)
