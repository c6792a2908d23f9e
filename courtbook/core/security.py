import secrets

TOKEN_PREFIX = "BOOKING"


def generate_checkin_token(reservation_id: int) -> str:
    return f"{TOKEN_PREFIX}-{reservation_id}-{secrets.token_urlsafe(16)}"
