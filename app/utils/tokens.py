import secrets

TOKEN_BYTES = 32


def generate_token() -> str:
    """256-bit random token, hex encoded (64 chars). Safe for customer links."""
    return secrets.token_hex(TOKEN_BYTES)
