from app.utils.security import create_tokens, decode_token, hash_password, verify_password

__all__ = ["hash_password", "verify_password", "create_tokens", "decode_token"]
