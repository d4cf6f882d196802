"""
Access code generation for classroom enrollment
"""
import secrets
import string
from typing import Optional

from classchat.core.config import settings

ACCESS_CODE_ALPHABET = string.ascii_uppercase + string.digits


class AccessCodeGenerator:
    """
    Produces short, human-typeable classroom codes

    Codes are drawn independently from a 36-symbol alphabet, so six characters
    give ~2.2 billion combinations. Collisions are rare but possible; the
    classroom registry retries on them.
    """

    def __init__(self, length: Optional[int] = None, alphabet: str = ACCESS_CODE_ALPHABET):
        self.length = length or settings.ACCESS_CODE_LENGTH
        self.alphabet = alphabet

    def generate(self) -> str:
        """Return a fresh candidate code"""
        return "".join(secrets.choice(self.alphabet) for _ in range(self.length))


def normalize_access_code(code: str) -> str:
    """Codes are case-insensitive; stored and compared upper-case"""
    return (code or "").strip().upper()
