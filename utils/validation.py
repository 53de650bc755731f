"""
Validation and normalization for shop form input.
Everything here runs before any database write.
"""
import re
import secrets
import unicodedata
from typing import Tuple

SHOP_NAME_MIN = 4
SHOP_NAME_MAX = 20
CBU_LENGTH = 22

NAME_LENGTH_MESSAGE = f"El nombre de la tienda debe tener entre {SHOP_NAME_MIN} y {SHOP_NAME_MAX} caracteres."
CBU_LENGTH_MESSAGE = f"El CBU/CVU debe tener exactamente {CBU_LENGTH} números."


def validate_shop_name(name: str) -> Tuple[bool, str]:
    """
    Validate shop name length (4-20 characters after trimming).
    Returns (is_valid, error_message).
    """
    trimmed = (name or "").strip()
    if len(trimmed) < SHOP_NAME_MIN or len(trimmed) > SHOP_NAME_MAX:
        return False, NAME_LENGTH_MESSAGE
    return True, ""


def validate_cbu(cbu: str) -> Tuple[bool, str]:
    """
    Validate the bank transfer identifier. Empty is allowed (payment data is optional);
    otherwise it must be exactly 22 digits.
    """
    value = (cbu or "").strip()
    if not value:
        return True, ""
    if len(normalize_cbu(value)) != CBU_LENGTH:
        return False, CBU_LENGTH_MESSAGE
    return True, ""


def normalize_cbu(cbu: str) -> str:
    return re.sub(r'\D', '', cbu or "")


def normalize_whatsapp(phone: str) -> str:
    """Keep digits only, plus a single leading '+' when the input had one first."""
    raw = re.sub(r'[^0-9+]', '', phone or "")
    digits = raw.replace('+', '')
    if raw.startswith('+') and digits:
        return '+' + digits
    return digits


def normalize_alias(alias: str) -> str:
    return (alias or "").strip().upper()


def slugify(text: str) -> str:
    """Convert text to URL-friendly slug (accents stripped)"""
    if not text:
        return 'tienda'
    folded = unicodedata.normalize('NFD', text.lower().strip())
    folded = ''.join(ch for ch in folded if unicodedata.category(ch) != 'Mn')
    slug = re.sub(r'[^a-z0-9]+', '-', folded)
    slug = slug.strip('-')[:40]
    return slug or 'tienda'


def generate_shop_id(name: str) -> str:
    """Slugified shop name plus a random suffix, e.g. 'modas-ana-3f9a1c'."""
    return f"{slugify(name)}-{secrets.token_hex(3)}"
