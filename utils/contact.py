"""WhatsApp and wallet deep links shown on the public catalog."""
import re
from typing import Optional, Tuple
from urllib.parse import quote

from user_agents import parse as parse_ua

from core.config import APP_NAME, WALLET_APP_SCHEME, WALLET_WEB_URL

INTENT_INQUIRY = "inquiry"
INTENT_PURCHASE = "purchase"
INTENT_PAYMENT_SENT = "payment_sent"
INTENTS = (INTENT_INQUIRY, INTENT_PURCHASE, INTENT_PAYMENT_SENT)


def format_price(price) -> str:
    """Argentine style: thousands with '.', decimals with ','."""
    try:
        value = float(price or 0)
    except (TypeError, ValueError):
        value = 0.0
    if value == int(value):
        return f"{int(value):,}".replace(",", ".")
    whole, dec = f"{value:,.2f}".split(".")
    return f"{whole.replace(',', '.')},{dec}"


def build_message(intent: str, shop_name: str, title: Optional[str] = None, price=None) -> str:
    if intent not in INTENTS:
        raise ValueError(f"Unknown contact intent: {intent}")
    if not title:
        return f'Hola! Vi tu tienda "{shop_name}" en {APP_NAME} y tengo una consulta.'
    amount = format_price(price)
    if intent == INTENT_PURCHASE:
        return (
            f'Hola! Quiero comprar "{title}" (Precio: ${amount}) que vi en {APP_NAME}. '
            "¿Cómo coordinamos el pago y la entrega?"
        )
    if intent == INTENT_PAYMENT_SENT:
        return f'Hola! Ya te transferí ${amount} por "{title}". Te envío el comprobante.'
    return f'Hola! Vi tu producto "{title}" en {APP_NAME} (Precio: ${amount}) y me interesa comprarlo. ¿Está disponible?'


def build_whatsapp_link(phone: str, message: str) -> str:
    digits = re.sub(r"[^0-9]", "", phone or "")
    return f"https://wa.me/{digits}?text={quote(message, safe='')}"


def is_mobile_user_agent(user_agent: Optional[str]) -> bool:
    """Phones and tablets can open the wallet app; everything else gets the web page."""
    if not user_agent:
        return False
    ua = parse_ua(user_agent)
    return ua.is_mobile or ua.is_tablet


def wallet_link(user_agent: Optional[str]) -> Tuple[str, bool]:
    """Custom URL scheme on phones, web fallback on desktop. Returns (url, is_mobile)."""
    mobile = is_mobile_user_agent(user_agent)
    return (WALLET_APP_SCHEME if mobile else WALLET_WEB_URL), mobile
