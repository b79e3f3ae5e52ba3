from urllib.parse import quote

WHATSAPP_BASE = "https://wa.me/"

# Caracteres que encodeURIComponent não escapa
_URI_COMPONENT_SAFE = "-_.!~*'()"


def encode_uri_component(text: str) -> str:
    return quote(text, safe=_URI_COMPONENT_SAFE)


def build_share_url(contact: str | None, message: str) -> str:
    """Deep-link do WhatsApp: direto para o contato quando informado, senão o alvo genérico."""
    encoded = encode_uri_component(message)
    if contact:
        return f"{WHATSAPP_BASE}{quote(contact, safe='')}?text={encoded}"
    return f"{WHATSAPP_BASE}?text={encoded}"
