"""User-facing error messages, keyed by locale and error kind.

Keys are either a bare error code (``"validation"``) or a code refined by the
operation that failed (``"validation.register_user"``). Lookups try the
refined key first.
"""
from typing import Dict, List, Optional, Tuple

MESSAGES: Dict[str, Dict[str, str]] = {
    "ta": {
        "error": "சேவையகப் பிழை",
        "validation": "தவறான உள்ளீடு",
        "validation.register_user": "அனைத்து தகவல்களையும் நிரப்பவும்",
        "validation.login": "மின்னஞ்சல் மற்றும் கடவுச்சொல் தேவை",
        "validation.save_chat": "செய்தி மற்றும் பதில் தேவை",
        "duplicate_email": "இந்த மின்னஞ்சல் ஏற்கனவே பயன்படுத்தப்பட்டுள்ளது",
        "duplicate_username": "இந்த பயனர்பெயர் ஏற்கனவே பயன்படுத்தப்பட்டுள்ளது",
        "invalid_credentials": "தவறான மின்னஞ்சல் அல்லது கடவுச்சொல்",
        "unauthenticated": "தயவுசெய்து உள்நுழையவும்",
        "not_found": "பயனர் கிடைக்கவில்லை",
        "store_failure": "சேவையகப் பிழை",
        "store_failure.register_user": "பதிவுப் பிழை",
        "store_failure.login": "உள்நுழைவு பிழை",
        "store_failure.logout": "வெளியேறுவதில் பிழை",
        "store_failure.read_me": "பயனர் தகவலை பெற முடியவில்லை",
        "store_failure.save_chat": "செய்தியை சேமிக்க இயலவில்லை",
        "store_failure.chat_history": "சரித்திரத்தைப் பெறுவதில் பிழை",
    },
    "en": {
        "error": "Internal server error",
        "validation": "Invalid input",
        "validation.register_user": "Please fill in all fields",
        "validation.login": "Email and password are required",
        "validation.save_chat": "Message and response are required",
        "duplicate_email": "This email is already registered",
        "duplicate_username": "This username is already taken",
        "invalid_credentials": "Invalid email or password",
        "unauthenticated": "Please log in",
        "not_found": "User not found",
        "store_failure": "Internal server error",
        "store_failure.register_user": "Registration error",
        "store_failure.login": "Login error",
        "store_failure.logout": "Error while logging out",
        "store_failure.read_me": "Could not load user information",
        "store_failure.save_chat": "Could not save the message",
        "store_failure.chat_history": "Error fetching chat history",
    },
}

FALLBACK_LOCALE = "en"


def _parse_accept_language(header: str) -> List[Tuple[float, int, str]]:
    weighted = []
    for index, part in enumerate(header.split(",")):
        pieces = [p.strip() for p in part.split(";")]
        tag = pieces[0].lower()
        if not tag:
            continue
        quality = 1.0
        for param in pieces[1:]:
            if param.startswith("q="):
                try:
                    quality = float(param[2:])
                except ValueError:
                    quality = 0.0
        if quality > 0:
            weighted.append((-quality, index, tag))
    # highest q first, header order breaks ties
    return sorted(weighted)


def negotiate_locale(accept_language: Optional[str], default: str) -> str:
    """Pick the highest-weighted supported language from an Accept-Language header."""
    if accept_language:
        for _, _, tag in _parse_accept_language(accept_language):
            primary = tag.split("-")[0]
            if primary in MESSAGES:
                return primary
    return default if default in MESSAGES else FALLBACK_LOCALE


def translate(code: str, locale: str, context: Optional[str] = None) -> str:
    table = MESSAGES.get(locale) or MESSAGES[FALLBACK_LOCALE]
    if context and f"{code}.{context}" in table:
        return table[f"{code}.{context}"]
    return table.get(code) or table["error"]
