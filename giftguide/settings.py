"""
Runtime configuration and the fixed constants shared by every request.

Settings are read from the environment (the entry points load a local
`.env` first). Constants below are immutable and never re-derived per
request.
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional, Tuple


DEFAULT_PRIMARY = "#0066CC"
DEFAULT_SECONDARY = "#999999"
DEFAULT_BACKGROUND = "#FFFFFF"

PLACEHOLDER_LOGO_URL = "https://via.placeholder.com/180x70/cccccc/666666?text=Logo"
LOGO_API_BASE = "https://logos-api.apistemic.com"
LOGO_ATTRIBUTION = "Logos provided by apistemic logos API"

DEFAULT_FROM_EMAIL = "UpMerch <onboarding@resend.dev>"
SENDER_COMPANY = "UpMerch"


@dataclass(frozen=True)
class Product:
    name: str
    price: str
    image_url: str


PRODUCT_CATALOG: Tuple[Product, ...] = (
    Product(
        name="Custom T-Shirt",
        price="Starting at $18.99",
        image_url="https://images.unsplash.com/photo-1521572163474-6864f9cf17ab?w=400&h=300&fit=crop",
    ),
    Product(
        name="Branded Mug",
        price="Starting at $12.99",
        image_url="https://images.unsplash.com/photo-1514228742587-6b1558fcca3d?w=400&h=300&fit=crop",
    ),
    Product(
        name="Custom Tote Bag",
        price="Starting at $15.99",
        image_url="https://images.unsplash.com/photo-1590874103328-eac38a683ce7?w=400&h=300&fit=crop",
    ),
    Product(
        name="Sticker Pack",
        price="Starting at $8.99",
        image_url="https://images.unsplash.com/photo-1611532736597-de2d4265fba3?w=400&h=300&fit=crop",
    ),
)

RENDERER_CHOICES = ("chrome", "weasyprint")

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    logo_api_base: str = LOGO_API_BASE
    probe_timeout: float = 5.0
    download_timeout: float = 10.0
    renderer: str = "chrome"
    # Use the packaged browser binary instead of probing the local machine.
    serverless: bool = False
    chrome_path: Optional[str] = None
    render_timeout: float = 60.0
    resend_api_key: Optional[str] = None
    from_email: str = DEFAULT_FROM_EMAIL
    email_timeout: float = 15.0
    debug: bool = False

    @property
    def email_configured(self) -> bool:
        return bool(self.resend_api_key)


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Build `Settings` from environment variables.

    Unset or empty variables fall back to the dataclass defaults. Malformed
    numbers and unknown renderer names raise ValueError so a bad deployment
    fails at startup rather than mid-request.
    """
    env = os.environ if environ is None else environ

    renderer = (env.get("GIFTGUIDE_RENDERER") or "chrome").strip().lower()
    if renderer not in RENDERER_CHOICES:
        raise ValueError(
            f"GIFTGUIDE_RENDERER must be one of {', '.join(RENDERER_CHOICES)}, got {renderer!r}"
        )

    return Settings(
        logo_api_base=(env.get("GIFTGUIDE_LOGO_API_BASE") or LOGO_API_BASE).rstrip("/"),
        probe_timeout=_float(env, "GIFTGUIDE_PROBE_TIMEOUT", 5.0),
        download_timeout=_float(env, "GIFTGUIDE_DOWNLOAD_TIMEOUT", 10.0),
        renderer=renderer,
        serverless=_flag(env, "GIFTGUIDE_SERVERLESS"),
        chrome_path=env.get("GIFTGUIDE_CHROME_PATH") or None,
        render_timeout=_float(env, "GIFTGUIDE_RENDER_TIMEOUT", 60.0),
        resend_api_key=env.get("RESEND_API_KEY") or None,
        from_email=env.get("RESEND_FROM_EMAIL") or DEFAULT_FROM_EMAIL,
        email_timeout=_float(env, "GIFTGUIDE_EMAIL_TIMEOUT", 15.0),
        debug=_flag(env, "GIFTGUIDE_DEBUG"),
    )


def _float(env: Mapping[str, str], key: str, default: float) -> float:
    raw = env.get(key)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{key} must be a number, got {raw!r}") from None
    if value <= 0:
        raise ValueError(f"{key} must be positive, got {raw!r}")
    return value


def _flag(env: Mapping[str, str], key: str) -> bool:
    return (env.get(key) or "").strip().lower() in _TRUTHY
