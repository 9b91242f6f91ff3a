import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

API_VERSION = os.getenv("SHOPIFY_API_VERSION", "2025-04")

POD_NAMESPACE = "pod"


def _int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


def _csv(name: str, default: str = "") -> tuple[str, ...]:
    raw = os.getenv(name, default) or ""
    return tuple(part.strip() for part in raw.split(",") if part.strip())


@dataclass(frozen=True)
class PodConfig:
    shop_domain: str | None = None
    shop_token: str | None = None
    api_version: str = API_VERSION
    webhook_secret: str | None = None

    supplier_base_url: str = "https://www.printoteca.com"
    supplier_app_id: str | None = None
    supplier_secret_key: str | None = None

    brand_name: str | None = None
    default_shipping_method: str = "regular"

    max_attempts: int = 5
    retry_delay_seconds: int = 300
    initial_delay_seconds: int = 60
    transient_error_signatures: tuple[str, ...] = ("not valid",)

    allowed_skus: frozenset[str] = field(default_factory=frozenset)
    design_property_prefix: str = "_tib_design_link"

    tracking_window_days: int = 14
    page_size: int = 50
    max_pages: int = 100
    carrier_name: str = "Printoteca"

    http_timeout: int = 20
    jobs_token: str | None = None
    base_url: str | None = None


def load_config() -> PodConfig:
    load_dotenv()
    return PodConfig(
        shop_domain=os.getenv("SHOPIFY_SHOP"),
        shop_token=os.getenv("SHOPIFY_ADMIN_TOKEN"),
        api_version=os.getenv("SHOPIFY_API_VERSION", API_VERSION),
        webhook_secret=os.getenv("SHOPIFY_WEBHOOK_SECRET"),
        supplier_base_url=os.getenv("PRINTOTECA_BASE_URL", "https://www.printoteca.com").rstrip("/"),
        supplier_app_id=os.getenv("PRINTOTECA_APP_ID"),
        supplier_secret_key=os.getenv("PRINTOTECA_SECRET_KEY"),
        brand_name=os.getenv("PRINTOTECA_BRAND_NAME"),
        default_shipping_method=os.getenv("DEFAULT_SHIPPING_METHOD") or "regular",
        max_attempts=_int("PRINTOTECA_MAX_ATTEMPTS", 5),
        retry_delay_seconds=_int("PRINTOTECA_RETRY_DELAY_SECONDS", 300),
        initial_delay_seconds=_int("PRINTOTECA_INITIAL_DELAY_SECONDS", 60),
        transient_error_signatures=_csv("PRINTOTECA_TRANSIENT_ERRORS", "not valid"),
        allowed_skus=frozenset(_csv("PRINTOTECA_VALID_SKUS")),
        design_property_prefix=os.getenv("DESIGN_PROPERTY_PREFIX", "_tib_design_link"),
        tracking_window_days=_int("PRINTOTECA_TRACKING_WINDOW_DAYS", 14),
        page_size=_int("PRINTOTECA_PAGE_SIZE", 50),
        max_pages=_int("PRINTOTECA_MAX_PAGES", 100),
        carrier_name=os.getenv("CARRIER_NAME", "Printoteca"),
        http_timeout=_int("HTTP_TIMEOUT", 20),
        jobs_token=os.getenv("JOBS_TOKEN") or None,
        base_url=(os.getenv("BASE_URL") or "").rstrip("/") or None,
    )
