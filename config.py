import os
from dataclasses import dataclass

from dotenv import load_dotenv


TRUTHY = {"1", "true", "yes", "on"}


def _flag(value) -> bool:
    return (value or "").strip().lower() in TRUTHY


def _int(value, default: int) -> int:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return default


@dataclass(frozen=True)
class Settings:
    openai_key: str = None
    openai_model: str = "gpt-4o-mini"
    stripe_secret_key: str = None
    stripe_webhook_secret: str = None
    stripe_basic_price_id: str = None
    stripe_pro_price_id: str = None
    app_url: str = "http://localhost:1500"
    analysis_delay_ms: int = 0
    analysis_webhook_url: str = None
    down: bool = False

    @property
    def ai_enabled(self) -> bool:
        return bool(self.openai_key)

    @property
    def stripe_enabled(self) -> bool:
        return bool(self.stripe_secret_key)

    @classmethod
    def from_env(cls, environ=None):
        if environ is None:
            load_dotenv()
            environ = os.environ
        return cls(
            openai_key=environ.get("OPENAI_KEY") or None,
            openai_model=environ.get("OPENAI_MODEL") or "gpt-4o-mini",
            stripe_secret_key=environ.get("STRIPE_SECRET_KEY") or None,
            stripe_webhook_secret=environ.get("STRIPE_WEBHOOK_SECRET") or None,
            stripe_basic_price_id=environ.get("STRIPE_BASIC_PRICE_ID") or None,
            stripe_pro_price_id=environ.get("STRIPE_PRO_PRICE_ID") or None,
            app_url=(environ.get("APP_URL") or "http://localhost:1500").rstrip("/"),
            analysis_delay_ms=max(_int(environ.get("ANALYSIS_DELAY_MS"), 0), 0),
            analysis_webhook_url=environ.get("ANALYSIS_WEBHOOK_URL") or None,
            down=_flag(environ.get("DOWN")),
        )
