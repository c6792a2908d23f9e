import os
from dataclasses import dataclass
from typing import Optional

BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
ENV_PATH = os.path.join(os.path.dirname(BASE_DIR), ".env")

TRUE_VALUES = ("1", "true", "yes")


def load_env(path: Optional[str] = None) -> None:
    """Load key=value pairs from a .env file into os.environ if not already set."""
    path = path or ENV_PATH
    if not os.path.exists(path):
        return
    with open(path, "r", encoding="utf-8") as file:
        for line in file:
            line = line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue
            key, value = line.split("=", 1)
            os.environ.setdefault(key.strip(), value.strip())


def env_flag(name: str, default: str) -> bool:
    return os.environ.get(name, default).lower() in TRUE_VALUES


@dataclass
class Settings:
    db_host: str = "localhost"
    db_port: int = 5434
    db_name: str = "centro_deportivo"
    db_user: str = "postgres"
    db_password: str = "12345"
    db_lock_timeout_ms: int = 5000
    require_approval: bool = False
    lock_ttl_minutes: int = 10
    no_show_grace_minutes: int = 15
    checkout_grace_minutes: int = 15
    no_show_penalty: int = 100
    late_checkout_penalty: int = 50
    sweep_interval_seconds: int = 300
    payments_sandbox: bool = True
    stripe_api_key: str = ""
    coin_price_cents: int = 100
    currency: str = "thb"
    checkout_base_url: str = "http://localhost:8000"

    @classmethod
    def from_env(cls) -> "Settings":
        load_env()
        return cls(
            db_host=os.environ.get("DB_HOST", "localhost"),
            db_port=int(os.environ.get("DB_PORT", "5434")),
            db_name=os.environ.get("DB_NAME", "centro_deportivo"),
            db_user=os.environ.get("DB_USER", "postgres"),
            db_password=os.environ.get("DB_PASSWORD", "12345"),
            db_lock_timeout_ms=int(os.environ.get("DB_LOCK_TIMEOUT_MS", "5000")),
            require_approval=env_flag("REQUIRE_APPROVAL", "false"),
            lock_ttl_minutes=int(os.environ.get("LOCK_TTL_MINUTES", "10")),
            no_show_grace_minutes=int(os.environ.get("NO_SHOW_GRACE_MINUTES", "15")),
            checkout_grace_minutes=int(os.environ.get("CHECKOUT_GRACE_MINUTES", "15")),
            no_show_penalty=int(os.environ.get("NO_SHOW_PENALTY", "100")),
            late_checkout_penalty=int(os.environ.get("LATE_CHECKOUT_PENALTY", "50")),
            sweep_interval_seconds=int(os.environ.get("SWEEP_INTERVAL_SECONDS", "300")),
            payments_sandbox=env_flag("PAYMENTS_SANDBOX", "true"),
            stripe_api_key=os.environ.get("STRIPE_API_KEY", ""),
            coin_price_cents=int(os.environ.get("COIN_PRICE_CENTS", "100")),
            currency=os.environ.get("CURRENCY", "thb"),
            checkout_base_url=os.environ.get("CHECKOUT_BASE_URL", "http://localhost:8000"),
        )
