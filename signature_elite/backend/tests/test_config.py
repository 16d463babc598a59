from __future__ import annotations

import pytest

from app.config import Settings

STRONG = "prod-secret-0123456789abcdef0123456789abcdef"


def test_prod_refuses_dev_auth_default_secret_and_wildcard_cors():
    with pytest.raises(ValueError):
        Settings(app_env="prod", auth_mode="dev", jwt_secret=STRONG, cors_allow_origins=["https://app.example"])
    with pytest.raises(ValueError):
        Settings(app_env="prod", auth_mode="jwt", jwt_secret="dev-change-me", cors_allow_origins=["https://app.example"])
    with pytest.raises(ValueError):
        Settings(app_env="prod", auth_mode="jwt", jwt_secret=STRONG, cors_allow_origins=["*"])


def test_prod_accepts_locked_down_settings():
    s = Settings(app_env="production", auth_mode="jwt", jwt_secret=STRONG, cors_allow_origins=["https://app.example"])
    assert s.enforce_offer_price_range is False
    assert s.payment_currency == "usd"
