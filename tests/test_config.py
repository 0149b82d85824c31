"""Configuration selection and production guard rails."""

import pytest

from surveys.config import ProductionConfig, TestingConfig, config


def test_testing_config_uses_shared_secret_tokens():
    cfg = config["testing"]()
    assert isinstance(cfg, TestingConfig)
    assert cfg.OIDC_JWKS_URL is None
    assert cfg.JWT_SECRET_KEY


def test_production_refuses_to_start_without_settings(monkeypatch):
    monkeypatch.setattr(ProductionConfig, "SQLALCHEMY_DATABASE_URI", None)
    with pytest.raises(RuntimeError, match="DATABASE_URL"):
        ProductionConfig()


def test_production_requires_jwks(monkeypatch):
    monkeypatch.setattr(ProductionConfig, "SQLALCHEMY_DATABASE_URI", "postgresql://db/surveys")
    monkeypatch.setattr(ProductionConfig, "OIDC_JWKS_URL", None)
    monkeypatch.setenv("SECRET_KEY", "prod-secret")
    with pytest.raises(RuntimeError, match="OIDC_JWKS_URL"):
        ProductionConfig()


def test_production_requires_cors_origins(monkeypatch):
    monkeypatch.setattr(ProductionConfig, "SQLALCHEMY_DATABASE_URI", "postgresql://db/surveys")
    monkeypatch.setattr(ProductionConfig, "OIDC_JWKS_URL", "https://idp/keys")
    monkeypatch.setattr(ProductionConfig, "CORS_ORIGINS", "")
    monkeypatch.setenv("SECRET_KEY", "prod-secret")
    with pytest.raises(RuntimeError, match="CORS_ORIGINS"):
        ProductionConfig()


def test_default_is_development():
    assert config["default"] is config["development"]
