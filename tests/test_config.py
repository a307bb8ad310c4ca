"""Tests for environment-driven configuration."""
import pytest

from castinspo.config import AppConfig, DEFAULT_CONTRACT_ADDRESS, RenderConfig

ENV_KEYS = [
    "RPC_URL",
    "CHAIN_ID",
    "CLAIM_CONTRACT_ADDRESS",
    "IMGBB_API_KEY",
    "UNLOCK_POLICY",
    "ABORT_ON_SWITCH_FAILURE",
    "RECONCILE_DELAY_S",
    "DRY_RUN_DEFAULT",
    "SHARE_CAPTION",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_defaults():
    config = AppConfig.load()
    assert config.chain_id == 8453
    assert config.chain_id_hex == "0x2105"
    assert config.contract_address == DEFAULT_CONTRACT_ADDRESS
    assert config.reconcile_delay_s == 5.0
    assert config.unlock_policy == "intent"
    assert config.abort_on_switch_failure is True
    assert config.imgbb_api_key is None


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("CHAIN_ID", "0x14a34")
    monkeypatch.setenv("IMGBB_API_KEY", "k")
    monkeypatch.setenv("UNLOCK_POLICY", "Delivery")
    monkeypatch.setenv("ABORT_ON_SWITCH_FAILURE", "false")
    monkeypatch.setenv("RECONCILE_DELAY_S", "2.5")
    monkeypatch.setenv("SHARE_CAPTION", "hello")
    config = AppConfig.load()
    assert config.chain_id == 84532
    assert config.imgbb_api_key == "k"
    assert config.unlock_policy == "delivery"
    assert config.abort_on_switch_failure is False
    assert config.reconcile_delay_s == 2.5
    assert config.share_caption == "hello"


def test_invalid_unlock_policy(monkeypatch):
    monkeypatch.setenv("UNLOCK_POLICY", "sometimes")
    with pytest.raises(ValueError):
        AppConfig.load()


def test_render_geometry():
    config = RenderConfig()
    assert config.max_text_width == pytest.approx(960)
    assert config.safe_height == pytest.approx(630 * 0.54)
