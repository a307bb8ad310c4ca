"""CLI smoke tests; nothing here touches the network."""
import json

import pytest
from PIL import Image
from typer.testing import CliRunner
from web3 import AsyncHTTPProvider

from castinspo.cli import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def quotes_env(monkeypatch, tmp_path):
    path = tmp_path / "quotes.json"
    path.write_text(
        json.dumps([{"content": "First quote.", "author": "A"}, {"content": "Second quote.", "author": "B"}]),
        encoding="utf-8",
    )
    monkeypatch.setenv("QUOTES_PATH", str(path))
    monkeypatch.setenv("APP_BASE_URL", "https://example.app/castinspo")
    monkeypatch.delenv("WALLET_PRIVATE_KEY", raising=False)
    monkeypatch.delenv("UNLOCK_POLICY", raising=False)
    return path


def test_quote_by_index():
    result = runner.invoke(app, ["quote", "--index", "1"])
    assert result.exit_code == 0, result.output
    assert "#1 Second quote." in result.output
    assert "https://example.app/castinspo?q=1" in result.output


def test_quote_out_of_range_is_random():
    result = runner.invoke(app, ["quote", "--index", "99"])
    assert result.exit_code == 0
    assert "quote." in result.output


def test_render_writes_png(tmp_path):
    out = tmp_path / "card.png"
    result = runner.invoke(app, ["render", "--index", "0", "--out", str(out)])
    assert result.exit_code == 0, result.output
    with Image.open(out) as im:
        assert im.size == (1200, 630)


def test_share_dry_run_prints_compose_url():
    result = runner.invoke(app, ["share", "--index", "0", "--dry-run"])
    assert result.exit_code == 0, result.output
    assert "[dry-run] Compose URL: https://warpcast.com/~/compose?text=" in result.output
    assert "share: text_compose" in result.output


def test_status_without_wallet():
    result = runner.invoke(app, ["status"])
    assert result.exit_code == 1
    assert "not connected" in result.output


def test_health_reports_missing_wallet():
    result = runner.invoke(app, ["health"])
    assert result.exit_code == 0
    assert "missing: WALLET_PRIVATE_KEY" in result.output


@pytest.mark.parametrize("args", [["status"], ["share", "--index", "0", "--dry-run"], ["claim", "--index", "0", "--dry-run"]])
def test_rpc_provider_is_disconnected(monkeypatch, args):
    closed = []

    async def fake_disconnect(self):
        closed.append(self.endpoint_uri)

    monkeypatch.setattr(AsyncHTTPProvider, "disconnect", fake_disconnect)
    monkeypatch.setenv("RPC_URL", "https://rpc.invalid")
    runner.invoke(app, args)
    assert closed == ["https://rpc.invalid"]
