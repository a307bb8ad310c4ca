"""End-to-end session flow with injected fakes."""
from urllib.parse import unquote

import pytest

from castinspo.claim_state import ClaimPhase
from castinspo.claimer import ClaimOutcome
from castinspo.config import AppConfig
from castinspo.session import InspoSession
from castinspo.share import ShareDispatcher, ShareOutcome

from conftest import ADDRESS


class RecordingActions:
    def __init__(self):
        self.opened = []

    def open_url(self, url):
        self.opened.append(url)


def failing_opener(url):
    raise RuntimeError("no browser")


@pytest.fixture
def config():
    return AppConfig(app_base_url="https://example.app/castinspo", reconcile_delay_s=0)


@pytest.fixture
def actions():
    return RecordingActions()


@pytest.fixture
def session(config, oracle, wallet, notices, store, actions):
    dispatcher = ShareDispatcher(config.compose_base_url, host_actions=actions)
    return InspoSession.build(config, oracle, dispatcher, wallet=wallet, notify=notices, store=store)


@pytest.mark.asyncio
async def test_connect_syncs_claim_state(session):
    ctx = await session.connect()
    assert ctx.address == ADDRESS
    assert session.claim_state.phase is ClaimPhase.LOCKED
    assert session.claim_state.current_day == 100


def test_load_quote_renders_card_and_deep_link(session):
    current = session.load_quote(42)
    assert current.quote.author == "Anon"
    assert current.deep_link == "https://example.app/castinspo?q=42"
    assert current.image is not None
    assert session.load_quote(42).quote == current.quote


@pytest.mark.asyncio
async def test_share_then_claim(session, actions, wallet):
    await session.connect()
    session.load_quote(42)
    result = await session.share()
    assert result.outcome is ShareOutcome.TEXT_COMPOSE
    assert "embeds[]=https://example.app/castinspo?q=42" in unquote(actions.opened[0])
    assert session.claim_state.phase is ClaimPhase.UNLOCKABLE

    assert await session.claim() is ClaimOutcome.SUBMITTED
    await session.machine.wait_for_reconciliation()
    assert session.claim_state.phase is ClaimPhase.CLAIMED
    assert len(wallet.sent) == 1


@pytest.mark.asyncio
async def test_share_without_quote_does_nothing(session):
    assert await session.share() is None
    assert session.claim_state.phase is ClaimPhase.LOCKED


@pytest.mark.asyncio
async def test_failed_share_is_reported_and_still_unlocks(config, oracle, wallet, notices, store):
    dispatcher = ShareDispatcher(config.compose_base_url, link_opener=failing_opener)
    session = InspoSession.build(config, oracle, dispatcher, wallet=wallet, notify=notices, store=store)
    await session.connect()
    session.load_quote(1)
    result = await session.share()
    assert result.outcome is ShareOutcome.FAILED
    assert notices.errors() == ["Failed to open composer"]
    assert session.claim_state.phase is ClaimPhase.UNLOCKABLE


@pytest.mark.asyncio
async def test_share_reward_embeds_app_url(session, actions, config):
    result = await session.share_reward()
    assert result.outcome is ShareOutcome.TEXT_COMPOSE
    opened = unquote(actions.opened[-1])
    assert opened.endswith("embeds[]=https://example.app/castinspo")
    assert config.reward_caption in opened
