from __future__ import annotations

from typing import Optional, Tuple
import asyncio
import logging

import typer
from web3 import AsyncWeb3

from .chain import ClaimEligibilityOracle, claim_contract, rpc_client
from .config import AppConfig
from .image_host import ImgBBClient
from .image_maker import ImageCompositor
from .quote_store import QuoteStore, select_quote
from .session import InspoSession
from .share import ShareDispatcher, deep_link_url
from .twitter_client import XShareSurface
from .wallet import LocalKeyWallet


logger = logging.getLogger(__name__)

app = typer.Typer(help="CastInspo: daily quote cards with a share-gated on-chain claim")


class BrowserHostActions:
	def open_url(self, url: str) -> None:
		code = typer.launch(url)
		if code != 0:
			raise RuntimeError(f"launcher exited with status {code}")


class PrintHostActions:
	"""Dry-run host: shows the compose link instead of opening it."""

	def open_url(self, url: str) -> None:
		print(f"[dry-run] Compose URL: {url}")


def _echo_notify(message: str, level: str) -> None:
	if not message:
		return
	typer.echo(f"[{level}] {message}", err=level == "error")


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging")):
	logging.basicConfig(
		level=logging.DEBUG if verbose else logging.WARNING,
		format="%(asctime)s %(levelname)s %(name)s: %(message)s",
	)


def _build_dispatcher(config: AppConfig, dry_run: bool) -> ShareDispatcher:
	if dry_run:
		return ShareDispatcher(config.compose_base_url, host_actions=PrintHostActions(), link_opener=print)
	native = XShareSurface(config)
	image_host = ImgBBClient(config.imgbb_api_key, expiration_s=config.imgbb_expiration_s) if config.imgbb_api_key else None
	return ShareDispatcher(
		config.compose_base_url,
		native=native,
		image_host=image_host,
		host_actions=BrowserHostActions(),
	)


def _build_session(config: AppConfig, dry_run: bool, assume_yes: bool = False) -> Tuple[InspoSession, AsyncWeb3]:
	w3 = rpc_client(config.rpc_url)
	wallet = None
	if config.wallet_private_key:
		confirm = None if assume_yes else (lambda tx: typer.confirm(f"Sign claim transaction to {tx.get('to')}?"))
		wallet = LocalKeyWallet(w3, config.wallet_private_key, confirm=confirm)
	oracle = ClaimEligibilityOracle(claim_contract(w3, config.contract_address))
	session = InspoSession.build(config, oracle, _build_dispatcher(config, dry_run), wallet=wallet, notify=_echo_notify)
	return session, w3


async def _disconnect(w3: AsyncWeb3) -> None:
	try:
		await w3.provider.disconnect()
	except Exception as e:
		logger.debug("Provider disconnect failed: %s", e)


@app.command()
def quote(index: Optional[int] = typer.Option(None, "--index", "-q", help="Quote index; random if omitted or out of range")):
	"""Print a quote and its deep link."""
	config = AppConfig.load()
	q = select_quote(QuoteStore(config.quotes_path), index)
	print(f"#{q.id} {q.text}")
	print(f"- {q.author}")
	print(deep_link_url(config.app_base_url, q.id))


@app.command()
def render(
	out: str = typer.Option("quote.png", "--out", "-o", help="Where to write the PNG"),
	index: Optional[int] = typer.Option(None, "--index", "-q", help="Quote index; random if omitted or out of range"),
):
	"""Render a quote card to a PNG file."""
	config = AppConfig.load()
	q = select_quote(QuoteStore(config.quotes_path), index)
	image = ImageCompositor(config.render).render(q.text, q.author)
	if image is None:
		print(f"[skip] Could not render quote #{q.id}; text only:")
		print(f"{q.text} - {q.author}")
		raise typer.Exit(code=1)
	with open(out, "wb") as f:
		f.write(image.data)
	layout = image.layout
	print(f"Wrote {out} ({image.width_px}x{image.height_px}, quote #{q.id}, font {layout.font_px}px, {len(layout.lines)} lines)")


@app.command()
def share(
	index: Optional[int] = typer.Option(None, "--index", "-q", help="Quote index; random if omitted or out of range"),
	dry_run: Optional[bool] = typer.Option(
		None,
		"--dry-run/--no-dry-run",
		help="If set, overrides config default to skip posting or force posting.",
	),
):
	"""Render a quote and open the share composer."""
	config = AppConfig.load()
	use_dry_run = config.dry_run_default if dry_run is None else dry_run
	session, w3 = _build_session(config, use_dry_run)

	async def _run():
		try:
			current = session.load_quote(index)
			print(f"#{current.quote.id} {current.quote.text} - {current.quote.author}")
			return await session.share()
		finally:
			await _disconnect(w3)

	result = asyncio.run(_run())
	print(f"share: {result.outcome.value}")
	if not result.delivered:
		raise typer.Exit(code=1)


@app.command()
def status():
	"""Show the on-chain claim status for the configured wallet."""
	config = AppConfig.load()
	session, w3 = _build_session(config, dry_run=True)

	async def _run():
		try:
			return await session.connect()
		finally:
			await _disconnect(w3)

	ctx = asyncio.run(_run())
	if not ctx.address:
		print("wallet: not connected (set WALLET_PRIVATE_KEY)")
		raise typer.Exit(code=1)
	state = session.claim_state
	print(f"wallet: {ctx.address} chain={ctx.chain_id}")
	if state.current_day is None:
		print("[skip] Claim status unavailable (RPC error).")
		return
	print(f"current day: {state.current_day}  last claim day: {state.last_claim_day}")
	print(f"claimed today: {'yes' if state.has_claimed_today else 'no'}")


@app.command()
def claim(
	index: Optional[int] = typer.Option(None, "--index", "-q", help="Quote index to share before claiming"),
	dry_run: Optional[bool] = typer.Option(
		None,
		"--dry-run/--no-dry-run",
		help="If set, overrides config default to skip posting or force posting.",
	),
	yes: bool = typer.Option(False, "--yes", "-y", help="Sign without asking"),
	share_reward: bool = typer.Option(False, "--share-reward/--no-share-reward", help="Open a reward cast after claiming"),
):
	"""Share today's quote, then check in and claim the daily reward."""
	config = AppConfig.load()
	use_dry_run = config.dry_run_default if dry_run is None else dry_run
	session, w3 = _build_session(config, use_dry_run, assume_yes=yes)

	async def _claim():
		ctx = await session.connect()
		if ctx.address and session.claim_state.has_claimed_today:
			return None
		session.load_quote(index)
		await session.share()
		if use_dry_run:
			print(f"[dry-run] Skipping claim transaction (phase={session.claim_state.phase.value}).")
			raise typer.Exit()
		outcome = await session.claim()
		await session.machine.wait_for_reconciliation()
		if share_reward and session.claim_state.has_claimed_today:
			await session.share_reward()
		return outcome

	async def _run():
		try:
			return await _claim()
		finally:
			await _disconnect(w3)

	outcome = asyncio.run(_run())
	if outcome is None:
		print("Already claimed today. Come back tomorrow!")
		return
	state = session.claim_state
	print(f"claim: {outcome.value} (phase={state.phase.value})")
	if state.pending_tx_hash:
		print(f"tx: {state.pending_tx_hash}")
	if not state.has_claimed_today:
		raise typer.Exit(code=1)


@app.command()
def health():
	"""Check basic configuration and environment."""
	config = AppConfig.load()
	missing = []
	if not config.wallet_private_key:
		missing.append("WALLET_PRIVATE_KEY")
	optional = []
	if not config.imgbb_api_key:
		optional.append("IMGBB_API_KEY")
	if not XShareSurface(config).can_share_files("image/png"):
		optional.append("TWITTER_*")
	status = "ok" if not missing else f"missing: {', '.join(missing)}"
	print(f"config: {status}")
	print(f"chain: {config.chain_id} via {config.rpc_url}")
	print(f"unlock policy: {config.unlock_policy}; abort on failed network switch: {config.abort_on_switch_failure}")
	if optional:
		print(f"optional (not set): {', '.join(optional)}")


def run():
	app()


if __name__ == "__main__":
	run()
