from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import logging
import random

from .chain import ClaimEligibilityOracle
from .claimer import ClaimOutcome, ClaimStateMachine, Notifier
from .claim_state import ClaimState
from .config import AppConfig
from .image_maker import ImageCompositor, RenderedImage
from .quote_store import Quote, QuoteStore, select_quote
from .share import ShareDispatcher, ShareOutcome, ShareResult, deep_link_url
from .wallet import WalletContext, WalletProvider, connect_wallet


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CurrentQuote:
	quote: Quote
	image: Optional[RenderedImage]
	deep_link: str


class InspoSession:
	"""One app session: current quote, its card, sharing and the daily claim."""

	def __init__(
		self,
		config: AppConfig,
		store: QuoteStore,
		compositor: ImageCompositor,
		dispatcher: ShareDispatcher,
		machine: ClaimStateMachine,
		wallet: Optional[WalletProvider] = None,
		notify: Optional[Notifier] = None,
		rng: Optional[random.Random] = None,
	):
		self.config = config
		self.store = store
		self.compositor = compositor
		self.dispatcher = dispatcher
		self.machine = machine
		self.wallet = wallet
		self.notify = notify or machine.notify
		self.rng = rng
		self.wallet_context = WalletContext()
		self.current: Optional[CurrentQuote] = None

	@classmethod
	def build(
		cls,
		config: AppConfig,
		oracle: ClaimEligibilityOracle,
		dispatcher: ShareDispatcher,
		wallet: Optional[WalletProvider] = None,
		notify: Optional[Notifier] = None,
		store: Optional[QuoteStore] = None,
		rng: Optional[random.Random] = None,
	) -> "InspoSession":
		machine = ClaimStateMachine(
			oracle,
			wallet,
			contract_address=config.contract_address,
			chain_id=config.chain_id,
			reconcile_delay_s=config.reconcile_delay_s,
			unlock_policy=config.unlock_policy,
			abort_on_switch_failure=config.abort_on_switch_failure,
			notify=notify,
		)
		return cls(
			config,
			store or QuoteStore(config.quotes_path),
			ImageCompositor(config.render),
			dispatcher,
			machine,
			wallet=wallet,
			notify=notify,
			rng=rng,
		)

	@property
	def claim_state(self) -> ClaimState:
		return self.machine.state

	async def connect(self) -> WalletContext:
		self.wallet_context = await connect_wallet(self.wallet)
		await self.machine.start(self.wallet_context.address)
		return self.wallet_context

	def load_quote(self, index: Optional[int] = None) -> CurrentQuote:
		quote = select_quote(self.store, index, self.rng)
		image = self.compositor.render(quote.text, quote.author)
		if image is None:
			logger.error("Failed to generate quote image for #%d", quote.id)
		self.current = CurrentQuote(quote, image, deep_link_url(self.config.app_base_url, quote.id))
		return self.current

	async def share(self) -> Optional[ShareResult]:
		if self.current is None:
			return None
		result = await self.dispatcher.share(self.current.image, self.config.share_caption, self.current.deep_link)
		if result.outcome is ShareOutcome.FAILED:
			self.notify(result.error or "Failed to open composer", "error")
		self.machine.on_share_completed(result)
		return result

	async def claim(self) -> ClaimOutcome:
		return await self.machine.claim()

	async def share_reward(self) -> ShareResult:
		result = await self.dispatcher.share_text(self.config.reward_caption, self.config.app_base_url)
		if result.outcome is ShareOutcome.FAILED:
			self.notify(result.error or "Failed to open composer", "error")
		return result
