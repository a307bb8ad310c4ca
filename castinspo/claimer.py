from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Callable, List, Optional

from .chain import CLAIM_CALLDATA, ClaimEligibilityOracle
from .claim_state import (
	ClaimEvent,
	ClaimFailed,
	ClaimPhase,
	ClaimRejected,
	ClaimRequested,
	ClaimReverted,
	ClaimState,
	ClaimSubmitted,
	ErrorCleared,
	ShareCompleted,
	SyncReason,
	Synced,
	reduce,
)
from .errors import EXECUTION_REVERTED_CODE, OracleUnavailable, USER_REJECTED_CODE, UserRejected
from .share import ShareResult
from .wallet import WalletProvider, parse_quantity

logger = logging.getLogger(__name__)

# notify(message, level) where level is "info", "success" or "error"
Notifier = Callable[[str, str], None]

CONNECT_WALLET_MESSAGE = "No wallet connected. Please open in Farcaster."
WRONG_NETWORK_MESSAGE = "Please switch your wallet to Base to claim."
GENERIC_FAILURE_MESSAGE = "Failed to claim"


class ClaimOutcome(str, Enum):
	NO_WALLET = "no_wallet"
	ALREADY_CLAIMED = "already_claimed"
	LOCKED = "locked"
	IN_FLIGHT = "in_flight"
	SUBMITTED = "submitted"
	CANCELLED = "cancelled"
	REVERTED = "reverted"
	WRONG_NETWORK = "wrong_network"
	FAILED = "failed"


class ClaimErrorKind(str, Enum):
	USER_REJECTED = "user_rejected"
	REVERTED = "reverted"
	UNKNOWN = "unknown"


def classify_claim_error(exc: BaseException) -> ClaimErrorKind:
	if isinstance(exc, UserRejected):
		return ClaimErrorKind.USER_REJECTED
	code = getattr(exc, "code", None)
	if code == USER_REJECTED_CODE:
		return ClaimErrorKind.USER_REJECTED
	if code == EXECUTION_REVERTED_CODE or "reverted" in str(exc).lower():
		return ClaimErrorKind.REVERTED
	return ClaimErrorKind.UNKNOWN


def _log_notify(message: str, level: str) -> None:
	logger.log(logging.ERROR if level == "error" else logging.INFO, "[%s] %s", level, message)


class ClaimStateMachine:
	"""Share-gated, once-per-day claim against the check-in contract.

	All transitions go through ``claim_state.reduce``. The ``CLAIMING`` phase
	doubles as the mutex: a second ``claim()`` while one is in flight is a
	no-op. After a submitted claim the machine trusts itself optimistically
	and re-reads the contract ``reconcile_delay_s`` later.
	"""

	def __init__(
		self,
		oracle: ClaimEligibilityOracle,
		wallet: Optional[WalletProvider],
		*,
		contract_address: str,
		chain_id: int,
		reconcile_delay_s: float = 5.0,
		unlock_policy: str = "intent",
		abort_on_switch_failure: bool = True,
		notify: Optional[Notifier] = None,
	):
		self.oracle = oracle
		self.wallet = wallet
		self.contract_address = contract_address
		self.chain_id = chain_id
		self.reconcile_delay_s = reconcile_delay_s
		self.unlock_policy = unlock_policy
		self.abort_on_switch_failure = abort_on_switch_failure
		self.notify = notify or _log_notify
		self.state = ClaimState()
		self.address: Optional[str] = None
		self.submit_attempts = 0
		self._reconcile_task: Optional[asyncio.Task] = None
		self._listeners: List[Callable[[ClaimState], None]] = []

	def subscribe(self, listener: Callable[[ClaimState], None]) -> None:
		self._listeners.append(listener)

	def dispatch(self, event: ClaimEvent) -> ClaimState:
		new_state = reduce(self.state, event)
		if new_state != self.state:
			logger.debug("%s: %s -> %s", type(event).__name__, self.state.phase.value, new_state.phase.value)
			self.state = new_state
			for listener in self._listeners:
				listener(new_state)
		return self.state

	async def start(self, address: Optional[str]) -> ClaimState:
		self.address = address
		if address:
			await self.refresh(SyncReason.STARTUP)
		return self.state

	async def refresh(self, reason: SyncReason = SyncReason.POLL) -> bool:
		"""Re-read the contract; on a transient failure the known state is kept."""
		address = self.address
		if not address:
			return False
		try:
			eligibility = await self.oracle.check(address)
		except OracleUnavailable:
			return False
		if self.address != address:
			logger.info("Discarding %s result for %s; wallet changed", reason.value, address)
			return False
		self.dispatch(Synced(eligibility.current_day, eligibility.last_claim_day, reason))
		return True

	def on_share_completed(self, result: Optional[ShareResult] = None) -> ClaimState:
		if self.unlock_policy == "delivery":
			unlocks = result is not None and result.delivered
		else:
			unlocks = True
		return self.dispatch(ShareCompleted(unlocks=unlocks))

	async def claim(self) -> ClaimOutcome:
		if not self.address or self.wallet is None:
			self.notify(CONNECT_WALLET_MESSAGE, "error")
			return ClaimOutcome.NO_WALLET
		if self.state.has_claimed_today:
			return ClaimOutcome.ALREADY_CLAIMED
		if self.state.phase is ClaimPhase.CLAIMING:
			return ClaimOutcome.IN_FLIGHT
		if not self.state.can_claim:
			return ClaimOutcome.LOCKED

		self.dispatch(ClaimRequested())
		address = self.address
		try:
			if not await self._ensure_network() and self.abort_on_switch_failure:
				self._fail(WRONG_NETWORK_MESSAGE)
				return ClaimOutcome.WRONG_NETWORK
			self.submit_attempts += 1
			tx_hash = await self.wallet.request(
				"eth_sendTransaction",
				[{"to": self.contract_address, "from": address, "data": CLAIM_CALLDATA, "value": "0x0"}],
			)
		except Exception as e:
			return await self._handle_failure(e)

		logger.info("Transaction sent: %s", tx_hash)
		self.dispatch(ClaimSubmitted(str(tx_hash) if tx_hash is not None else None))
		self.notify("Claimed successfully!", "success")
		self._schedule_reconciliation(address)
		return ClaimOutcome.SUBMITTED

	async def _ensure_network(self) -> bool:
		try:
			current = parse_quantity(await self.wallet.request("eth_chainId"))
		except Exception as e:
			logger.error("Error checking chain ID: %s", e)
			current = None
		if current == self.chain_id:
			return True
		try:
			await self.wallet.request("wallet_switchEthereumChain", [{"chainId": hex(self.chain_id)}])
			return True
		except Exception as e:
			if self.abort_on_switch_failure:
				logger.error("Failed to switch chain, aborting claim: %s", e)
			else:
				logger.error("Failed to switch chain, submitting anyway: %s", e)
			return False

	async def _handle_failure(self, exc: Exception) -> ClaimOutcome:
		kind = classify_claim_error(exc)
		if kind is ClaimErrorKind.USER_REJECTED:
			logger.info("Claim cancelled by user")
			self.dispatch(ClaimRejected())
			return ClaimOutcome.CANCELLED
		if kind is ClaimErrorKind.REVERTED:
			logger.warning("Claim reverted: %s", exc)
			self.dispatch(ClaimReverted())
			self.notify(self.state.error or "", "error")
			await self.refresh(SyncReason.RESYNC)
			return ClaimOutcome.REVERTED
		logger.error("Claim failed: %s", exc)
		self._fail(GENERIC_FAILURE_MESSAGE)
		return ClaimOutcome.FAILED

	def _fail(self, message: str) -> None:
		self.dispatch(ClaimFailed(message))
		self.notify(message, "error")
		self.dispatch(ErrorCleared())

	def _schedule_reconciliation(self, address: str) -> None:
		if self._reconcile_task is not None and not self._reconcile_task.done():
			self._reconcile_task.cancel()
		self._reconcile_task = asyncio.create_task(self._reconcile(address))

	async def _reconcile(self, address: str) -> None:
		await asyncio.sleep(self.reconcile_delay_s)
		if self.address != address:
			logger.info("Skipping reconciliation for %s; wallet changed", address)
			return
		if not await self.refresh(SyncReason.RECONCILE):
			return
		if self.state.phase is ClaimPhase.UNLOCKABLE and self.state.error:
			self.notify(self.state.error, "error")

	async def wait_for_reconciliation(self) -> None:
		task = self._reconcile_task
		if task is not None:
			try:
				await task
			except asyncio.CancelledError:
				pass
