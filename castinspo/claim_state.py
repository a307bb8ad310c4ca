from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Union

ALREADY_CLAIMED_MESSAGE = "Transaction failed. Already claimed?"
RECONCILE_MISMATCH_MESSAGE = "Claim was not confirmed on-chain. Please try again."


class ClaimPhase(str, Enum):
	LOCKED = "locked"
	UNLOCKABLE = "unlockable"
	CLAIMING = "claiming"
	CLAIMED = "claimed"
	ERRORED = "errored"


class SyncReason(str, Enum):
	STARTUP = "startup"
	POLL = "poll"
	RECONCILE = "reconcile"
	RESYNC = "resync"


@dataclass(frozen=True)
class ClaimState:
	phase: ClaimPhase = ClaimPhase.LOCKED
	has_claimed_today: bool = False
	pending_tx_hash: Optional[str] = None
	current_day: Optional[int] = None
	last_claim_day: Optional[int] = None
	error: Optional[str] = None

	@property
	def can_claim(self) -> bool:
		return not self.has_claimed_today and self.phase in (ClaimPhase.UNLOCKABLE, ClaimPhase.ERRORED)


@dataclass(frozen=True)
class Synced:
	current_day: int
	last_claim_day: int
	reason: SyncReason = SyncReason.POLL


@dataclass(frozen=True)
class ShareCompleted:
	unlocks: bool = True


@dataclass(frozen=True)
class ClaimRequested:
	pass


@dataclass(frozen=True)
class ClaimSubmitted:
	tx_hash: Optional[str] = None


@dataclass(frozen=True)
class ClaimRejected:
	pass


@dataclass(frozen=True)
class ClaimReverted:
	message: str = ALREADY_CLAIMED_MESSAGE


@dataclass(frozen=True)
class ClaimFailed:
	message: str


@dataclass(frozen=True)
class ErrorCleared:
	pass


ClaimEvent = Union[
	Synced,
	ShareCompleted,
	ClaimRequested,
	ClaimSubmitted,
	ClaimRejected,
	ClaimReverted,
	ClaimFailed,
	ErrorCleared,
]


def reduce(state: ClaimState, event: ClaimEvent) -> ClaimState:
	if isinstance(event, Synced):
		return _on_synced(state, event)

	if isinstance(event, ShareCompleted):
		if state.has_claimed_today or not event.unlocks or state.phase is not ClaimPhase.LOCKED:
			return state
		return replace(state, phase=ClaimPhase.UNLOCKABLE, error=None)

	if isinstance(event, ClaimRequested):
		if not state.can_claim:
			return state
		return replace(state, phase=ClaimPhase.CLAIMING, error=None)

	if isinstance(event, ClaimSubmitted):
		if state.phase is not ClaimPhase.CLAIMING:
			return state
		return replace(
			state,
			phase=ClaimPhase.CLAIMED,
			has_claimed_today=True,
			pending_tx_hash=event.tx_hash,
			error=None,
		)

	if isinstance(event, ClaimRejected):
		if state.phase is not ClaimPhase.CLAIMING:
			return state
		return replace(state, phase=ClaimPhase.UNLOCKABLE)

	if isinstance(event, ClaimReverted):
		if state.phase is not ClaimPhase.CLAIMING:
			return state
		return replace(state, phase=ClaimPhase.LOCKED, error=event.message)

	if isinstance(event, ClaimFailed):
		if state.phase is not ClaimPhase.CLAIMING:
			return state
		return replace(state, phase=ClaimPhase.ERRORED, error=event.message)

	if isinstance(event, ErrorCleared):
		if state.phase is not ClaimPhase.ERRORED:
			return state
		return replace(state, phase=ClaimPhase.UNLOCKABLE)

	raise TypeError(f"unknown claim event: {event!r}")


def _on_synced(state: ClaimState, event: Synced) -> ClaimState:
	prev_day = state.current_day
	claimed = event.last_claim_day == event.current_day
	state = replace(
		state,
		current_day=event.current_day,
		last_claim_day=event.last_claim_day,
		has_claimed_today=claimed,
	)
	if state.phase is ClaimPhase.CLAIMING:
		# The in-flight attempt decides the phase.
		return state
	if claimed:
		return replace(state, phase=ClaimPhase.CLAIMED, error=None)
	if state.phase is ClaimPhase.CLAIMED:
		if prev_day is not None and event.current_day != prev_day:
			# New day on the contract: a fresh share is needed.
			return replace(state, phase=ClaimPhase.LOCKED, pending_tx_hash=None, error=None)
		# Same day, yet the chain has no claim for it.
		return replace(
			state,
			phase=ClaimPhase.UNLOCKABLE,
			pending_tx_hash=None,
			error=RECONCILE_MISMATCH_MESSAGE,
		)
	return state
