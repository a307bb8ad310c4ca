from __future__ import annotations

import asyncio
import logging
from typing import Any

from pydantic import BaseModel, ConfigDict
from web3 import AsyncWeb3, Web3

from .errors import OracleUnavailable

logger = logging.getLogger(__name__)

CLAIM_ABI = [
	{
		"type": "function",
		"name": "checkInAndClaim",
		"inputs": [],
		"outputs": [],
		"stateMutability": "nonpayable",
	},
]

VIEW_ABI = [
	{
		"type": "function",
		"name": "getCurrentDay",
		"inputs": [],
		"outputs": [{"name": "", "type": "uint256"}],
		"stateMutability": "view",
	},
	{
		"type": "function",
		"name": "lastClaimDay",
		"inputs": [{"name": "owner", "type": "address"}],
		"outputs": [{"name": "", "type": "uint256"}],
		"stateMutability": "view",
	},
]

# 4-byte selector of checkInAndClaim(); the call takes no arguments.
CLAIM_CALLDATA = Web3.to_hex(Web3.keccak(text="checkInAndClaim()")[:4])


class Eligibility(BaseModel):
	model_config = ConfigDict(frozen=True)

	current_day: int
	last_claim_day: int

	@property
	def has_claimed_today(self) -> bool:
		return self.last_claim_day == self.current_day


def rpc_client(rpc_url: str) -> AsyncWeb3:
	"""One client per process; the caller disconnects its provider when done."""
	return AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(rpc_url))


def claim_contract(w3: AsyncWeb3, address: str) -> Any:
	return w3.eth.contract(address=Web3.to_checksum_address(address), abi=CLAIM_ABI + VIEW_ABI)


class ClaimEligibilityOracle:
	"""Answers "has this address claimed for the contract's current day?"."""

	def __init__(self, contract: Any):
		self.contract = contract

	async def check(self, address: str) -> Eligibility:
		try:
			owner = Web3.to_checksum_address(address)
			current_day, last_claim = await asyncio.gather(
				self.contract.functions.getCurrentDay().call(),
				self.contract.functions.lastClaimDay(owner).call(),
			)
		except Exception as e:
			logger.warning("Failed to read claim status for %s: %s", address, e)
			raise OracleUnavailable(str(e)) from e
		result = Eligibility(current_day=int(current_day), last_claim_day=int(last_claim))
		logger.debug("Current day: %d, last claim: %d", result.current_day, result.last_claim_day)
		return result
