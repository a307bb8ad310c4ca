from __future__ import annotations

import logging
from typing import Any, Callable, List, Optional, Protocol

from eth_account import Account
from pydantic import BaseModel
from web3 import AsyncWeb3, Web3

from .errors import ProviderRpcError, UNRECOGNIZED_CHAIN_CODE, UserRejected

logger = logging.getLogger(__name__)


class WalletProvider(Protocol):
	"""EIP-1193 style request surface; the only wallet capability the core uses."""

	async def request(self, method: str, params: Optional[List[Any]] = None) -> Any: ...


class WalletContext(BaseModel):
	address: Optional[str] = None
	chain_id: Optional[str] = None


def parse_quantity(value: Any) -> Optional[int]:
	if value is None:
		return None
	if isinstance(value, int):
		return value
	s = str(value).strip().lower()
	try:
		return int(s, 16) if s.startswith("0x") else int(s)
	except ValueError:
		return None


async def connect_wallet(wallet: Optional[WalletProvider]) -> WalletContext:
	"""Discover the account and network; a failing wallet yields an empty context."""
	if wallet is None:
		return WalletContext()
	try:
		accounts = await wallet.request("eth_requestAccounts")
	except Exception as e:
		logger.error("Error connecting wallet: %s", e)
		return WalletContext()
	if not accounts:
		return WalletContext()
	address = str(accounts[0])
	logger.info("Wallet connected: %s", address)
	chain_id: Optional[str] = None
	try:
		chain_id = str(await wallet.request("eth_chainId"))
	except Exception as e:
		logger.warning("Error reading chain id: %s", e)
	return WalletContext(address=address, chain_id=chain_id)


class LocalKeyWallet:
	"""Wallet provider backed by a local private key and an RPC endpoint.

	The RPC endpoint fixes the network, so ``wallet_switchEthereumChain`` only
	succeeds when it already points at the requested chain. ``confirm`` is
	asked before every signature; returning False is a user rejection.
	"""

	def __init__(
		self,
		w3: AsyncWeb3,
		private_key: str,
		confirm: Optional[Callable[[dict], bool]] = None,
	):
		self.w3 = w3
		self.account = Account.from_key(private_key)
		self.confirm = confirm

	@property
	def address(self) -> str:
		return self.account.address

	async def request(self, method: str, params: Optional[List[Any]] = None) -> Any:
		params = params or []
		if method in ("eth_requestAccounts", "eth_accounts"):
			return [self.address]
		if method == "eth_chainId":
			return hex(await self.w3.eth.chain_id)
		if method == "wallet_switchEthereumChain":
			return await self._switch_chain(params)
		if method == "eth_sendTransaction":
			if not params:
				raise ProviderRpcError(-32602, "eth_sendTransaction requires a transaction")
			return await self._send_transaction(dict(params[0]))
		raise ProviderRpcError(4200, f"Unsupported method: {method}")

	async def _switch_chain(self, params: List[Any]) -> None:
		wanted = parse_quantity((params[0] or {}).get("chainId") if params else None)
		current = await self.w3.eth.chain_id
		if wanted != current:
			raise ProviderRpcError(
				UNRECOGNIZED_CHAIN_CODE,
				f"RPC endpoint serves chain {current}, cannot switch to {wanted}",
			)
		return None

	async def _send_transaction(self, tx: dict) -> str:
		sender = Web3.to_checksum_address(tx.get("from") or self.address)
		if sender != self.address:
			raise ProviderRpcError(4100, f"Account {sender} is not managed by this wallet")
		if self.confirm is not None and not self.confirm(tx):
			raise UserRejected()

		chain_id = await self.w3.eth.chain_id
		built = {
			"from": sender,
			"to": Web3.to_checksum_address(tx["to"]),
			"data": tx.get("data", "0x"),
			"value": parse_quantity(tx.get("value")) or 0,
			"chainId": chain_id,
			"nonce": await self.w3.eth.get_transaction_count(sender, "pending"),
		}
		# Raises when the call would revert, before anything is signed
		built["gas"] = await self.w3.eth.estimate_gas(built)
		built["gasPrice"] = await self.w3.eth.gas_price
		signed = self.account.sign_transaction(built)
		tx_hash = await self.w3.eth.send_raw_transaction(signed.raw_transaction)
		logger.info("Transaction sent: %s", Web3.to_hex(tx_hash))
		return Web3.to_hex(tx_hash)
