from __future__ import annotations

from typing import Any, Optional


# EIP-1193 / JSON-RPC codes the claim flow distinguishes.
USER_REJECTED_CODE = 4001
UNRECOGNIZED_CHAIN_CODE = 4902
EXECUTION_REVERTED_CODE = 3


class CastInspoError(Exception):
	pass


class OracleUnavailable(CastInspoError):
	"""A read against the claim contract failed; callers keep what they knew."""


class ImageHostError(CastInspoError):
	pass


class ProviderRpcError(CastInspoError):
	"""Error raised by a wallet provider, shaped like an EIP-1193 error."""

	def __init__(self, code: int, message: str, data: Optional[Any] = None):
		super().__init__(message)
		self.code = code
		self.message = message
		self.data = data

	def __str__(self) -> str:
		return f"{self.message} (code={self.code})"


class UserRejected(ProviderRpcError):
	def __init__(self, message: str = "User rejected the request."):
		super().__init__(USER_REJECTED_CODE, message)
