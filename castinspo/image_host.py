from __future__ import annotations

from typing import Optional

import logging

import requests

from .errors import ImageHostError


logger = logging.getLogger(__name__)


class ImgBBClient:
	"""Upload rendered cards to ImgBB so compose links can embed them.

	Docs: https://api.imgbb.com/
	"""

	def __init__(
		self,
		api_key: str,
		base_url: str = "https://api.imgbb.com/1/upload",
		expiration_s: Optional[int] = None,
		timeout_seconds: int = 20,
		session: Optional[requests.Session] = None,
	):
		if not api_key:
			raise ImageHostError("ImgBB API key is missing.")
		self.api_key = api_key
		self.base_url = base_url
		self.expiration_s = expiration_s
		self.timeout_seconds = max(1, int(timeout_seconds))
		self._session = session or requests.Session()

	def upload(self, image_bytes: bytes, filename: str = "quote.png") -> str:
		"""Upload and return the public URL; raises ImageHostError on any failure."""
		params = {"key": self.api_key}
		if self.expiration_s:
			params["expiration"] = str(self.expiration_s)
		try:
			r = self._session.post(
				self.base_url,
				params=params,
				files={"image": (filename, image_bytes)},
				timeout=self.timeout_seconds,
			)
			data = r.json()
		except (requests.RequestException, ValueError) as e:
			raise ImageHostError(f"ImgBB upload failed: {e}") from e
		if isinstance(data, dict) and data.get("success"):
			url = (data.get("data") or {}).get("url")
			if url:
				logger.info("[imgbb] uploaded %s -> %s", filename, url)
				return str(url)
		message = "Unknown error"
		if isinstance(data, dict):
			err = data.get("error")
			if isinstance(err, dict) and err.get("message"):
				message = str(err["message"])
		raise ImageHostError(f"ImgBB upload failed: {message} (HTTP {r.status_code})")
