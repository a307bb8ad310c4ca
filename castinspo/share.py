from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Protocol

import asyncio
import logging
import webbrowser
from urllib.parse import quote

from .image_maker import RenderedImage


logger = logging.getLogger(__name__)

MAX_CAPTION_CHARS = 280


class NativeShareSurface(Protocol):
	def can_share_files(self, mime_type: str) -> bool: ...

	def share_file(self, image_bytes: bytes, filename: str, mime_type: str, caption: str) -> Optional[str]: ...


class ImageHost(Protocol):
	def upload(self, image_bytes: bytes, filename: str = "quote.png") -> str: ...


class HostActions(Protocol):
	def open_url(self, url: str) -> None: ...


class ShareOutcome(str, Enum):
	NATIVE = "native"
	HOSTED_COMPOSE = "hosted_compose"
	TEXT_COMPOSE = "text_compose"
	LINK_FALLBACK = "link_fallback"
	FAILED = "failed"


@dataclass(frozen=True)
class ShareResult:
	outcome: ShareOutcome
	compose_url: Optional[str] = None
	image_url: Optional[str] = None
	error: Optional[str] = None

	@property
	def delivered(self) -> bool:
		return self.outcome is not ShareOutcome.FAILED


def deep_link_url(app_base_url: str, quote_id: int) -> str:
	sep = "&" if "?" in app_base_url else "?"
	return f"{app_base_url}{sep}q={quote_id}"


def trim_caption(caption: str, limit: int = MAX_CAPTION_CHARS) -> str:
	if len(caption) > limit:
		return caption[:limit] + "..."
	return caption


def compose_url(base_url: str, text: str, embeds: Optional[List[str]] = None) -> str:
	"""Build a cast compose URL; embeds are kept out of the text body."""
	url = f"{base_url}?text={quote(text, safe='')}"
	for embed in embeds or []:
		url += f"&embeds[]={quote(embed, safe='')}"
	return url


def open_in_browser(url: str) -> None:
	if not webbrowser.open(url):
		raise RuntimeError("no browser available to open link")


class ShareDispatcher:
	"""Hand a rendered card to the best available share surface.

	Order: native file share, hosted image + deep-link compose, text-only
	compose, then the compose URL as a plain link. Never raises.
	"""

	def __init__(
		self,
		compose_base_url: str,
		native: Optional[NativeShareSurface] = None,
		image_host: Optional[ImageHost] = None,
		host_actions: Optional[HostActions] = None,
		link_opener=open_in_browser,
	):
		self.compose_base_url = compose_base_url
		self.native = native
		self.image_host = image_host
		self.host_actions = host_actions
		self.link_opener = link_opener

	async def share(self, image: Optional[RenderedImage], caption: str, deep_link: str) -> ShareResult:
		text = trim_caption(caption)

		if image is not None and self.native is not None:
			if await self._try_native(image, text):
				return ShareResult(ShareOutcome.NATIVE)

		public_url: Optional[str] = None
		if image is not None and self.image_host is not None:
			try:
				public_url = await asyncio.to_thread(self.image_host.upload, image.data, image.filename)
			except Exception as e:
				logger.warning("[share] image upload failed, sharing link only: %s", e)
		elif self.image_host is None:
			logger.info("[share] no image host configured; sharing link only")

		embeds = [public_url, deep_link] if public_url else [deep_link]
		url = compose_url(self.compose_base_url, text, embeds)
		outcome = ShareOutcome.HOSTED_COMPOSE if public_url else ShareOutcome.TEXT_COMPOSE
		return await self._open_compose(url, outcome, public_url)

	async def share_text(self, caption: str, embed_url: Optional[str] = None) -> ShareResult:
		url = compose_url(self.compose_base_url, trim_caption(caption), [embed_url] if embed_url else [])
		return await self._open_compose(url, ShareOutcome.TEXT_COMPOSE, None)

	async def _try_native(self, image: RenderedImage, text: str) -> bool:
		try:
			if not self.native.can_share_files(image.mime_type):
				return False
			ref = await asyncio.to_thread(self.native.share_file, image.data, image.filename, image.mime_type, text)
		except Exception as e:
			logger.warning("[share] native share failed: %s: %s", type(e).__name__, e)
			return False
		if ref is None:
			logger.warning("[share] native share surface returned nothing; falling back")
			return False
		logger.info("[share] shared natively: %s", ref)
		return True

	async def _open_compose(self, url: str, outcome: ShareOutcome, image_url: Optional[str]) -> ShareResult:
		if self.host_actions is not None:
			try:
				await asyncio.to_thread(self.host_actions.open_url, url)
				return ShareResult(outcome, compose_url=url, image_url=image_url)
			except Exception as e:
				logger.warning("[share] host could not open composer: %s", e)
		try:
			await asyncio.to_thread(self.link_opener, url)
			return ShareResult(ShareOutcome.LINK_FALLBACK, compose_url=url, image_url=image_url)
		except Exception as e:
			logger.error("[share] failed to open composer: %s", e)
			return ShareResult(
				ShareOutcome.FAILED,
				compose_url=url,
				image_url=image_url,
				error="Failed to open composer",
			)
