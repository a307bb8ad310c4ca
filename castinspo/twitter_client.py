from __future__ import annotations

from typing import Optional
import io
import logging
import time

import tweepy

from .config import AppConfig


logger = logging.getLogger(__name__)

SHAREABLE_MIME_TYPES = {"image/png", "image/jpeg"}


class XShareSurface:
	"""Native file share: posts the rendered card with its caption to X."""

	def __init__(self, config: AppConfig, max_attempts: int = 3):
		self.config = config
		self.max_attempts = max(1, max_attempts)
		self._client: Optional[tweepy.Client] = None
		self._api: Optional[tweepy.API] = None

	def _has_user_credentials(self) -> bool:
		return all(
			[
				self.config.twitter_api_key,
				self.config.twitter_api_key_secret,
				self.config.twitter_access_token,
				self.config.twitter_access_token_secret,
			]
		)

	def can_share_files(self, mime_type: str) -> bool:
		return self._has_user_credentials() and mime_type in SHAREABLE_MIME_TYPES

	def _build_client(self) -> tweepy.Client:
		if self._client is not None:
			return self._client
		self._client = tweepy.Client(
			consumer_key=self.config.twitter_api_key,
			consumer_secret=self.config.twitter_api_key_secret,
			access_token=self.config.twitter_access_token,
			access_token_secret=self.config.twitter_access_token_secret,
			bearer_token=self.config.twitter_bearer_token,
			wait_on_rate_limit=self.config.twitter_wait_on_rate_limit,
		)
		return self._client

	def _build_api(self) -> tweepy.API:
		# Media upload is only available on the v1.1 API
		if self._api is not None:
			return self._api
		auth = tweepy.OAuth1UserHandler(
			self.config.twitter_api_key,
			self.config.twitter_api_key_secret,
			self.config.twitter_access_token,
			self.config.twitter_access_token_secret,
		)
		self._api = tweepy.API(auth, wait_on_rate_limit=self.config.twitter_wait_on_rate_limit)
		return self._api

	def _compute_retry_delay_seconds(self, exc: Exception, attempt_index: int) -> int:
		resp = getattr(exc, "response", None)
		headers = getattr(resp, "headers", None) or {}
		# x-rate-limit-reset is epoch seconds when limit resets
		reset = headers.get("x-rate-limit-reset") or headers.get("X-Rate-Limit-Reset")
		if reset:
			try:
				wait = max(0, int(float(reset)) - int(time.time())) + 2
				return min(wait, 600)
			except ValueError:
				pass
		# Exponential backoff fallback (capped)
		return min(30 * (attempt_index + 1), 180)

	def share_file(self, image_bytes: bytes, filename: str, mime_type: str, caption: str) -> Optional[str]:
		"""Upload the image and post it; returns the tweet id or None."""
		if not image_bytes:
			logger.error("[x-share] Empty image; skipping post.")
			return None
		text = (caption or "").strip()
		last_error: Optional[Exception] = None
		for attempt in range(self.max_attempts):
			try:
				media = self._build_api().media_upload(filename=filename, file=io.BytesIO(image_bytes))
				resp = self._build_client().create_tweet(text=text, media_ids=[media.media_id])
				# resp.data example: { 'id': '...', 'text': '...' }
				if hasattr(resp, "data") and isinstance(resp.data, dict):
					return resp.data.get("id")
				return None
			except tweepy.TooManyRequests as e:
				delay = self._compute_retry_delay_seconds(e, attempt)
				logger.warning(
					"[rate-limit] waiting %ss (attempt %d/%d)", delay, attempt + 1, self.max_attempts
				)
				time.sleep(delay)
				last_error = e
				continue
			except tweepy.TweepyException as e:
				code = getattr(getattr(e, "response", None), "status_code", None)
				logger.warning("[x-share] %s status=%s: %s", type(e).__name__, code, e)
				last_error = e
				break
		if isinstance(last_error, tweepy.TooManyRequests):
			logger.warning("[rate-limit] Exhausted retries due to X rate limit; giving up for now.")
		return None
