from __future__ import annotations

import os
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel
from dotenv import load_dotenv


BASE_CHAIN_ID = 8453
DEFAULT_CONTRACT_ADDRESS = "0x99952E86dD355D77fc19EBc167ac93C4514BA7CB"
DEFAULT_APP_BASE_URL = "https://farcaster.xyz/miniapps/S9xDZOSiOGWl/castinspo"
DEFAULT_COMPOSE_BASE_URL = "https://warpcast.com/~/compose"

UNLOCK_POLICIES = ("intent", "delivery")

Color = Tuple[int, int, int]


class RenderConfig(BaseModel):
	"""Deployment constants for the 1.91:1 social card."""

	canvas_w: int = 1200
	canvas_h: int = 630
	padding_x_frac: float = 0.1
	padding_y_frac: float = 0.23

	initial_font_px: int = 60
	min_font_px: int = 24
	font_step_px: int = 2
	line_height_ratio: float = 80 / 60
	author_ratio: float = 0.65
	min_author_px: int = 18
	author_gap_px: int = 40

	border_px: int = 3
	badge_center_y: int = 100
	badge_radius: int = 40
	badge_glyph_px: int = 60
	badge_glyph_offset_y: int = 12

	background: Color = (106, 60, 255)  # deep purple
	border_color: Color = (255, 255, 255)
	badge_color: Color = (255, 255, 255)
	text_color: Color = (255, 255, 255)
	author_color: Color = (252, 211, 77)  # gold

	# Candidate font files per role; the first one that loads wins.
	fonts: Dict[str, List[str]] = {
		"body": [
			"DejaVuSerif-Italic.ttf",
			"/usr/share/fonts/truetype/dejavu/DejaVuSerif-Italic.ttf",
			"/usr/share/fonts/truetype/liberation/LiberationSerif-Italic.ttf",
		],
		"author": [
			"DejaVuSans-Bold.ttf",
			"/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
			"/usr/share/fonts/truetype/liberation/LiberationSans-Bold.ttf",
		],
		"badge": [
			"DejaVuSans-Bold.ttf",
			"/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
		],
	}

	@property
	def max_text_width(self) -> float:
		return self.canvas_w * (1 - 2 * self.padding_x_frac)

	@property
	def safe_height(self) -> float:
		return self.canvas_h * (1 - 2 * self.padding_y_frac)


class AppConfig(BaseModel):
	# Chain
	rpc_url: str = "https://mainnet.base.org"
	chain_id: int = BASE_CHAIN_ID
	contract_address: str = DEFAULT_CONTRACT_ADDRESS
	wallet_private_key: Optional[str] = None

	# Sharing
	app_base_url: str = DEFAULT_APP_BASE_URL
	compose_base_url: str = DEFAULT_COMPOSE_BASE_URL
	imgbb_api_key: Optional[str] = None
	imgbb_expiration_s: Optional[int] = None
	share_caption: str = "Daily vibes via CastInspo ✨ Come for the inspiration, stay for the rewards!"
	reward_caption: str = (
		"I just claimed 2k $teeboo_hl on CastInspo! 🎁 "
		"Check in daily to build your streak and earn rewards on Base."
	)

	# Twitter/X credentials (native image share)
	twitter_api_key: Optional[str] = None
	twitter_api_key_secret: Optional[str] = None
	twitter_access_token: Optional[str] = None
	twitter_access_token_secret: Optional[str] = None
	twitter_bearer_token: Optional[str] = None
	twitter_wait_on_rate_limit: bool = False

	# Quotes
	quotes_path: Optional[str] = None

	# Claim behavior
	reconcile_delay_s: float = 5.0
	unlock_policy: str = "intent"
	abort_on_switch_failure: bool = True
	dry_run_default: bool = True

	render: RenderConfig = RenderConfig()

	@property
	def chain_id_hex(self) -> str:
		return hex(self.chain_id)

	@classmethod
	def load(cls) -> "AppConfig":
		# Load .env if present
		load_dotenv(override=False)

		unlock_policy = os.getenv("UNLOCK_POLICY", "intent").strip().lower()
		if unlock_policy not in UNLOCK_POLICIES:
			raise ValueError(f"UNLOCK_POLICY must be one of: {', '.join(UNLOCK_POLICIES)}")
		expiration = os.getenv("IMGBB_EXPIRATION_S")

		return cls(
			rpc_url=os.getenv("RPC_URL", "https://mainnet.base.org"),
			chain_id=int(os.getenv("CHAIN_ID", str(BASE_CHAIN_ID)), 0),
			contract_address=os.getenv("CLAIM_CONTRACT_ADDRESS", DEFAULT_CONTRACT_ADDRESS),
			wallet_private_key=os.getenv("WALLET_PRIVATE_KEY"),
			app_base_url=os.getenv("APP_BASE_URL", DEFAULT_APP_BASE_URL),
			compose_base_url=os.getenv("COMPOSE_BASE_URL", DEFAULT_COMPOSE_BASE_URL),
			imgbb_api_key=os.getenv("IMGBB_API_KEY"),
			imgbb_expiration_s=int(expiration) if expiration else None,
			share_caption=os.getenv("SHARE_CAPTION", cls.model_fields["share_caption"].default),
			reward_caption=os.getenv("REWARD_CAPTION", cls.model_fields["reward_caption"].default),
			twitter_api_key=os.getenv("TWITTER_API_KEY"),
			twitter_api_key_secret=os.getenv("TWITTER_API_KEY_SECRET"),
			twitter_access_token=os.getenv("TWITTER_ACCESS_TOKEN"),
			twitter_access_token_secret=os.getenv("TWITTER_ACCESS_TOKEN_SECRET"),
			twitter_bearer_token=os.getenv("TWITTER_BEARER_TOKEN"),
			twitter_wait_on_rate_limit=os.getenv("TWITTER_WAIT_ON_RATE_LIMIT", "false").lower() == "true",
			quotes_path=os.getenv("QUOTES_PATH"),
			reconcile_delay_s=float(os.getenv("RECONCILE_DELAY_S", "5")),
			unlock_policy=unlock_policy,
			abort_on_switch_failure=os.getenv("ABORT_ON_SWITCH_FAILURE", "true").lower() == "true",
			dry_run_default=os.getenv("DRY_RUN_DEFAULT", "true").lower() == "true",
		)
