from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

import base64
import io
import logging

from PIL import Image, ImageDraw, ImageFont

from .config import RenderConfig


logger = logging.getLogger(__name__)

QUOTE_GLYPH = "“"

# (text, font_px) -> rendered width in pixels
MeasureFn = Callable[[str, int], float]


@dataclass(frozen=True)
class TextLayout:
	font_px: int
	author_px: int
	lines: Tuple[str, ...]
	line_height: float
	block_height: float
	fits: bool


@dataclass(frozen=True)
class RenderedImage:
	data: bytes = field(repr=False)
	width_px: int
	height_px: int
	mime_type: str = "image/png"
	layout: Optional[TextLayout] = None

	@property
	def filename(self) -> str:
		return "quote.png" if self.mime_type == "image/png" else "quote.jpg"

	def as_data_uri(self) -> str:
		return f"data:{self.mime_type};base64," + base64.b64encode(self.data).decode("ascii")


def wrap_words(text: str, font_px: int, max_width: float, measure: MeasureFn) -> List[str]:
	"""Greedy word wrap; a word is never split, even if it overflows alone."""
	words = text.split()
	lines: List[str] = []
	current: List[str] = []
	for w in words:
		trial = " ".join(current + [w])
		if measure(trial, font_px) <= max_width or not current:
			current.append(w)
		else:
			lines.append(" ".join(current))
			current = [w]
	if current:
		lines.append(" ".join(current))
	return lines


def author_size(font_px: int, config: RenderConfig) -> int:
	return max(config.min_author_px, int(round(font_px * config.author_ratio)))


def fit_author(line: str, author_px: int, max_width: float, measure: MeasureFn) -> int:
	"""Largest size at or below ``author_px`` that keeps the single author line inside ``max_width``."""
	size = author_px
	while size > 1 and measure(line, size) > max_width:
		size -= 1
	return size


def fit_text(text: str, config: RenderConfig, measure: MeasureFn) -> TextLayout:
	"""Shrink the font from ``initial_font_px`` until the block fits the safe area.

	Steps down linearly by ``font_step_px``; if nothing fits, the layout at
	``min_font_px`` is returned with ``fits=False``.
	"""
	max_width = config.max_text_width
	safe_height = config.safe_height
	step = max(1, config.font_step_px)

	layout: Optional[TextLayout] = None
	size = config.initial_font_px
	while size >= config.min_font_px:
		layout = _layout_at(text, size, config, max_width, measure)
		if layout.block_height <= safe_height:
			return layout
		size -= step
	if layout is None or layout.font_px != config.min_font_px:
		layout = _layout_at(text, config.min_font_px, config, max_width, measure)
	return TextLayout(
		font_px=layout.font_px,
		author_px=layout.author_px,
		lines=layout.lines,
		line_height=layout.line_height,
		block_height=layout.block_height,
		fits=layout.block_height <= safe_height,
	)


def _layout_at(text: str, size: int, config: RenderConfig, max_width: float, measure: MeasureFn) -> TextLayout:
	lines = wrap_words(text, size, max_width, measure)
	a_px = author_size(size, config)
	line_height = size * config.line_height_ratio
	block = len(lines) * line_height + config.author_gap_px + a_px
	return TextLayout(
		font_px=size,
		author_px=a_px,
		lines=tuple(lines),
		line_height=line_height,
		block_height=block,
		fits=True,
	)


class ImageCompositor:
	"""Render a quote onto a fixed-size social card with auto-fitting text."""

	def __init__(self, config: Optional[RenderConfig] = None):
		self.config = config or RenderConfig()
		self._fonts: Dict[Tuple[str, int], ImageFont.ImageFont] = {}

	def _font(self, role: str, size: int) -> ImageFont.ImageFont:
		key = (role, size)
		cached = self._fonts.get(key)
		if cached is not None:
			return cached
		font: Optional[ImageFont.ImageFont] = None
		for candidate in self.config.fonts.get(role, []):
			try:
				font = ImageFont.truetype(candidate, size=size)
				break
			except OSError:
				continue
		if font is None:
			# Pillow's bundled face scales with size when FreeType is available
			try:
				font = ImageFont.load_default(size=size)
			except TypeError:
				font = ImageFont.load_default()
		self._fonts[key] = font
		return font

	def _measure(self, draw: ImageDraw.ImageDraw, text: str, font: ImageFont.ImageFont) -> tuple[int, int]:
		bbox = draw.textbbox((0, 0), text, font=font)
		width = max(0, bbox[2] - bbox[0])
		height = max(0, bbox[3] - bbox[1])
		return width, height

	def render(self, text: str, author: str) -> Optional[RenderedImage]:
		"""Return the PNG card, or None when the canvas cannot be produced."""
		try:
			return self._render(text or "", author or "")
		except Exception as e:
			logger.warning("[render-fail] %s: %s", type(e).__name__, e)
			return None

	def _render(self, text: str, author: str) -> RenderedImage:
		cfg = self.config
		width, height = cfg.canvas_w, cfg.canvas_h
		img = Image.new("RGB", (width, height), cfg.background)
		draw = ImageDraw.Draw(img)

		# PIL strokes rectangle outlines inward, so the border stays inside the canvas
		draw.rectangle((0, 0, width - 1, height - 1), outline=cfg.border_color, width=cfg.border_px)

		cx = width / 2
		r = cfg.badge_radius
		cy = cfg.badge_center_y
		draw.ellipse((cx - r, cy - r, cx + r, cy + r), fill=cfg.badge_color)
		draw.text(
			(cx, cy + cfg.badge_glyph_offset_y),
			QUOTE_GLYPH,
			fill=cfg.background,
			font=self._font("badge", cfg.badge_glyph_px),
			anchor="mm",
		)

		layout = fit_text(text, cfg, lambda s, size: self._measure(draw, s, self._font("body", size))[0])

		body_font = self._font("body", layout.font_px)
		author_line = f"- {author}"
		author_px = fit_author(
			author_line,
			layout.author_px,
			cfg.max_text_width,
			lambda s, size: self._measure(draw, s, self._font("author", size))[0],
		)
		author_font = self._font("author", author_px)
		top = (height - layout.block_height) / 2
		y = top
		for line in layout.lines:
			draw.text((cx, y + layout.line_height / 2), line, fill=cfg.text_color, font=body_font, anchor="mm")
			y += layout.line_height
		y += cfg.author_gap_px
		draw.text((cx, y + author_px / 2), author_line, fill=cfg.author_color, font=author_font, anchor="mm")

		buf = io.BytesIO()
		img.save(buf, format="PNG", optimize=True)
		return RenderedImage(data=buf.getvalue(), width_px=width, height_px=height, layout=layout)
