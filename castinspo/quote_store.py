from __future__ import annotations

from typing import Dict, List, Optional

import csv
import json
import os
import random

from pydantic import BaseModel, ConfigDict


DEFAULT_QUOTES_PATH = os.path.join(os.path.dirname(os.path.abspath(__file__)), "quotes.json")


class Quote(BaseModel):
	model_config = ConfigDict(frozen=True)

	id: int
	text: str
	author: str


class QuoteStore:
	"""Static, order-stable list of quote records addressed by index.

	Accepts a JSON list of ``{"content", "author"}`` objects or a CSV with a
	``text``/``quote`` column and an optional ``author`` column.
	"""

	def __init__(self, store_path: Optional[str] = None, records: Optional[List[Dict[str, str]]] = None):
		self.store_path = store_path or os.getenv("QUOTES_PATH") or DEFAULT_QUOTES_PATH
		self.records: List[Dict[str, str]] = []
		self._loaded = False
		if records is not None:
			self.records = [_normalize_record(r) for r in records]
			self._loaded = True

	@classmethod
	def from_records(cls, records: List[Dict[str, str]]) -> "QuoteStore":
		return cls(records=records)

	def _ensure_loaded(self):
		if self._loaded:
			return
		self._loaded = True
		if self.store_path.lower().endswith(".csv"):
			self.records = self._read_csv(self.store_path)
		else:
			with open(self.store_path, "r", encoding="utf-8") as f:
				data = json.load(f)
			if not isinstance(data, list):
				raise ValueError(f"{self.store_path}: expected a JSON list of quotes")
			self.records = [_normalize_record(r) for r in data if isinstance(r, dict)]

	def _read_csv(self, csv_path: str) -> List[Dict[str, str]]:
		records: List[Dict[str, str]] = []
		with open(csv_path, "r", newline="", encoding="utf-8") as f:
			pos = f.tell()
			peek = f.readline()
			f.seek(pos)
			if "," in (peek or "") and any(h in peek.lower() for h in ["text", "quote", "content"]):
				for row in csv.DictReader(f):
					if not row:
						continue
					t = row.get("text") or row.get("quote") or row.get("content")
					if t:
						records.append({"content": t.strip(), "author": (row.get("author") or "").strip()})
			else:
				# One quote per line: first column is the text, second the author
				for row in csv.reader(f):
					if not row or not row[0].strip():
						continue
					author = row[1].strip() if len(row) > 1 else ""
					records.append({"content": row[0].strip(), "author": author})
		return records

	def count(self) -> int:
		self._ensure_loaded()
		return len(self.records)

	def get(self, index: int) -> Quote:
		self._ensure_loaded()
		rec = self.records[index]
		return Quote(id=index, text=rec["content"], author=rec["author"])

	def __len__(self) -> int:
		return self.count()


def _normalize_record(rec: Dict[str, str]) -> Dict[str, str]:
	text = rec.get("content") or rec.get("text") or rec.get("quote") or ""
	return {"content": str(text).strip(), "author": str(rec.get("author") or "").strip()}


def select_quote(store: QuoteStore, index: Optional[int] = None, rng: Optional[random.Random] = None) -> Quote:
	"""Return the quote at ``index``, or a uniformly random one.

	Missing, negative and out-of-range indexes all fall back to a random
	valid index.
	"""
	total = store.count()
	if total == 0:
		raise ValueError("quote store is empty")
	if index is None or index < 0 or index >= total:
		index = (rng or random).randrange(total)
	return store.get(index)


def parse_quote_param(raw: Optional[str]) -> Optional[int]:
	"""Parse the ``q`` deep-link parameter; anything non-numeric means random."""
	if raw is None:
		return None
	try:
		return int(str(raw).strip(), 10)
	except ValueError:
		return None
