# backoffice/variations/sku.py
# --------------------------------------------------------------------------------------
# SKU generation for products and matrix rows, plus the inverse parser.
# A generated SKU is "<TOKEN>-<TOKEN>-...-<NNNN>": 1 to SKU_MAX_TOKENS (at most 10)
# uppercase [A-Z0-9] tokens followed by a random 4-digit suffix. Nothing here checks
# uniqueness; duplicates are left to the backend.
# --------------------------------------------------------------------------------------
from __future__ import annotations

import random
import re
import unicodedata
from typing import Iterable, List, Optional, Tuple

from backoffice.config import settings

MAX_TOKENS = 10
PLACEHOLDER_TOKEN = "ITEM"

SKU_PATTERN = re.compile(r"^[A-Z0-9]+(?:-[A-Z0-9]+){0,%d}-\d{4}$" % (MAX_TOKENS - 1))

_NON_TOKEN_RE = re.compile(r"[^A-Z0-9]+")


def _normalize_part(part: str) -> List[str]:
    # accents folded to ASCII; any other non-alphanumeric run separates tokens
    s = unicodedata.normalize("NFKD", str(part or "")).encode("ascii", "ignore").decode("ascii")
    return [t for t in _NON_TOKEN_RE.split(s.strip().upper()) if t]


def generate_sku(parts: Iterable[str], rng: Optional[random.Random] = None,
                 max_tokens: Optional[int] = None) -> str:
    """
    Build a SKU from name fragments, e.g. ["Acme", "T Shirt", "C1"] -> "ACME-T-SHIRT-C1-4821".
    Only the first `max_tokens` non-empty tokens are kept; with none left the SKU
    falls back to PLACEHOLDER_TOKEN.
    """
    limit = max_tokens if max_tokens is not None else settings.SKU_MAX_TOKENS
    limit = max(1, min(limit, MAX_TOKENS))
    tokens: List[str] = []
    for p in parts or []:
        tokens.extend(_normalize_part(p))
    tokens = tokens[:limit] or [PLACEHOLDER_TOKEN]
    suffix = (rng or random).randint(1000, 9999)
    return "-".join([*tokens, str(suffix)])


def parse_sku(sku: str) -> Tuple[List[str], Optional[str]]:
    """
    Split a SKU into (tokens, numeric_suffix).

    "ACME-TEE-C1-V4-4821" -> (["ACME", "TEE", "C1", "V4"], "4821")
    A SKU without a trailing 4-digit group returns (all tokens, None).
    """
    parts = [p for p in (sku or "").strip().split("-") if p]
    if parts and len(parts[-1]) == 4 and parts[-1].isdigit():
        return parts[:-1], parts[-1]
    return parts, None


def is_generated_sku(sku: str) -> bool:
    return bool(SKU_PATTERN.match(sku or ""))


def slugify(text: str) -> str:
    """Lowercase, drop anything but [a-z0-9 -], whitespace -> '-', collapse dashes."""
    s = (text or "").strip().lower()
    s = re.sub(r"[^a-z0-9\s-]", "", s)
    s = re.sub(r"\s+", "-", s)
    s = re.sub(r"-+", "-", s)
    return s.strip("-")


def row_sku_parts(base_parts: Iterable[str], color_id: int, value) -> List[str]:
    """Fragments for a matrix row SKU: product-level parts + color and value markers."""
    return [*[p for p in base_parts if p], f"C{color_id}", f"V{value}"]
