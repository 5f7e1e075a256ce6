# backoffice/api/lookups.py
# --------------------------------------------------------------------------------------
# Color / attribute / variant reference data from the back-office API, with a CSV or
# Excel fallback file. Loaded once per process and treated as immutable afterwards.
# --------------------------------------------------------------------------------------

import logging
import os
from typing import Any, Dict, List, Optional

import pandas as pd
import requests

from backoffice.config import settings
from backoffice.variations.models import Attribute, AttributeValue, ColorOption

logger = logging.getLogger("uvicorn.error")

_LIST_KEYS = ("data", "rows", "items", "colors", "attributes", "variants")


def unwrap_list(payload: Any) -> List[Dict[str, Any]]:
    """Accepts a bare list or {data|rows|items|colors|attributes|variants: [...]}."""
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        for key in _LIST_KEYS:
            if isinstance(payload.get(key), list):
                return payload[key]
    return []


def _is_enabled(row: Dict[str, Any]) -> bool:
    return row.get("status") is not False


class LookupCatalog:
    """Fast lookup of colors and attribute value domains."""

    def __init__(self, colors: List[ColorOption], attributes: List[Attribute]):
        self.colors = sorted(colors, key=lambda c: (c.priority, c.id))
        self.attributes = sorted(attributes, key=lambda a: (a.priority, a.id))
        self._color_by_id = {c.id: c for c in self.colors}
        self._attr_by_id = {a.id: a for a in self.attributes}
        self._variant_by_id = {v.id: v for a in self.attributes for v in a.variants}

    def color(self, color_id: int) -> Optional[ColorOption]:
        return self._color_by_id.get(color_id)

    def attribute(self, attribute_id: int) -> Optional[Attribute]:
        return self._attr_by_id.get(attribute_id)

    def variant(self, variant_id: int) -> Optional[AttributeValue]:
        return self._variant_by_id.get(variant_id)

    def value_domain(self, attribute_id: int) -> List[int]:
        attr = self.attribute(attribute_id)
        return attr.value_domain() if attr else []

    def color_name(self, color_id: int) -> str:
        c = self.color(color_id)
        return c.name if c else f"#{color_id}"

    def variant_name(self, variant_id: int) -> str:
        v = self.variant(variant_id)
        return v.name if v else f"#{variant_id}"

    def as_dict(self) -> Dict[str, Any]:
        return {
            "colors": [c.model_dump() for c in self.colors],
            "attributes": [a.model_dump() for a in self.attributes],
        }


# ===== Live API =====

def _headers() -> Dict[str, str]:
    headers = {"Accept": "application/json"}
    if settings.BACKOFFICE_API_TOKEN:
        headers["Authorization"] = f"Bearer {settings.BACKOFFICE_API_TOKEN}"
    return headers


def _get_list(path: str) -> List[Dict[str, Any]]:
    url = f"{settings.BACKOFFICE_API_URL}{path}"
    resp = requests.get(
        url,
        headers=_headers(),
        params={"limit": 500},
        timeout=settings.BACKOFFICE_API_TIMEOUT,
        verify=settings.BACKOFFICE_VERIFY_SSL,
    )
    resp.raise_for_status()
    return unwrap_list(resp.json())


def fetch_colors() -> List[ColorOption]:
    return [ColorOption.model_validate(c) for c in _get_list("/colors") if _is_enabled(c)]


def fetch_variants() -> List[AttributeValue]:
    return [AttributeValue.model_validate(v) for v in _get_list("/variants") if _is_enabled(v)]


def fetch_attributes(variants: Optional[List[AttributeValue]] = None) -> List[Attribute]:
    """
    Attributes with their variant domains. The list endpoint usually nests `variants`;
    when it doesn't, they are filled in from /variants grouped by attribute_id.
    """
    raw = [a for a in _get_list("/attributes") if _is_enabled(a)]
    if any(not isinstance(a.get("variants"), list) for a in raw):
        variants = variants if variants is not None else fetch_variants()
        by_attr: Dict[int, List[Dict[str, Any]]] = {}
        for v in variants:
            by_attr.setdefault(v.attribute_id, []).append(v.model_dump())
        for a in raw:
            if not isinstance(a.get("variants"), list):
                a["variants"] = by_attr.get(a.get("id"), [])
    out = []
    for a in raw:
        a = dict(a)
        a["variants"] = [{"attribute_id": a["id"], **v} for v in a["variants"] if _is_enabled(v)]
        out.append(Attribute.model_validate(a))
    return out


# ===== File fallback =====

def load_lookup_file(filepath: str) -> LookupCatalog:
    """
    Loads a flat lookup sheet (CSV or XLSX) with columns:
        kind (color|variant), id, name, hex, attribute_id, attribute_name, priority, status
    """
    if not os.path.isfile(filepath):
        raise FileNotFoundError(f"File not found: {filepath}")

    if filepath.lower().endswith((".xlsx", ".xls")):
        df = pd.read_excel(filepath, engine="openpyxl")
    else:
        df = pd.read_csv(filepath)
    df = df.rename(columns=lambda c: str(c).strip().lower())
    df = df.astype(object).where(pd.notna(df), None)

    colors: List[ColorOption] = []
    attrs: Dict[int, Dict[str, Any]] = {}
    for _, row in df.iterrows():
        kind = str(row.get("kind") or "").strip().lower()
        if row.get("id") is None or not str(row.get("name") or "").strip():
            continue
        status = str(row.get("status") if row.get("status") is not None else "1").strip().lower() not in {"0", "false", "no"}
        priority = int(float(row.get("priority") or 0))
        if kind == "color":
            if status:
                colors.append(ColorOption(id=int(float(row["id"])), name=str(row["name"]).strip(),
                                          hex=row.get("hex"), priority=priority))
        elif kind == "variant" and row.get("attribute_id") is not None:
            attr_id = int(float(row["attribute_id"]))
            attr = attrs.setdefault(attr_id, {"id": attr_id, "name": str(row.get("attribute_name") or f"#{attr_id}"),
                                              "variants": []})
            if status:
                attr["variants"].append({"id": int(float(row["id"])), "attribute_id": attr_id,
                                         "name": str(row["name"]).strip(), "priority": priority})
    return LookupCatalog(colors, [Attribute.model_validate(a) for a in attrs.values()])


# ===== Session cache =====

_CATALOG: Optional[LookupCatalog] = None


def load_lookups(refresh: bool = False) -> LookupCatalog:
    """Live lookups (once per process), falling back to LOOKUP_FALLBACK_PATH when the API is down."""
    global _CATALOG
    if _CATALOG is not None and not refresh:
        return _CATALOG
    try:
        variants = fetch_variants()
        catalog = LookupCatalog(fetch_colors(), fetch_attributes(variants))
    except requests.RequestException as e:
        if not settings.LOOKUP_FALLBACK_PATH:
            raise
        logger.warning("[LOOKUP] API unavailable (%s); using %s", e, settings.LOOKUP_FALLBACK_PATH)
        catalog = load_lookup_file(settings.LOOKUP_FALLBACK_PATH)
    logger.info("[LOOKUP] %d color(s), %d attribute(s)", len(catalog.colors), len(catalog.attributes))
    _CATALOG = catalog
    return catalog


def reset_lookups() -> None:
    global _CATALOG
    _CATALOG = None
