"""
EIQ Product Catalog Service.

Loads the product catalog once per session, either from a remote URL
(EIQ_CATALOG_URL) or from the bundled JSON file, and exposes it as an
immutable mapping keyed by product name.
"""
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional
import json
import logging
import os

import httpx

from app.services.eiq_calculator import Product

logger = logging.getLogger(__name__)

DEFAULT_CATALOG_PATH = os.path.join(
    os.path.dirname(__file__), "..", "data", "eiq_products.json"
)

EIQ_CATALOG_PATH = os.environ.get("EIQ_CATALOG_PATH", DEFAULT_CATALOG_PATH)
EIQ_CATALOG_URL = os.environ.get("EIQ_CATALOG_URL")
EIQ_CATALOG_TIMEOUT_SECONDS = float(os.environ.get("EIQ_CATALOG_TIMEOUT_SECONDS", "10"))

_catalog_cache = None


def clear_catalog_cache() -> None:
    """Clear the cache to reload the bundled catalog on next call."""
    global _catalog_cache
    _catalog_cache = None


def _optional_rate(entry: Dict[str, Any], key: str) -> Optional[float]:
    value = entry.get(key)
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        logger.warning(f"Invalid {key} for product '{entry.get('name')}': {value!r}")
        return None


def parse_products(data: Any) -> List[Product]:
    """
    Parse raw catalog JSON into Product records, preserving order.

    Accepts a bare array of product objects or an object with a
    "products" array. Entries without a name are skipped. Any other
    payload shape raises ValueError.
    """
    if isinstance(data, dict):
        if "products" not in data:
            raise ValueError("Catalog object has no 'products' key")
        data = data["products"]
    if not isinstance(data, list):
        raise ValueError(f"Unexpected catalog payload type: {type(data).__name__}")

    products = []
    for index, entry in enumerate(data):
        if not isinstance(entry, dict):
            logger.warning(f"Skipping catalog entry #{index}: not an object")
            continue
        name = entry.get("name")
        if not isinstance(name, str) or not name.strip():
            logger.warning(f"Skipping catalog entry #{index}: missing name")
            continue
        products.append(Product(
            name=name,
            min_rate=_optional_rate(entry, "minRate"),
            max_rate=_optional_rate(entry, "maxRate"),
            eiq_per_ha=_optional_rate(entry, "eiqPerHa"),
        ))
    return products


def build_catalog(products: List[Product]) -> Mapping[str, Product]:
    """Build the read-only name -> Product mapping. First entry wins on duplicates."""
    catalog: Dict[str, Product] = {}
    for product in products:
        if product.name in catalog:
            logger.warning(f"Duplicate product name in catalog, keeping first: {product.name}")
            continue
        catalog[product.name] = product
    return MappingProxyType(catalog)


def load_catalog_file(path: Optional[str] = None) -> Mapping[str, Product]:
    """Load the catalog from a JSON file. Errors yield an empty catalog."""
    global _catalog_cache
    use_cache = path is None
    if use_cache and _catalog_cache is not None:
        return _catalog_cache

    catalog_path = path or EIQ_CATALOG_PATH
    try:
        with open(catalog_path, "r", encoding="utf-8") as f:
            catalog = build_catalog(parse_products(json.load(f)))
    except Exception as e:
        logger.error(f"Error loading EIQ catalog from {catalog_path}: {e}")
        return MappingProxyType({})

    logger.info(f"Loaded {len(catalog)} EIQ products from {catalog_path}")
    if use_cache:
        _catalog_cache = catalog
    return catalog


async def fetch_catalog(
    url: str,
    timeout: float = EIQ_CATALOG_TIMEOUT_SECONDS,
    transport: Optional[httpx.AsyncBaseTransport] = None
) -> Mapping[str, Product]:
    """Fetch the catalog JSON from a URL. Raises httpx.HTTPError or ValueError."""
    async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
        response = await client.get(url)
        response.raise_for_status()
        catalog = build_catalog(parse_products(response.json()))
    logger.info(f"Fetched {len(catalog)} EIQ products from {url}")
    return catalog


async def load_catalog(
    url: Optional[str] = EIQ_CATALOG_URL,
    path: Optional[str] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None
) -> Mapping[str, Product]:
    """
    One-shot catalog load for application startup.

    Tries the remote URL first when configured and falls back to the
    bundled file if the request or the payload fails.
    """
    if url:
        try:
            return await fetch_catalog(url, transport=transport)
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Error fetching EIQ catalog from {url}: {e}; using bundled catalog")
    return load_catalog_file(path)
