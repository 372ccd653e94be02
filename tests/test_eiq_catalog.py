"""
Tests for the EIQ catalog loader: parsing, immutable mapping,
bundled file and remote fetch with fallback.
"""
import asyncio
import json

import httpx
import pytest

from app.services.eiq_calculator import Product
from app.services.eiq_catalog_service import (
    build_catalog,
    clear_catalog_cache,
    fetch_catalog,
    load_catalog,
    load_catalog_file,
    parse_products,
)

RAW_PRODUCTS = [
    {"name": "Glifosato", "minRate": 1.5, "maxRate": 3, "eiqPerHa": 30.9},
    {"name": "SoloMax", "maxRate": 0.2, "eiqPerHa": None},
    {"name": "Vacio"},
]


def _mock_transport(payload=None, status_code=200, content=None):
    def handler(request: httpx.Request) -> httpx.Response:
        if content is not None:
            return httpx.Response(status_code, content=content)
        return httpx.Response(status_code, json=payload)
    return httpx.MockTransport(handler)


class TestParseProducts:

    def test_array_payload(self):
        products = parse_products(RAW_PRODUCTS)
        assert products[0] == Product(name="Glifosato", min_rate=1.5, max_rate=3.0, eiq_per_ha=30.9)
        assert products[1] == Product(name="SoloMax", max_rate=0.2)
        assert products[2] == Product(name="Vacio")

    def test_object_payload(self):
        products = parse_products({"products": RAW_PRODUCTS})
        assert [p.name for p in products] == ["Glifosato", "SoloMax", "Vacio"]

    def test_entries_without_name_are_skipped(self):
        products = parse_products([{"maxRate": 1}, {"name": "  "}, "texto", {"name": "OK"}])
        assert [p.name for p in products] == ["OK"]

    def test_invalid_rate_becomes_absent(self):
        products = parse_products([{"name": "X", "maxRate": "mucho", "minRate": "0.5"}])
        assert products[0].max_rate is None
        assert products[0].min_rate == 0.5

    @pytest.mark.parametrize("payload", ["not a catalog", 42, {"items": []}, {"products": "x"}])
    def test_unexpected_payload_raises(self, payload):
        with pytest.raises(ValueError):
            parse_products(payload)


class TestBuildCatalog:

    def test_keyed_by_name_in_order(self):
        catalog = build_catalog(parse_products(RAW_PRODUCTS))
        assert list(catalog) == ["Glifosato", "SoloMax", "Vacio"]

    def test_first_duplicate_wins(self):
        catalog = build_catalog([Product(name="A", eiq_per_ha=1), Product(name="A", eiq_per_ha=2)])
        assert len(catalog) == 1
        assert catalog["A"].eiq_per_ha == 1

    def test_catalog_is_read_only(self):
        catalog = build_catalog([Product(name="A")])
        with pytest.raises(TypeError):
            catalog["B"] = Product(name="B")


class TestLoadCatalogFile:

    def test_bundled_catalog_loads(self):
        clear_catalog_cache()
        catalog = load_catalog_file()
        assert len(catalog) > 0
        assert all(isinstance(p, Product) for p in catalog.values())
        assert load_catalog_file() is catalog
        clear_catalog_cache()

    def test_explicit_path(self, tmp_path):
        path = tmp_path / "products.json"
        path.write_text(json.dumps(RAW_PRODUCTS), encoding="utf-8")
        catalog = load_catalog_file(str(path))
        assert catalog["Glifosato"].max_rate == 3.0

    def test_wrong_shape_file_gives_empty_catalog(self, tmp_path):
        path = tmp_path / "products.json"
        path.write_text(json.dumps({"items": RAW_PRODUCTS}), encoding="utf-8")
        assert len(load_catalog_file(str(path))) == 0

    def test_missing_file_gives_empty_catalog(self, tmp_path):
        assert len(load_catalog_file(str(tmp_path / "missing.json"))) == 0

    def test_invalid_json_gives_empty_catalog(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("[{", encoding="utf-8")
        assert len(load_catalog_file(str(path))) == 0


class TestRemoteCatalog:

    def test_fetch(self):
        catalog = asyncio.run(fetch_catalog(
            "https://example.test/products.json", transport=_mock_transport(RAW_PRODUCTS)
        ))
        assert list(catalog) == ["Glifosato", "SoloMax", "Vacio"]

    def test_fetch_http_error_raises(self):
        with pytest.raises(httpx.HTTPStatusError):
            asyncio.run(fetch_catalog(
                "https://example.test/products.json", transport=_mock_transport({}, status_code=500)
            ))

    def test_load_prefers_url(self, tmp_path):
        path = tmp_path / "products.json"
        path.write_text(json.dumps([{"name": "Local"}]), encoding="utf-8")
        catalog = asyncio.run(load_catalog(
            url="https://example.test/products.json",
            path=str(path),
            transport=_mock_transport(RAW_PRODUCTS),
        ))
        assert "Glifosato" in catalog
        assert "Local" not in catalog

    def test_load_falls_back_on_http_error(self, tmp_path):
        path = tmp_path / "products.json"
        path.write_text(json.dumps([{"name": "Local"}]), encoding="utf-8")
        catalog = asyncio.run(load_catalog(
            url="https://example.test/products.json",
            path=str(path),
            transport=_mock_transport(status_code=404, content=b"not found"),
        ))
        assert list(catalog) == ["Local"]

    def test_load_falls_back_on_bad_json(self, tmp_path):
        path = tmp_path / "products.json"
        path.write_text(json.dumps([{"name": "Local"}]), encoding="utf-8")
        catalog = asyncio.run(load_catalog(
            url="https://example.test/products.json",
            path=str(path),
            transport=_mock_transport(content=b"<html>"),
        ))
        assert list(catalog) == ["Local"]

    def test_load_falls_back_on_unexpected_shape(self, tmp_path):
        path = tmp_path / "products.json"
        path.write_text(json.dumps([{"name": "Local"}]), encoding="utf-8")
        catalog = asyncio.run(load_catalog(
            url="https://example.test/products.json",
            path=str(path),
            transport=_mock_transport({"items": RAW_PRODUCTS}),
        ))
        assert list(catalog) == ["Local"]

    def test_fetch_unexpected_shape_raises(self):
        with pytest.raises(ValueError):
            asyncio.run(fetch_catalog(
                "https://example.test/products.json", transport=_mock_transport({"ok": True})
            ))

    def test_load_without_url_uses_file(self, tmp_path):
        path = tmp_path / "products.json"
        path.write_text(json.dumps([{"name": "Local"}]), encoding="utf-8")
        catalog = asyncio.run(load_catalog(url=None, path=str(path)))
        assert list(catalog) == ["Local"]
