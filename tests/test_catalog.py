"""Tests for the catalog service"""
import json

import pytest

from storefront.catalog import CatalogService
from storefront.errors import CatalogError
from storefront.models import Category, SearchFilters


@pytest.mark.asyncio
async def test_get_categories(catalog):
    categories = await catalog.get_categories()
    assert len(categories) == 5
    assert categories[0] == Category(id="transformers_motors", name="Transformers & Motors")


@pytest.mark.asyncio
async def test_get_category(catalog):
    assert (await catalog.get_category("lighting")).name == "Lighting"
    assert await catalog.get_category("nope") is None


@pytest.mark.asyncio
async def test_get_products_all_and_by_category(catalog):
    everything = await catalog.get_products()
    lighting = await catalog.get_products("lighting")

    assert len(everything) == 13
    assert [p.id for p in lighting] == ["lt-001", "lt-002", "lt-003"]


@pytest.mark.asyncio
async def test_get_product(catalog):
    product = await catalog.get_product("cb-001")
    assert product.name == "MCB 32A Single Pole C Curve"
    assert product.price == 210
    assert await catalog.get_product("missing") is None


@pytest.mark.asyncio
async def test_search_by_query_matches_any_text_field(catalog):
    by_name = await catalog.search_products(SearchFilters(query="rccb"))
    by_part = await catalog.search_products(SearchFilters(query="hv-fr"))
    by_description = await catalog.search_products(SearchFilters(query="shock protection"))

    assert [p.id for p in by_name] == ["cb-002"]
    assert [p.id for p in by_part] == ["cw-001"]
    assert [p.id for p in by_description] == ["cb-002"]


@pytest.mark.asyncio
async def test_search_by_manufacturer_is_exact_and_case_insensitive(catalog):
    results = await catalog.search_products(SearchFilters(manufacturer="schneider electric"))
    assert {p.id for p in results} == {"tm-003", "cb-002"}

    partial = await catalog.search_products(SearchFilters(manufacturer="schneider"))
    assert partial == []


@pytest.mark.asyncio
async def test_search_price_range_is_inclusive(catalog):
    results = await catalog.search_products(SearchFilters(min_price=99, max_price=349))
    assert {p.id for p in results} == {"lt-001", "lt-002", "cb-001", "cw-003"}


@pytest.mark.asyncio
async def test_search_combines_filters(catalog):
    results = await catalog.search_products(
        SearchFilters(query="wire", category_id="cables_wires", manufacturer="Polycab")
    )
    assert [p.id for p in results] == ["cw-002"]


@pytest.mark.asyncio
async def test_empty_filters_return_everything(catalog):
    assert len(await catalog.search_products(SearchFilters())) == 13


@pytest.mark.asyncio
async def test_featured_products(catalog):
    featured = await catalog.get_featured_products()
    assert [p.id for p in featured] == ["tm-001", "tm-002", "tm-003", "cw-001", "cw-002", "cw-003"]


@pytest.mark.asyncio
async def test_recommended_products(catalog):
    recommended = await catalog.get_recommended_products("cw-001")
    assert [p.id for p in recommended] == ["cw-002", "cw-003"]
    assert await catalog.get_recommended_products("missing") == []


def test_product_keeps_unknown_fields(tmp_path):
    path = tmp_path / "catalog.json"
    path.write_text(json.dumps({
        "categories": [{"id": "c", "name": "C"}],
        "products": [{"id": "p", "category_id": "c", "price": 1, "ip_rating": "IP65"}],
    }))

    catalog = CatalogService.from_file(path)

    product = catalog._by_id["p"]
    assert product.model_dump()["ip_rating"] == "IP65"


@pytest.mark.parametrize("content", ["not json", '{"products": [{"id": "p"}]}', "[]"])
def test_invalid_catalog_raises(tmp_path, content):
    path = tmp_path / "catalog.json"
    path.write_text(content)
    with pytest.raises(CatalogError):
        CatalogService.from_file(path)


def test_missing_catalog_raises(tmp_path):
    with pytest.raises(CatalogError):
        CatalogService.from_file(tmp_path / "missing.json")
