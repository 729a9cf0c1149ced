"""Unit tests for JSON output formatter."""

import json
from decimal import Decimal

from similar_products.models.data_models import AggregatedResult, ProductDetail
from similar_products.pipeline.output import JSONOutputFormatter


def sample_result() -> AggregatedResult:
    return AggregatedResult(
        root_id="1",
        products=(
            ProductDetail(id="2", name="Dress", price=Decimal("29.99"), availability=True),
            ProductDetail(id="4", name="Boots", price=Decimal("49.99"), availability=True),
        ),
        requested=3,
    )


def test_format_products_wire_schema():
    products = JSONOutputFormatter().format_products(sample_result())

    assert products == [
        {"id": "2", "name": "Dress", "price": 29.99, "availability": True},
        {"id": "4", "name": "Boots", "price": 49.99, "availability": True},
    ]


def test_format_report_summary():
    report = JSONOutputFormatter().format(sample_result())

    assert report["root_id"] == "1"
    assert report["summary"] == {"requested": 3, "resolved": 2, "missing": 1}
    assert [p["id"] for p in report["products"]] == ["2", "4"]


def test_format_empty_result():
    report = JSONOutputFormatter().format(AggregatedResult(root_id="99"))

    assert report["products"] == []
    assert report["summary"] == {"requested": 0, "resolved": 0, "missing": 0}


def test_save_creates_parent_directories(tmp_path):
    path = tmp_path / "out" / "nested" / "result.json"

    JSONOutputFormatter().save(sample_result(), str(path))

    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["summary"]["resolved"] == 2
    assert data["products"][0]["name"] == "Dress"
