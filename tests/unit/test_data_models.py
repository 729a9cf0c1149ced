"""Unit tests for data models."""

from decimal import Decimal

import pytest
from pydantic import ValidationError

from similar_products.errors import CircuitOpenError, UpstreamNotFound, UpstreamUnavailable
from similar_products.models.data_models import AggregatedResult, CacheStats, FetchOutcome, ProductDetail


class TestProductDetail:

    def test_valid_detail(self):
        detail = ProductDetail.model_validate(
            {"id": "2", "name": "Dress", "price": "29.99", "availability": True, "color": "red"}
        )

        assert detail.price == Decimal("29.99")
        assert not hasattr(detail, "color")

    @pytest.mark.parametrize("missing", ["id", "name", "price", "availability"])
    def test_all_fields_required(self, missing):
        payload = {"id": "2", "name": "Dress", "price": 29.99, "availability": True}
        del payload[missing]

        with pytest.raises(ValidationError):
            ProductDetail.model_validate(payload)

    def test_negative_price_rejected(self):
        with pytest.raises(ValidationError):
            ProductDetail(id="2", name="Dress", price=Decimal("-0.01"), availability=True)

    def test_availability_must_be_boolean(self):
        with pytest.raises(ValidationError):
            ProductDetail(id="2", name="Dress", price=Decimal("1"), availability="yes")

    def test_empty_id_rejected(self):
        with pytest.raises(ValidationError):
            ProductDetail(id="", name="Dress", price=Decimal("1"), availability=True)

    def test_immutable(self):
        detail = ProductDetail(id="2", name="Dress", price=Decimal("1"), availability=True)

        with pytest.raises(ValidationError):
            detail.name = "Other"


class TestAggregatedResult:

    def test_missing_counts_dropped_details(self):
        detail = ProductDetail(id="2", name="Dress", price=Decimal("1"), availability=True)
        result = AggregatedResult(root_id="1", products=(detail,), requested=3)

        assert len(result) == 1
        assert result.missing == 2
        assert result.ids == ("2",)
        assert list(result) == [detail]


def test_cache_stats_hit_rate_without_traffic():
    assert CacheStats().hit_rate == 0.0


def test_fetch_outcome_ok():
    assert FetchOutcome(payload=[]).ok
    assert not FetchOutcome(not_found=True).ok
    assert not FetchOutcome(error="timeout").ok


def test_error_hierarchy():
    assert issubclass(CircuitOpenError, UpstreamUnavailable)
    assert str(UpstreamNotFound("7")) == "Product not found with ID: 7"

    error = UpstreamUnavailable("7", operation="product_detail", reason="timeout")
    assert str(error) == "Catalog unavailable for product 7 (product_detail): timeout"
    assert error.product_id == "7"
