"""JSON output formatting for aggregated results.

The product list is the wire format shared by the HTTP API and the CLI:
one object per product with ``id``, ``name``, ``price`` and ``availability``.
The CLI report wraps it with a small summary of the fan-out.
"""

import json
from pathlib import Path
from typing import Any, Dict, List

from similar_products.models.data_models import AggregatedResult, ProductDetail


class JSONOutputFormatter:
    """
    Formats aggregated results as JSON.

    Example report structure:
    {
        "root_id": "1",
        "summary": {"requested": 3, "resolved": 2, "missing": 1},
        "products": [
            {"id": "2", "name": "Dress", "price": 29.99, "availability": true}
        ]
    }
    """

    def format(self, result: AggregatedResult) -> Dict[str, Any]:
        """
        Format a result as a JSON-serializable report.

        Args:
            result: Aggregated result of one lookup

        Returns:
            Dictionary with root_id, summary and products sections
        """
        return {
            "root_id": result.root_id,
            "summary": {
                "requested": result.requested,
                "resolved": len(result),
                "missing": result.missing
            },
            "products": self.format_products(result)
        }

    def format_products(self, result: AggregatedResult) -> List[Dict[str, Any]]:
        """Format the products in wire schema, keeping result order."""
        return [self.format_product(product) for product in result.products]

    def format_product(self, product: ProductDetail) -> Dict[str, Any]:
        return {
            "id": product.id,
            "name": product.name,
            "price": float(product.price),
            "availability": product.availability
        }

    def save(self, result: AggregatedResult, path: str) -> None:
        """
        Save formatted result to JSON file.

        Creates parent directories if they don't exist. Uses 2-space
        indentation for readability.
        """
        output_path = Path(path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        with open(output_path, 'w', encoding='utf-8') as f:
            json.dump(self.format(result), f, indent=2, ensure_ascii=False)
