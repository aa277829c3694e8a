from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Mapping, Optional
from urllib.parse import quote

from .models import ProductCardView

PLACEHOLDER_BASE = "https://placehold.co/400x225/10b981/ffffff"
DEFAULT_PRODUCT_LABEL = "Product"
DEFAULT_PRODUCT_NAME = "Product Name"
DEFAULT_PRICE = "N/A"
DEFAULT_DESCRIPTION = "No description available"
COMPACT_FEATURE_COUNT = 4
SHOW_DETAILS_LABEL = "View Details"
HIDE_DETAILS_LABEL = "Hide Details"

# Same unreserved set as JavaScript's encodeURIComponent.
_URI_COMPONENT_SAFE = "-_.!~*'()"


@dataclass
class ProductCardState:
    """Per-card UI state; cards never affect each other."""
    expanded: bool = False
    image_failed: bool = False

    def toggle(self) -> bool:
        self.expanded = not self.expanded
        return self.expanded


def placeholder_image_url(product_name: Optional[str]) -> str:
    label = product_name if isinstance(product_name, str) and product_name else DEFAULT_PRODUCT_LABEL
    return f"{PLACEHOLDER_BASE}?text={quote(label, safe=_URI_COMPONENT_SAFE)}"


def resolve_image_url(image_url: Optional[str], product_name: Optional[str], load_failed: bool = False) -> str:
    """Purpose: Pick the image to show for a product card.
    Inputs/Outputs: Inputs are imageUrl, productName and a load-failure flag;
        returns a URL.
    Side Effects / State: None; pure and idempotent.
    Dependencies: placeholder_image_url.
    Failure Modes: None.
    If Removed: Cards without images render broken.
    Testing Notes: Same inputs must always produce the same URL.
    """
    if image_url and isinstance(image_url, str) and not load_failed:
        return image_url
    return placeholder_image_url(product_name)


def build_product_card(
    raw: Any,
    message_index: int,
    product_index: int,
    state: Optional[ProductCardState] = None,
) -> ProductCardView:
    """Purpose: Apply every per-product display fallback to a raw recommendation.
    Inputs/Outputs: Inputs are the raw element, its position and card state;
        returns a ProductCardView.
    Side Effects / State: None.
    Dependencies: resolve_image_url and the field helpers below.
    Failure Modes: None; non-mapping elements render as an all-default card.
    If Removed: Clients would need to re-implement the fallbacks.
    Testing Notes: A product with only a name shows price N/A and a placeholder.
    """
    product: Mapping[str, Any] = raw if isinstance(raw, Mapping) else {}
    state = state or ProductCardState()
    name = _text(product.get("productName"))
    features = _strings(product.get("features"))
    return ProductCardView(
        message_index=message_index,
        product_index=product_index,
        product_name=name or DEFAULT_PRODUCT_NAME,
        price=_text(product.get("price")) or DEFAULT_PRICE,
        description=_text(product.get("description")) or DEFAULT_DESCRIPTION,
        category=_text(product.get("category")) or None,
        features=features,
        compact_features=features[:COMPACT_FEATURE_COUNT],
        pros=_strings(product.get("pros")),
        cons=_strings(product.get("cons")),
        image_url=resolve_image_url(_text(product.get("imageUrl")), name, state.image_failed),
        image_alt=name or DEFAULT_PRODUCT_LABEL,
        expanded=state.expanded,
        toggle_label=HIDE_DETAILS_LABEL if state.expanded else SHOW_DETAILS_LABEL,
    )


def _text(value: Any) -> str:
    if isinstance(value, str):
        return value
    # Agents sometimes send numeric prices.
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return ""


def _strings(value: Any) -> List[str]:
    if not isinstance(value, (list, tuple)):
        return []
    return [_text(item) for item in value if _text(item)]
