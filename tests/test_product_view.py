from recommender.product_view import (
    ProductCardState,
    build_product_card,
    placeholder_image_url,
    resolve_image_url,
)


def test_resolve_uses_image_url_when_present():
    assert resolve_image_url("https://cdn.example.com/a.jpg", "A") == "https://cdn.example.com/a.jpg"


def test_resolve_falls_back_to_encoded_placeholder():
    url = resolve_image_url("", 'MacBook Pro 16" & more')

    assert url == "https://placehold.co/400x225/10b981/ffffff?text=MacBook%20Pro%2016%22%20%26%20more"


def test_placeholder_uses_product_label_without_name():
    assert placeholder_image_url(None) == "https://placehold.co/400x225/10b981/ffffff?text=Product"
    assert resolve_image_url(None, "") == placeholder_image_url(None)


def test_load_failure_switches_to_placeholder():
    url = resolve_image_url("https://cdn.example.com/broken.jpg", "Desk", load_failed=True)

    assert url == "https://placehold.co/400x225/10b981/ffffff?text=Desk"


def test_resolution_is_idempotent():
    first = resolve_image_url(None, "Chair")
    second = resolve_image_url(None, "Chair")

    assert first == second


def test_card_for_name_only_product():
    card = build_product_card({"productName": "X"}, 1, 0)

    assert card.product_name == "X"
    assert card.price == "N/A"
    assert card.description == "No description available"
    assert card.category is None
    assert card.image_url == "https://placehold.co/400x225/10b981/ffffff?text=X"
    assert card.features == [] and card.pros == [] and card.cons == []
    assert card.expanded is False
    assert card.toggle_label == "View Details"


def test_card_for_non_mapping_element():
    card = build_product_card("garbage", 0, 2)

    assert card.product_name == "Product Name"
    assert card.image_alt == "Product"
    assert card.product_index == 2


def test_compact_features_keep_full_list():
    features = ["a", "b", "c", "d", "e", "f"]

    card = build_product_card({"productName": "Y", "features": features}, 0, 0)

    assert card.compact_features == ["a", "b", "c", "d"]
    assert card.features == features


def test_wrong_typed_list_fields_are_ignored():
    card = build_product_card({"pros": "fast", "cons": None, "features": [1, None, "ok"], "price": 99}, 0, 0)

    assert card.pros == []
    assert card.cons == []
    assert card.features == ["1", "ok"]
    assert card.price == "99"


def test_card_states_are_independent():
    first = ProductCardState()
    second = ProductCardState()

    first.toggle()

    assert build_product_card({}, 0, 0, first).expanded is True
    assert build_product_card({}, 0, 0, first).toggle_label == "Hide Details"
    assert build_product_card({}, 0, 1, second).expanded is False
    assert first.toggle() is False
