"""
Tests for domain helpers: categories, number parsing, record ids, entity mapping.
"""

from __future__ import annotations

import pytest

from lemons_copilot.application.utils.id_extractor import extract_record_id
from lemons_copilot.domain.entities.categories import (
    ALLOWED_CATEGORIES,
    allowed_categories_text,
    normalize_category,
)
from lemons_copilot.domain.entities.package import Package
from lemons_copilot.domain.entities.service import Service
from lemons_copilot.domain.entities.user import User
from lemons_copilot.domain.values import parse_delivery_days, parse_number, split_list


@pytest.mark.parametrize("label", ALLOWED_CATEGORIES)
def test_every_casing_normalizes_to_the_canonical_label(label):
    assert normalize_category(label) == label
    assert normalize_category(label.lower()) == label
    assert normalize_category(label.upper()) == label
    assert normalize_category(f"  {label.swapcase()} ") == label


def test_unknown_category_is_rejected():
    assert normalize_category("Plumbing") is None
    assert normalize_category("") is None
    assert normalize_category(None) is None


def test_allowed_categories_text_lists_labels_verbatim():
    text = allowed_categories_text()
    assert text.split(", ") == list(ALLOWED_CATEGORIES)
    assert "Video & Animation" in text


def test_parse_number():
    assert parse_number("$1,200.50") == 1200.5
    assert parse_number(49) == 49.0
    with pytest.raises(ValueError):
        parse_number("about fifty")
    with pytest.raises(ValueError):
        parse_number(True)


def test_parse_delivery_days_and_split_list():
    assert parse_delivery_days("3 days") == 3.0
    assert parse_delivery_days("Express: 1.5 days") == 1.5
    assert parse_delivery_days("soon") is None
    assert split_list(" a, b ,,\nc ") == ["a", "b", "c"]
    assert split_list(["x", " ", "y"]) == ["x", "y"]
    assert split_list(None) == []


def test_extract_record_id():
    assert extract_record_id("please edit 1712345678901x123456789012345678 now") == "1712345678901x123456789012345678"
    assert extract_record_id("id: abc_DEF-1234567890abcdefghijk") == "abc_DEF-1234567890abcdefghijk"
    # long words without digits are not ids
    assert extract_record_id("supercalifragilisticexpialidocious") is None
    assert extract_record_id("short 123abc") is None
    assert extract_record_id("") is None


def test_service_from_search_hit_uses_cheapest_package():
    hit = {
        "objectID": "svc_9",
        "title": "Landing pages",
        "category": "Web Design",
        "packages": [
            {"objectID": "p1", "price": "250", "delivery": "7 days"},
            {"objectID": "p2", "price": 120, "delivery": "3 days"},
        ],
    }

    service = Service.from_search_hit(hit)

    assert service.id == "svc_9"
    assert service.price == 120.0
    assert service.delivery_days == 3.0
    assert service.package_ids == ("p1", "p2")


def test_records_without_identity_are_rejected():
    with pytest.raises(ValueError):
        Service.from_record({"title": "x"})
    with pytest.raises(ValueError):
        Package.from_record({"name": "x"})
    with pytest.raises(ValueError):
        User.from_record({"first_name": "x"})


def test_user_record_keeps_only_safe_fields():
    user = User.from_record({"_id": "u", "first_name": "Ada", "email": "a@b.c", "admin": True})

    context = user.to_context()

    assert context["first_name"] == "Ada"
    assert "email" not in context
    assert "admin" not in context
