# tests/test_categories.py

import pytest

from content_intel.categories import (
    CategoryClassifier,
    group_by,
    label_for,
    normalize_slug,
    order_for,
)
from content_intel.models import TaxonomyLabel


@pytest.mark.parametrize(
    "value, expected",
    [
        ("Peace Over Fear", "peace-over-fear"),
        ("  HEALING  ", "healing"),
        ("work_career", "work-career"),
        ("grief -- loss!", "grief-loss"),
        ("-edge-", "edge"),
        ("", "other"),
        ("!!!", "other"),
        (None, "other"),
        (42, "other"),
    ],
)
def test_normalize_slug(value, expected):
    assert normalize_slug(value) == expected


def test_normalize_slug_is_idempotent():
    for value in ["Peace Over Fear", "a  b__c", "Ünïcode Café", "x"]:
        once = normalize_slug(value)
        assert normalize_slug(once) == once


def test_label_and_order_lookup():
    assert label_for("peace-over-fear") == "Peace Over Fear"
    assert order_for("healing") == 20
    assert label_for("Work Career") == "Work & Career"


def test_unknown_slug_falls_back_to_title_case():
    assert label_for("new-testament-letters") == "New Testament Letters"
    assert order_for("new-testament-letters") == 900


def test_other_always_sorts_last():
    classifier = CategoryClassifier([TaxonomyLabel(key="other", label="Misc", sort_order=1)])
    assert classifier.label_for("other") == "Misc"
    assert classifier.order_for("other") == 999
    assert classifier.order_for(None) == 999


def test_overrides_take_precedence():
    classifier = CategoryClassifier([
        TaxonomyLabel(key="healing", label="Healing & Restoration", sort_order=1),
        TaxonomyLabel(key="New Topic", label="Brand New"),
    ])
    assert classifier.label_for("healing") == "Healing & Restoration"
    assert classifier.order_for("healing") == 1
    assert classifier.label_for("new-topic") == "Brand New"
    assert classifier.order_for("new-topic") == 900


def test_group_by_buckets_and_sorts():
    items = [
        {"title": "A", "category": "Healing"},
        {"title": "B", "category": "breakthrough"},
        {"title": "C", "category": None},
        {"title": "D", "category": "healing"},
        {"title": "E", "category": "zeal"},
        {"title": "F", "category": ""},
    ]

    groups = group_by(items, lambda item: item["category"])

    assert [g.slug for g in groups] == ["breakthrough", "healing", "zeal", "other"]
    assert [g.order for g in groups] == [10, 20, 900, 999]
    healing = groups[1]
    assert healing.label == "Healing"
    # Items keep input order inside a group
    assert [item["title"] for item in healing.items] == ["A", "D"]
    # Null and empty categories share the fallback group
    assert [item["title"] for item in groups[-1].items] == ["C", "F"]


def test_group_by_ties_break_on_label():
    groups = group_by([{"c": "zebra"}, {"c": "apple"}], lambda item: item["c"])
    assert [g.label for g in groups] == ["Apple", "Zebra"]


def test_sort_slugs_and_known_options():
    classifier = CategoryClassifier()
    assert classifier.sort_slugs(["Healing", "other", "breakthrough", "healing"]) == [
        "breakthrough",
        "healing",
        "other",
    ]
    options = classifier.known_options()
    assert options[-1] == {"slug": "other", "label": "Other"}
    assert {"slug": "healing", "label": "Healing"} in options
