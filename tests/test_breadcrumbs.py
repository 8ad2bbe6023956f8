# tests/test_breadcrumbs.py

import pytest

from content_intel.breadcrumbs import breadcrumbs_for, explore_more_links, hub_breadcrumbs, hub_links
from content_intel.categories import CategoryClassifier
from content_intel.models import EntityType, TaxonomyLabel


def test_detail_trail_has_three_positions():
    trail = breadcrumbs_for(EntityType.PLACE, "Jerusalem", "jerusalem")

    assert [item.position for item in trail] == [1, 2, 3]
    assert [(item.label, item.href) for item in trail] == [
        ("Home", "/"),
        ("Bible Places", "/bible-places"),
        ("Jerusalem", "/bible-places/jerusalem"),
    ]


def test_every_entity_type_gets_a_three_item_trail():
    for entity_type in EntityType:
        trail = breadcrumbs_for(entity_type, "Title", "some-slug")
        assert len(trail) == 3
        assert trail[0].href == "/"
        assert "some-slug" in trail[2].href


@pytest.mark.parametrize(
    "tag, hub, href",
    [
        ("prayerPoint", "/prayer-points", "/prayer-points/peace"),
        ("prayer_point", "/prayer-points", "/prayer-points/peace"),
        ("place", "/bible-places", "/bible-places/peace"),
        (" itinerary ", "/bible-travel", "/bible-travel/peace"),
    ],
)
def test_string_tags_are_accepted(tag, hub, href):
    trail = breadcrumbs_for(tag, "Peace", "peace")

    assert [item.position for item in trail] == [1, 2, 3]
    assert trail[1].href == hub
    assert trail[2].href == href


def test_unknown_type_falls_back_to_explore_hub():
    trail = breadcrumbs_for("blog", "Peace", "peace")

    assert [(item.label, item.href, item.position) for item in trail] == [
        ("Home", "/", 1),
        ("Explore", "/search", 2),
        ("Peace", "/search?q=peace", 3),
    ]
    assert len(hub_breadcrumbs(None)) == 2


def test_name_route_and_hub():
    trail = breadcrumbs_for(EntityType.NAME, "David", "david")
    assert trail[1].href == "/names"
    assert trail[2].href == "/meaning-of/david/in-the-bible"


def test_blank_title_falls_back_to_slug_label():
    trail = breadcrumbs_for(EntityType.PRAYER_POINT, "   ", "peace-over-fear")
    assert trail[2].label == "Peace Over Fear"

    trail = breadcrumbs_for(EntityType.SITUATION, None, "lost-job")
    assert trail[2].label == "Lost Job"


def test_blank_title_uses_classifier_overrides():
    classifier = CategoryClassifier([TaxonomyLabel(key="lost-job", label="Losing a Job")])
    trail = breadcrumbs_for(EntityType.SITUATION, "", "lost-job", classifier=classifier)
    assert trail[2].label == "Losing a Job"


def test_hub_trail():
    trail = hub_breadcrumbs(EntityType.ITINERARY)
    assert [(item.label, item.href, item.position) for item in trail] == [
        ("Home", "/", 1),
        ("Bible Travel", "/bible-travel", 2),
    ]


def test_hub_links_cover_every_section_once():
    links = hub_links()
    assert len(links) == len(EntityType)
    assert [link.priority for link in links] == list(range(1, len(links) + 1))
    assert len({link.href for link in links}) == len(links)


def test_explore_more_excludes_current_section():
    links = explore_more_links("bible-places")
    assert len(links) == 4
    assert all(link.href != "/bible-places" for link in links)

    links = explore_more_links("/names")
    assert "/names" not in [link.href for link in links]
