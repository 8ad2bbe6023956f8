# tests/test_graph.py

from datetime import datetime, timezone

from content_intel.graph import build_passage_graph_links, entity_graph_links, graph_link_set
from content_intel.models import EntityType, LinkType, Passage, RelatedLink
from content_intel.related import RelatedLinksResolver


def make_passage(pid, book_name, chapter, verse, text):
    return Passage(
        id=pid,
        book_id=pid,
        book_name=book_name,
        chapter=chapter,
        verse_number=verse,
        primary_text=text,
        updated_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )


def test_passage_links_sorted_by_relevance_then_reference():
    rows = [
        (make_passage(1, "Genesis", 1, 1, "In the beginning"), 50),
        (make_passage(2, "Exodus", 3, 14, "I AM THAT I AM"), 90),
        (make_passage(3, "Amos", 5, 24, "Let judgment run down"), 50),
    ]

    links = build_passage_graph_links(rows)

    assert [link.title for link in links] == ["Exodus 3:14", "Amos 5:24", "Genesis 1:1"]
    assert links[0].href == "/verse/2/3/14"
    assert all(link.link_type == LinkType.VERSE for link in links)


def test_passage_link_descriptions():
    long_text = "word " * 60
    rows = [
        (make_passage(1, "Psalms", 1, 1, long_text), 10),
        (make_passage(2, "Psalms", 1, 2, None), 7),
    ]

    links = build_passage_graph_links(rows)

    assert len(links[0].description) == 100
    assert links[0].description.endswith("…")
    assert links[1].description == "Relevance: 7"


def test_passage_links_respect_limit():
    rows = [(make_passage(i, "John", 1, i, "text"), i) for i in range(1, 12)]
    assert len(build_passage_graph_links(rows)) == 8
    assert len(build_passage_graph_links(rows, limit=3)) == 3


def test_entity_graph_links_sorted_by_title(store):
    record = store.get_record(EntityType.PLACE, "jerusalem")
    links = entity_graph_links(RelatedLinksResolver(store), EntityType.PLACE, record)
    assert [link.title for link in links] == ["Anxiety at Work", "Bethlehem", "Holy Land Tour"]


def test_graph_link_set_dedupes_by_href():
    a = RelatedLink(href="/verse/1/1/1", title="Genesis 1:1", link_type=LinkType.VERSE)
    b = RelatedLink(href="/bible-places/x", title="X", link_type=LinkType.PLACE)
    merged = graph_link_set([a], [b, a])
    assert [link.href for link in merged] == ["/verse/1/1/1", "/bible-places/x"]
