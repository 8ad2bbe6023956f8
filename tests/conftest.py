# tests/conftest.py

import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from content_intel.loaders import load_catalog

# Links that satisfy the entity density rules of every entity type
ALL_SECTION_LINKS = [
    "/verse/1/1/1",
    "/bible-places/jerusalem",
    "/bible-verses-for/anxiety-at-work",
    "/prayer-points/healing",
    "/meaning-of/david/in-the-bible",
    "/bible-travel/holy-land",
]


def _words(n, word="grace"):
    return " ".join([word] * n)


def _article(links, intro=50, body=217, outro=30):
    """Three-paragraph markup; every anchor adds exactly one word."""
    anchors = " ".join(f'<a href="{href}">link</a>' for href in links)
    return (
        f"<p>{_words(intro)}</p>\n"
        f"<p>{_words(body, 'mercy')} {anchors}</p>\n"
        f"<p>{_words(outro, 'peace')}</p>"
    )


@pytest.fixture
def words():
    return _words


@pytest.fixture
def article():
    return _article


def _ts(day):
    return datetime(2024, 1, day, tzinfo=timezone.utc).isoformat()


def _catalog_data():
    rich = _article(ALL_SECTION_LINKS)
    records = [
        {"entity_type": "place", "id": "p1", "slug": "jerusalem", "title": "Jerusalem",
         "status": "published", "description": rich, "region": "Judea", "country": "Israel",
         "tour_priority": 90},
        {"entity_type": "place", "id": "p2", "slug": "bethlehem", "title": "Bethlehem",
         "status": "published", "description": rich, "region": "judea", "country": "Israel",
         "tour_priority": 80},
        {"entity_type": "place", "id": "p3", "slug": "hebron", "title": "Hebron",
         "status": "draft", "description": "<p>Too short.</p>", "region": "Judea", "tour_priority": 99},
        {"entity_type": "place", "id": "p4", "slug": "nazareth", "title": "Nazareth",
         "status": "published", "description": rich, "region": "Galilee", "country": "Israel"},
        {"entity_type": "situation", "id": "s1", "slug": "anxiety-at-work", "title": "Anxiety at Work",
         "status": "published", "content": rich, "category": "work-career",
         "meta_description": "Bible verses for anxiety at work", "updated_at": _ts(5)},
        {"entity_type": "situation", "id": "s2", "slug": "grief", "title": "Grief",
         "status": "published", "content": rich, "category": "grief-loss",
         "meta_description": "Comfort in loss", "updated_at": _ts(3)},
        {"entity_type": "profession", "id": "pr1", "slug": "teachers", "title": "Teachers",
         "status": "published", "content": rich, "category": "education",
         "description": "Verses for teachers"},
        {"entity_type": "prayerPoint", "id": "pp1", "slug": "healing", "title": "Healing Prayer",
         "status": "published", "content": rich, "category": "healing",
         "description": "Pray for healing", "priority": 5},
        {"entity_type": "prayer-point", "id": "pp2", "slug": "healing-family", "title": "Healing for Family",
         "status": "published", "content": rich, "category": "Healing",
         "description": "Pray for your family", "priority": 9},
        {"entity_type": "name", "id": "n1", "slug": "david", "title": "David",
         "status": "published", "content": rich, "origin": "hebrew", "meaning": "Beloved"},
        {"entity_type": "itinerary", "id": "i1", "slug": "holy-land", "title": "Holy Land Tour",
         "status": "published", "content": rich, "region": "Judea", "days": 7,
         "meta_description": "Seven days in Judea"},
    ]
    passages = [
        {"id": 1, "book_id": 1, "book_name": "Genesis", "book_slug": "genesis", "chapter": 1,
         "verse_number": 1, "primary_text": "In the beginning God created the heaven and the earth.",
         "updated_at": _ts(1)},
        {"id": 2, "book_id": 19, "book_name": "Psalms", "book_slug": "psalms", "chapter": 23,
         "verse_number": 1, "primary_text": "The LORD is my shepherd; I shall not want.",
         "updated_at": _ts(1)},
        {"id": 3, "book_id": 43, "book_name": "John", "book_slug": "john", "chapter": 3,
         "verse_number": 16, "primary_text": None, "secondary_text": "For God so loved the world.",
         "updated_at": _ts(1)},
        {"id": 4, "book_id": 50, "book_name": "Philippians", "book_slug": "philippians", "chapter": 4,
         "verse_number": 6, "primary_text": "   ", "updated_at": _ts(1)},
    ]
    passage_refs = [
        {"entity_type": "place", "record_id": "p1", "passage_id": 1, "relevance_score": 90},
        {"entity_type": "situation", "record_id": "s1", "passage_id": 1, "relevance_score": 80},
        {"entity_type": "situation", "record_id": "s2", "passage_id": 2, "relevance_score": 70},
        {"entity_type": "prayerPoint", "record_id": "pp1", "passage_id": 1, "relevance_score": 60},
        {"entity_type": "name", "record_id": "n1", "passage_id": 2, "relevance_score": 50},
        {"entity_type": "place", "record_id": "p4", "passage_id": 2, "relevance_score": 40},
    ]
    embeddings = [
        {"passage_id": 1, "model": "text-embedding-3-small", "dims": 3, "vector": [1.0, 0.0, 0.0],
         "content_hash": "a" * 64, "indexed_at": _ts(2)},
        {"passage_id": 2, "model": "text-embedding-3-small", "dims": 3, "vector": [0.9, 0.1, 0.0],
         "content_hash": "b" * 64, "indexed_at": _ts(3)},
        {"passage_id": 3, "model": "text-embedding-3-small", "dims": 3, "vector": [0.0, 1.0, 0.0],
         "content_hash": "c" * 64, "indexed_at": _ts(4)},
    ]
    taxonomy_labels = [
        {"key": "work-career", "label": "Work and Career", "sort_order": 5, "scope": "situation"},
    ]
    return {
        "records": records,
        "passages": passages,
        "passage_refs": passage_refs,
        "embeddings": embeddings,
        "taxonomy_labels": taxonomy_labels,
    }


@pytest.fixture
def catalog_data():
    return _catalog_data()


@pytest.fixture
def catalog_file(tmp_path: Path, catalog_data):
    path = tmp_path / "catalog.json"
    path.write_text(json.dumps(catalog_data), encoding="utf-8")
    return path


@pytest.fixture
def store(catalog_file):
    return load_catalog(catalog_file)
