# tests/test_publishing.py

import pytest

from content_intel.models import EntityType, PrayerPointRecord, Status
from content_intel.publishing import PublishBlockedError, transition_status


def test_publish_blocked_for_failing_record():
    record = PrayerPointRecord(id="1", slug="thin", title="Thin", content="<p>Too short.</p>")

    with pytest.raises(PublishBlockedError) as exc_info:
        transition_status(record, "published")

    message = str(exc_info.value)
    assert message.startswith("QUALITY_GATE_FAILED: Too few words: 3 < 300 required; Missing introduction")
    assert exc_info.value.reasons[0] == "Too few words: 3 < 300 required"
    assert record.status == Status.DRAFT


def test_publish_allowed_for_passing_record(article):
    record = PrayerPointRecord(
        id="1",
        slug="ok",
        title="",
        content=article(["/verse/1/1/1", "/bible-verses-for/x", "/about"]),
    )

    published = transition_status(record, Status.PUBLISHED)

    assert published.status == Status.PUBLISHED
    assert published is not record
    assert record.status == Status.DRAFT


def test_unpublish_always_allowed(store):
    record = store.get_record(EntityType.PLACE, "jerusalem")
    thin = record.model_copy(update={"description": ""})

    draft = transition_status(thin, "draft")

    assert draft.status == Status.DRAFT


def test_unknown_status_rejected():
    record = PrayerPointRecord(id="1", slug="x")
    with pytest.raises(ValueError):
        transition_status(record, "archived")
