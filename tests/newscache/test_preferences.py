from __future__ import annotations

import pytest
from pydantic import ValidationError

from newscache.models.domain import Category, PreferenceRecord
from newscache.services.preferences import (
    PreferenceEnumerator,
    expand_partitions,
    get_preferences,
    save_preferences,
)


def test_expand_partitions_dedupes_across_users():
    records = [
        PreferenceRecord(categories=["technology", "sports"], country="us", language="en"),
        PreferenceRecord(categories=["technology"], country="us", language="en"),
        PreferenceRecord(categories=["technology"], country="gb", language="en"),
    ]

    keys = [p.key for p in expand_partitions(records)]

    assert keys == ["technology-us-en", "sports-us-en", "technology-gb-en"]


def test_missing_fields_fall_back_to_defaults():
    record = PreferenceRecord.model_validate({"categories": [], "country": None})

    assert record.categories == [Category.GENERAL]
    assert record.country == "us"
    assert record.language == "en"
    assert [p.key for p in expand_partitions([record])] == ["general-us-en"]


def test_invalid_codes_are_rejected():
    with pytest.raises(ValidationError):
        PreferenceRecord(categories=["technology"], country="usa")
    with pytest.raises(ValidationError):
        PreferenceRecord(categories=["cooking"])


def test_enumerator_lists_stored_preferences(session_factory):
    with session_factory() as session:
        save_preferences(session, "u1", PreferenceRecord(categories=["business"], country="de", language="de"))
        save_preferences(session, "u2", PreferenceRecord())
        # updating keeps a single record per user
        save_preferences(session, "u1", PreferenceRecord(categories=["health"], country="de", language="de"))

    with session_factory() as session:
        assert get_preferences(session, "u1").categories == [Category.HEALTH]
        assert get_preferences(session, "nobody") is None

    enumerator = PreferenceEnumerator(session_factory)
    assert len(enumerator.list_preferences()) == 2
    assert {p.key for p in enumerator.partitions()} == {"health-de-de", "general-us-en"}
