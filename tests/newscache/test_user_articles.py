from __future__ import annotations

import pytest

from newscache.repositories.user_articles import (
    ArticleRef,
    list_favorites,
    list_read,
    mark_as_favorite,
    mark_as_read,
    remove_favorite,
)


def test_mark_read_then_favorite_shares_one_entry(session_factory):
    ref = ArticleRef(url="https://ex.com/a", title="A", source="Wire", image="https://ex.com/a.png")
    with session_factory() as session:
        mark_as_read(session, "u1", ref)
        entry = mark_as_favorite(session, "u1", ArticleRef(url="https://ex.com/a"))

        assert entry.is_read and entry.is_favorite
        assert entry.article_title == "A"

        read = list_read(session, "u1")
        favorites = list_favorites(session, "u1")

    assert read.total_items == 1 and favorites.total_items == 1
    assert read.items[0].article_source == "Wire"


def test_remove_favorite(session_factory):
    with session_factory() as session:
        mark_as_favorite(session, "u1", ArticleRef(url="https://ex.com/a"))
        entry = remove_favorite(session, "u1", "https://ex.com/a")
        assert entry.is_favorite is False and entry.favorited_at is None
        assert list_favorites(session, "u1").total_items == 0

        with pytest.raises(LookupError):
            remove_favorite(session, "u1", "https://ex.com/unknown")


def test_pagination_newest_first(session_factory):
    with session_factory() as session:
        for i in range(5):
            mark_as_read(session, "u1", ArticleRef(url=f"https://ex.com/{i}"))
        mark_as_read(session, "u2", ArticleRef(url="https://ex.com/other"))

        first = list_read(session, "u1", page=1, limit=2)
        last = list_read(session, "u1", page=3, limit=2)

    assert [i.article_url for i in first.items] == ["https://ex.com/4", "https://ex.com/3"]
    assert first.total_pages == 3 and first.total_items == 5 and first.has_more is True
    assert [i.article_url for i in last.items] == ["https://ex.com/0"]
    assert last.has_more is False


def test_blank_url_rejected(session_factory):
    with session_factory() as session:
        with pytest.raises(ValueError):
            mark_as_read(session, "u1", ArticleRef(url="  "))
