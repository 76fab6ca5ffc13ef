import threading
from datetime import datetime

import pytest
from sqlalchemy.exc import IntegrityError

from storage import DEFAULT_RESOURCES, RecordStore


def test_stores_do_not_share_records():
    a, b = RecordStore(), RecordStore()
    a.create_user("alice", "alice@example.com", "hash")
    assert a.get_user_by_username("alice") is not None
    assert b.get_user_by_username("alice") is None


def test_returned_objects_are_copies(store):
    user = store.create_user("alice", "alice@example.com", "hash")
    user.username = "mallory"
    assert store.get_user(user.id).username == "alice"


def test_create_assigns_id_and_timestamp(store):
    article = store.create_article(title="Hello", category="general")
    assert isinstance(article.id, str) and article.id
    assert article.created_at is not None
    assert store.get_article(article.id).title == "Hello"
    assert store.get_article("missing") is None


def test_articles_newest_first(store):
    store.create_article(title="old", category="general", published_at=datetime(2020, 1, 1))
    store.create_article(title="new", category="general", published_at=datetime(2021, 1, 1))
    store.create_article(title="middle", category="general", published_at=datetime(2020, 6, 1))
    titles = [a.title for a in store.get_articles()]
    assert titles == ["new", "middle", "old"]


def test_articles_without_publish_time_sort_by_creation(store):
    store.create_article(title="dated", category="general", published_at=datetime(2020, 1, 1))
    store.create_article(title="undated", category="general")
    # created just now, so newer than a 2020 publish date
    assert [a.title for a in store.get_articles()] == ["undated", "dated"]


def test_articles_category_filter_limit_offset(store):
    for i in range(5):
        store.create_article(title=f"tech {i}", category="technology",
                             published_at=datetime(2024, 1, i + 1))
    store.create_article(title="ball", category="sports")

    assert len(store.get_articles("technology")) == 5
    assert len(store.get_articles("all")) == 6
    assert len(store.get_articles()) == 6
    page = store.get_articles("technology", limit=2, offset=1)
    assert [a.title for a in page] == ["tech 3", "tech 2"]


def test_search_articles_is_case_insensitive(store):
    store.create_article(title="Chennai Rains", category="general")
    store.create_article(title="Budget", description="Tax cuts across CHENNAI", category="business")
    store.create_article(title="Cricket", category="sports")
    assert {a.title for a in store.search_articles("chennai")} == {"Chennai Rains", "Budget"}
    assert store.search_articles("100%") == []


def test_ingest_skips_duplicates_and_untitled(store):
    items = [
        {"title": "One", "url": "https://x/1", "category": "general"},
        {"title": "One again", "url": "https://x/1", "category": "general"},
        {"title": None, "url": "https://x/2"},
        {"title": "No category", "url": "https://x/3"},
    ]
    assert store.ingest_articles(items) == 2
    assert store.ingest_articles(items) == 0
    titles = {a.title for a in store.get_articles()}
    assert titles == {"One", "No category"}
    assert store.search_articles("No category")[0].category == "general"


def test_like_create_and_delete(store):
    store.create_like("u1", "a1")
    store.create_like("u2", "a1")
    assert store.get_user_like("u1", "a1") is not None
    assert len(store.get_likes_by_article("a1")) == 2

    store.delete_like("u1", "a1")
    assert store.get_user_like("u1", "a1") is None
    assert len(store.get_likes_by_article("a1")) == 1


def test_comments_oldest_first(store):
    for text in ("first", "second", "third"):
        store.create_comment("u1", "a1", text)
    store.create_comment("u1", "other", "elsewhere")
    assert [c.content for c in store.get_comments_by_article("a1")] == ["first", "second", "third"]


def test_bookmarks_per_user_and_delete(store):
    store.create_bookmark("u1", "article", {"resourceId": "a1"}, article_id="a1")
    store.create_bookmark("u1", "tnpsc_resource", {"resourceId": "r1"})
    store.create_bookmark("u2", "article", {"resourceId": "a1"}, article_id="a1")

    assert len(store.get_user_bookmarks("u1")) == 2
    assert store.delete_bookmark("u1", "r1") is True
    assert store.delete_bookmark("u1", "r1") is False
    assert store.delete_bookmark("u1", "a1") is True
    assert store.get_user_bookmarks("u1") == []
    assert len(store.get_user_bookmarks("u2")) == 1


def test_seeded_resources_filter_and_search(store):
    store.seed_resources()
    resources = store.get_resources()
    assert [r.title for r in resources] == [r["title"] for r in DEFAULT_RESOURCES]

    syllabi = store.get_resources(type="syllabus")
    assert len(syllabi) == 2
    assert [r.category for r in store.get_resources(type="syllabus", category="mains")] == ["mains"]
    assert store.get_resources(category="nothing") == []

    found = store.search_resources("tamil nadu")
    assert [r.title for r in found] == ["Tamil Nadu History"]
    assert store.get_resource(found[0].id).download_url == "/books/tn-history.pdf"


def test_user_lookup_by_email_ignores_case(store):
    store.create_user("carol", "Carol@example.com", "hash")
    assert store.get_user_by_email("carol@EXAMPLE.com").username == "carol"
    assert store.get_user_by_email("dave@example.com") is None


def test_toggle_like_flips_state(store):
    assert [store.toggle_like("u1", "a1") for _ in range(4)] == [True, False, True, False]
    assert store.get_likes_by_article("a1") == []


def test_concurrent_toggles_keep_one_like_per_user(store):
    threads_count = 8
    barrier = threading.Barrier(threads_count)
    results = []

    def worker():
        barrier.wait()
        results.append(store.toggle_like("u1", "a1"))

    threads = [threading.Thread(target=worker) for _ in range(threads_count)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sorted(results) == [False] * 4 + [True] * 4
    assert store.get_likes_by_article("a1") == []

    store.toggle_like("u1", "a1")
    assert len(store.get_likes_by_article("a1")) == 1


def test_duplicate_like_rejected_by_constraint(store):
    store.create_like("u1", "a1")
    with pytest.raises(IntegrityError):
        store.create_like("u1", "a1")
    assert len(store.get_likes_by_article("a1")) == 1
