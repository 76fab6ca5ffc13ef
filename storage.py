# storage.py
# The record store: every entity the API owns, kept in an in-memory database.

import logging
import threading
from contextlib import contextmanager
from datetime import datetime

from sqlalchemy import DateTime, String, func, literal, literal_column, or_

from database import create_memory_engine, create_session_factory
from models import Article, Bookmark, Comment, Like, StudyResource, User

logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1)

ARTICLE_FIELDS = (
    "title", "description", "content", "url", "image_url",
    "category", "source", "published_at",
)

# Study material available on a fresh store
DEFAULT_RESOURCES = [
    {
        "title": "TNPSC Prelims Syllabus 2024",
        "type": "syllabus",
        "category": "prelims",
        "description": "Complete prelims syllabus for TNPSC Group I & II",
        "file_path": "/resources/prelims-syllabus.pdf",
    },
    {
        "title": "TNPSC Mains Syllabus 2024",
        "type": "syllabus",
        "category": "mains",
        "description": "Detailed mains syllabus with paper-wise breakdown",
        "file_path": "/resources/mains-syllabus.pdf",
    },
    {
        "title": "Tamil Nadu History",
        "type": "book",
        "category": "history",
        "description": "Comprehensive guide to Tamil Nadu history",
        "download_url": "/books/tn-history.pdf",
    },
    {
        "title": "Current Affairs Monthly",
        "type": "material",
        "category": "current-affairs",
        "description": "Monthly current affairs compilation",
        "download_url": "/materials/current-affairs.pdf",
    },
]

# Insertion order, used to break created_at ties
_INSERTION_ORDER = literal_column("rowid")


def _matches(query, *columns):
    """Case-insensitive substring match on any of `columns`."""
    term = query.lower()
    return or_(*[func.lower(c, type_=String).contains(term, autoescape=True) for c in columns])


class RecordStore:
    """
    In-memory store for users, articles, likes, comments, bookmarks
    and study resources.

    Every store owns its own database, so separate instances never
    share records. Returned objects are detached from the session:
    changing them does not change the store.
    """

    def __init__(self, engine=None):
        self.engine = engine or create_memory_engine()
        self.SessionLocal = create_session_factory(self.engine)
        self._lock = threading.Lock()

    @contextmanager
    def _session(self):
        with self._lock, self.SessionLocal() as db:
            yield db

    def _add(self, obj):
        with self._session() as db:
            db.add(obj)
            db.commit()
        return obj

    # ----------------------------------------------------------
    # Users
    # ----------------------------------------------------------
    def get_user(self, user_id):
        with self._session() as db:
            return db.get(User, user_id)

    def get_user_by_username(self, username):
        with self._session() as db:
            return db.query(User).filter(User.username == username).first()

    def get_user_by_email(self, email):
        # Case-insensitive: signup stores the normalized address
        with self._session() as db:
            return db.query(User).filter(func.lower(User.email) == email.lower()).first()

    def create_user(self, username, email, hashed_password):
        return self._add(User(username=username, email=email, hashed_password=hashed_password))

    # ----------------------------------------------------------
    # Articles
    # ----------------------------------------------------------
    def get_articles(self, category=None, limit=20, offset=0):
        """
        Articles newest first. Publish time is the sort key, falling back
        to creation time and then to the epoch.
        """
        sort_key = func.coalesce(
            Article.published_at, Article.created_at, literal(EPOCH, DateTime)
        )
        with self._session() as db:
            query = db.query(Article)
            if category and category != "all":
                query = query.filter(Article.category == category)
            query = query.order_by(sort_key.desc(), _INSERTION_ORDER.desc())
            return query.offset(offset).limit(limit).all()

    def get_article(self, article_id):
        with self._session() as db:
            return db.get(Article, article_id)

    def create_article(self, **fields):
        return self._add(Article(**fields))

    def search_articles(self, query):
        with self._session() as db:
            return (
                db.query(Article)
                .filter(_matches(query, Article.title, Article.description))
                .all()
            )

    def ingest_articles(self, items):
        """
        Store fetched articles, skipping any whose url is already known.
        Returns the number of articles added.
        """
        added = 0
        seen = set()
        with self._session() as db:
            for item in items:
                if not item.get("title"):
                    continue
                url = item.get("url")
                if url:
                    if url in seen or db.query(Article.id).filter(Article.url == url).first():
                        continue
                    seen.add(url)
                db.add(Article(**{k: item.get(k) for k in ARTICLE_FIELDS if item.get(k) is not None}))
                added += 1
            db.commit()
        logger.info("Ingested %d of %d fetched articles", added, len(items))
        return added

    # ----------------------------------------------------------
    # Likes
    # ----------------------------------------------------------
    def get_likes_by_article(self, article_id):
        with self._session() as db:
            return db.query(Like).filter(Like.article_id == article_id).all()

    def get_user_like(self, user_id, article_id):
        with self._session() as db:
            return db.query(Like).filter(
                Like.user_id == user_id,
                Like.article_id == article_id,
            ).first()

    def create_like(self, user_id, article_id):
        return self._add(Like(user_id=user_id, article_id=article_id))

    def delete_like(self, user_id, article_id):
        with self._session() as db:
            db.query(Like).filter(
                Like.user_id == user_id,
                Like.article_id == article_id,
            ).delete()
            db.commit()

    def toggle_like(self, user_id, article_id):
        """
        Remove the user's like on the article if there is one, otherwise add it.
        Returns True when the article ends up liked.
        """
        with self._session() as db:
            existing = db.query(Like).filter(
                Like.user_id == user_id,
                Like.article_id == article_id,
            ).first()
            if existing:
                db.delete(existing)
            else:
                db.add(Like(user_id=user_id, article_id=article_id))
            db.commit()
        return existing is None

    # ----------------------------------------------------------
    # Comments
    # ----------------------------------------------------------
    def get_comments_by_article(self, article_id):
        with self._session() as db:
            return (
                db.query(Comment)
                .filter(Comment.article_id == article_id)
                .order_by(Comment.created_at.asc(), _INSERTION_ORDER.asc())
                .all()
            )

    def create_comment(self, user_id, article_id, content):
        return self._add(Comment(user_id=user_id, article_id=article_id, content=content))

    # ----------------------------------------------------------
    # Bookmarks
    # ----------------------------------------------------------
    def get_user_bookmarks(self, user_id):
        with self._session() as db:
            return (
                db.query(Bookmark)
                .filter(Bookmark.user_id == user_id)
                .order_by(Bookmark.created_at.asc(), _INSERTION_ORDER.asc())
                .all()
            )

    def create_bookmark(self, user_id, resource_type, resource_data, article_id=None):
        return self._add(Bookmark(
            user_id=user_id,
            article_id=article_id,
            resource_type=resource_type,
            resource_data=resource_data,
        ))

    def delete_bookmark(self, user_id, resource_id):
        """
        Remove the user's bookmarks pointing at `resource_id`.
        Returns True when something was removed.
        """
        with self._session() as db:
            bookmarks = db.query(Bookmark).filter(Bookmark.user_id == user_id).all()
            doomed = [
                b for b in bookmarks
                if b.article_id == resource_id
                or (b.resource_data or {}).get("resourceId") == resource_id
            ]
            for bookmark in doomed:
                db.delete(bookmark)
            db.commit()
        return bool(doomed)

    # ----------------------------------------------------------
    # TNPSC study resources
    # ----------------------------------------------------------
    def get_resources(self, type=None, category=None):
        with self._session() as db:
            query = db.query(StudyResource)
            if type:
                query = query.filter(StudyResource.type == type)
            if category:
                query = query.filter(StudyResource.category == category)
            return query.order_by(StudyResource.created_at.asc(), _INSERTION_ORDER.asc()).all()

    def get_resource(self, resource_id):
        with self._session() as db:
            return db.get(StudyResource, resource_id)

    def create_resource(self, **fields):
        return self._add(StudyResource(**fields))

    def search_resources(self, query):
        with self._session() as db:
            return (
                db.query(StudyResource)
                .filter(_matches(query, StudyResource.title, StudyResource.description))
                .all()
            )

    def seed_resources(self, resources=None):
        for resource in resources or DEFAULT_RESOURCES:
            self.create_resource(**resource)
