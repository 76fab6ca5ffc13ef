# models.py
# This file defines the SQLAlchemy models (database tables).

import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, String, Text, UniqueConstraint

from database import Base


def new_id():
    return str(uuid.uuid4())


def utcnow():
    # Naive UTC, SQLite drops tzinfo anyway
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _iso(value):
    return value.isoformat() if value else None


# User table
class User(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True, default=new_id)
    username = Column(String, unique=True, index=True, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    created_at = Column(DateTime, default=utcnow)

    def to_dict(self):
        # Public shape only: the password hash never leaves the store
        return {"id": self.id, "username": self.username, "email": self.email}


# Article table (news fetched from the provider)
class Article(Base):
    __tablename__ = "articles"

    id = Column(String, primary_key=True, default=new_id)
    title = Column(String, nullable=False)
    description = Column(Text)
    content = Column(Text)
    url = Column(String, unique=True, index=True)
    image_url = Column(String)
    category = Column(String, nullable=False, default="general")
    source = Column(String)
    published_at = Column(DateTime)
    created_at = Column(DateTime, default=utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "content": self.content,
            "url": self.url,
            "imageUrl": self.image_url,
            "category": self.category,
            "source": self.source,
            "publishedAt": _iso(self.published_at),
            "createdAt": _iso(self.created_at),
        }


# Like table, at most one row per (user_id, article_id)
class Like(Base):
    __tablename__ = "likes"
    __table_args__ = (UniqueConstraint("user_id", "article_id"),)

    id = Column(String, primary_key=True, default=new_id)
    user_id = Column(String, index=True, nullable=False)
    article_id = Column(String, index=True, nullable=False)
    created_at = Column(DateTime, default=utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "userId": self.user_id,
            "articleId": self.article_id,
            "createdAt": _iso(self.created_at),
        }


# Comment table
class Comment(Base):
    __tablename__ = "comments"

    id = Column(String, primary_key=True, default=new_id)
    user_id = Column(String, nullable=False)
    article_id = Column(String, index=True, nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, default=utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "userId": self.user_id,
            "articleId": self.article_id,
            "content": self.content,
            "createdAt": _iso(self.created_at),
        }


# Bookmark table (saved articles or study resources)
class Bookmark(Base):
    __tablename__ = "bookmarks"

    id = Column(String, primary_key=True, default=new_id)
    user_id = Column(String, index=True, nullable=False)
    article_id = Column(String)
    resource_type = Column(String, nullable=False)
    resource_data = Column(JSON)
    created_at = Column(DateTime, default=utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "userId": self.user_id,
            "articleId": self.article_id,
            "resourceType": self.resource_type,
            "resourceData": self.resource_data,
            "createdAt": _iso(self.created_at),
        }


# TNPSC study resource table (syllabus, book, material)
class StudyResource(Base):
    __tablename__ = "tnpsc_resources"

    id = Column(String, primary_key=True, default=new_id)
    title = Column(String, nullable=False)
    type = Column(String, nullable=False)
    category = Column(String)
    file_path = Column(String)
    download_url = Column(String)
    description = Column(Text)
    created_at = Column(DateTime, default=utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "type": self.type,
            "category": self.category,
            "filePath": self.file_path,
            "downloadUrl": self.download_url,
            "description": self.description,
            "createdAt": _iso(self.created_at),
        }
