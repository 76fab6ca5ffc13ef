"""
FastAPI backend for FlashPress News:
- News feed and search (proxied from newsdata.io, kept in the record store)
- AI tools: summarizer, fake-news check, news chatbot
- User Authentication (JWT) with likes, comments and bookmarks
- TNPSC study resources
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Literal, Optional

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from sqlalchemy.exc import IntegrityError

import config
from ai_gateway import AIGateway
from news_gateway import NewsGateway
from storage import RecordStore

logging.basicConfig(level=config.LOG_LEVEL)
logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

# ----------------------------------------------------------
# Schemas (Pydantic Models)
# ----------------------------------------------------------
class TextIn(BaseModel):
    text: str = Field(min_length=1)

class ChatIn(BaseModel):
    message: str = Field(min_length=1)
    context: Optional[str] = None

class UserCreate(BaseModel):
    username: str = Field(min_length=1)
    email: EmailStr
    password: str = Field(min_length=1)

class UserLogin(BaseModel):
    # Accepts either the username or the email address
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)

class CommentIn(BaseModel):
    content: str = Field(min_length=1)

class BookmarkData(BaseModel):
    # Extra display fields (title, url, ...) are stored as sent
    model_config = ConfigDict(extra="allow")

    resourceId: str = Field(min_length=1)

class BookmarkIn(BaseModel):
    resourceType: Literal["article", "tnpsc_resource"]
    resourceData: BookmarkData

# ----------------------------------------------------------
# Dependencies
# ----------------------------------------------------------
def get_store(request: Request) -> RecordStore:
    return request.app.state.store

def get_news(request: Request) -> NewsGateway:
    return request.app.state.news

def get_ai(request: Request) -> AIGateway:
    return request.app.state.ai

# ----------------------------------------------------------
# Helper / Utility Functions
# ----------------------------------------------------------
def verify_password(plain_password, hashed_password):
    """Compare plain password with its hashed version."""
    return pwd_context.verify(plain_password, hashed_password)

def get_password_hash(password):
    """Generate a new secure password hash using PBKDF2."""
    return pwd_context.hash(password)

def create_access_token(data: dict, expires_delta: timedelta = None):
    """
    Create a JWT access token that stores the user id (`sub`) and username.
    The token expires after a given time window.
    """
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(days=config.ACCESS_TOKEN_EXPIRE_DAYS)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, config.SECRET_KEY, algorithm=config.ALGORITHM)

def issue_session(user):
    """Build the signup/login response for `user`."""
    token = create_access_token({"sub": user.id, "username": user.username})
    return {"user": user.to_dict(), "token": token}

# auto_error=False so a missing token (401) can be told apart from a bad one (403)
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/user/login", auto_error=False)

def get_current_user_id(token: Optional[str] = Depends(oauth2_scheme)) -> str:
    """
    Extract the user id from the bearer token.
    No token gives 401, an invalid or expired one gives 403.
    """
    if not token:
        raise HTTPException(
            status_code=401,
            detail="Access token required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        payload = jwt.decode(token, config.SECRET_KEY, algorithms=[config.ALGORITHM])
    except JWTError:
        raise HTTPException(status_code=403, detail="Invalid or expired token")

    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(status_code=403, detail="Invalid or expired token")
    return user_id

def require_query(q: Optional[str]) -> str:
    if not q or not q.strip():
        raise HTTPException(status_code=400, detail="Search query required")
    return q.strip()

router = APIRouter(prefix="/api")

@router.get("/health")
def health(ai: AIGateway = Depends(get_ai)):
    return {"status": "ok", "demoMode": ai.demo_mode}

# ----------------------------------------------------------
# News
# ----------------------------------------------------------
@router.get("/news")
def list_news(category: Optional[str] = None,
              limit: int = Query(20, ge=1, le=100),
              offset: int = Query(0, ge=0),
              store: RecordStore = Depends(get_store),
              news: NewsGateway = Depends(get_news)):
    """
    Pull the latest headlines into the store, then return the stored
    articles for the category. An unreachable provider just means
    nothing new gets added.
    """
    fetched = news.fetch_news(category)
    if fetched:
        store.ingest_articles(fetched)
    return [a.to_dict() for a in store.get_articles(category, limit, offset)]

@router.get("/news/search")
def search_news(q: Optional[str] = None,
                store: RecordStore = Depends(get_store),
                news: NewsGateway = Depends(get_news)):
    query = require_query(q)
    fetched = news.search_news(query)
    if fetched:
        store.ingest_articles(fetched)
    return [a.to_dict() for a in store.search_articles(query)]

@router.get("/articles/{article_id}")
def get_article(article_id: str, store: RecordStore = Depends(get_store)):
    article = store.get_article(article_id)
    if article is None:
        raise HTTPException(status_code=404, detail="Article not found")
    return article.to_dict()

# ----------------------------------------------------------
# AI tools
# ----------------------------------------------------------
@router.post("/summarize/text")
def summarize_text(body: TextIn, ai: AIGateway = Depends(get_ai)):
    return {"summary": ai.summarize(body.text)}

@router.post("/fakecheck")
def fake_check(body: TextIn, ai: AIGateway = Depends(get_ai)):
    return ai.detect_fake_news(body.text)

@router.post("/chat")
def chat(body: ChatIn, ai: AIGateway = Depends(get_ai)):
    return {"response": ai.chat(body.message, body.context)}

# ----------------------------------------------------------
# User Authentication Routes (Signup/Login)
# ----------------------------------------------------------
@router.post("/user/signup", status_code=201)
def signup(user: UserCreate, store: RecordStore = Depends(get_store)):
    """
    Create a new user if neither the username nor the email is taken.
    """
    existing = store.get_user_by_email(user.email) or store.get_user_by_username(user.username)
    if existing:
        raise HTTPException(status_code=400, detail="User already exists")

    try:
        db_user = store.create_user(
            username=user.username,
            email=user.email,
            hashed_password=get_password_hash(user.password),
        )
    except IntegrityError:
        # Lost a race with a concurrent signup for the same name or email
        raise HTTPException(status_code=400, detail="User already exists")
    logger.info("New user signed up: %s", db_user.username)
    return issue_session(db_user)

@router.post("/user/login")
def login(form_data: UserLogin, store: RecordStore = Depends(get_store)):
    """
    Authenticate by username or email and password.
    Unknown users and wrong passwords get the same answer.
    """
    user = (store.get_user_by_username(form_data.username)
            or store.get_user_by_email(form_data.username))
    if not user or not verify_password(form_data.password, user.hashed_password):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    return issue_session(user)

# ----------------------------------------------------------
# Article engagement (likes / comments)
# ----------------------------------------------------------
@router.post("/articles/{article_id}/like")
def toggle_like(article_id: str,
                user_id: str = Depends(get_current_user_id),
                store: RecordStore = Depends(get_store)):
    """Like the article, or remove the like if it is already there."""
    return {"liked": store.toggle_like(user_id, article_id)}

@router.get("/articles/{article_id}/likes")
def list_likes(article_id: str, store: RecordStore = Depends(get_store)):
    likes = store.get_likes_by_article(article_id)
    return {"count": len(likes), "likes": [l.to_dict() for l in likes]}

@router.post("/articles/{article_id}/comment", status_code=201)
def add_comment(article_id: str,
                body: CommentIn,
                user_id: str = Depends(get_current_user_id),
                store: RecordStore = Depends(get_store)):
    return store.create_comment(user_id, article_id, body.content).to_dict()

@router.get("/articles/{article_id}/comments")
def list_comments(article_id: str, store: RecordStore = Depends(get_store)):
    return [c.to_dict() for c in store.get_comments_by_article(article_id)]

# ----------------------------------------------------------
# TNPSC study resources
# ----------------------------------------------------------
@router.get("/tnpsc/resources")
def list_resources(type: Optional[str] = None,
                   category: Optional[str] = None,
                   store: RecordStore = Depends(get_store)):
    return [r.to_dict() for r in store.get_resources(type, category)]

@router.get("/tnpsc/resources/search")
def search_resources(q: Optional[str] = None, store: RecordStore = Depends(get_store)):
    return [r.to_dict() for r in store.search_resources(require_query(q))]

# ----------------------------------------------------------
# Bookmarks (Add / Remove / Get)
# ----------------------------------------------------------
@router.post("/user/bookmark", status_code=201)
def add_bookmark(body: BookmarkIn,
                 user_id: str = Depends(get_current_user_id),
                 store: RecordStore = Depends(get_store)):
    resource_data = body.resourceData.model_dump()
    article_id = resource_data["resourceId"] if body.resourceType == "article" else None
    bookmark = store.create_bookmark(
        user_id=user_id,
        resource_type=body.resourceType,
        resource_data=resource_data,
        article_id=article_id,
    )
    return bookmark.to_dict()

@router.get("/user/bookmarks")
def list_bookmarks(user_id: str = Depends(get_current_user_id),
                   store: RecordStore = Depends(get_store)):
    """Return all bookmarks belonging to the logged-in user."""
    return [b.to_dict() for b in store.get_user_bookmarks(user_id)]

@router.delete("/user/bookmarks/{resource_id}")
def remove_bookmark(resource_id: str,
                    user_id: str = Depends(get_current_user_id),
                    store: RecordStore = Depends(get_store)):
    """Remove the user's bookmark for an article or study resource."""
    if not store.delete_bookmark(user_id, resource_id):
        raise HTTPException(status_code=404, detail="Not found in bookmarks")
    return {"removed": True}

# ----------------------------------------------------------
# Application
# ----------------------------------------------------------
async def handle_unexpected_error(request: Request, exc: Exception):
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": str(exc) or "Internal server error"})

def create_app(store=None, news=None, ai=None):
    """
    Build the API around the given collaborators.
    Anything not passed in is created from `config`; a new store comes
    seeded with the default study resources.
    """
    if store is None:
        store = RecordStore()
        store.seed_resources()

    app = FastAPI(title="FlashPress News API")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(Exception, handle_unexpected_error)

    app.state.store = store
    app.state.news = news or NewsGateway()
    app.state.ai = ai or AIGateway()

    app.include_router(router)
    return app

app = create_app()
