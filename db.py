# backend/db.py
import os, logging, json
from typing import Optional, List, Iterable
from contextlib import contextmanager
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field, Session, create_engine, select
from sqlalchemy.engine import Engine
from sqlalchemy import inspect, text as sqltext

from social.platforms import Platform
from social.publish import Post, GeneratedContent, Engagement

log = logging.getLogger("db")

def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()

# ---------------------------
# Modelos
# ---------------------------
class PostRecord(SQLModel, table=True):
    id: str = Field(primary_key=True)                 # post_id de FB, media_id de IG o post_<ms>
    platforms_json: str = Field(default="[]")         # lista de plataformas publicadas (JSON)
    audience: str = "Global"
    image_url: Optional[str] = None                   # data URL (imagen) o URL hosteada (video)
    prompt: str = ""
    generated_content_json: str = Field(default="{}")
    posted_at: str = Field(index=True)
    likes: int = 0
    comments: int = 0
    shares: int = 0
    engagement_updated_at: Optional[str] = None

    @classmethod
    def from_post(cls, post: Post) -> "PostRecord":
        return cls(
            id=post.id,
            platforms_json=json.dumps([p.value for p in post.platforms]),
            audience=post.audience.value,
            image_url=post.image_url,
            prompt=post.prompt,
            generated_content_json=post.generated_content.model_dump_json(),
            posted_at=post.posted_at,
            likes=post.engagement.likes,
            comments=post.engagement.comments,
            shares=post.engagement.shares,
        )

    def published_on(self) -> List[Platform]:
        return [Platform(p) for p in json.loads(self.platforms_json or "[]")]

    def to_post(self) -> Post:
        return Post(
            id=self.id,
            platforms=json.loads(self.platforms_json or "[]"),
            audience=self.audience,
            image_url=self.image_url,
            prompt=self.prompt,
            generated_content=GeneratedContent.model_validate_json(self.generated_content_json or "{}"),
            posted_at=self.posted_at,
            engagement=Engagement(likes=self.likes, comments=self.comments, shares=self.shares),
        )

class DraftAsset(SQLModel, table=True):
    id: str = Field(primary_key=True)
    name: str = ""
    prompt: str = ""
    description: str = ""
    hashtags_json: str = Field(default="[]")
    platforms_json: str = Field(default="[]")
    media_url: Optional[str] = None
    status: str = "idle"              # idle | generating | publishing | error | published
    error_message: Optional[str] = None
    updated_at: str = Field(default_factory=_now_iso)

# ---------------------------
# Engine & Session
# ---------------------------
_engine: Optional[Engine] = None

def _compute_sqlite_url() -> str:
    url = os.getenv("DATABASE_URL", "").strip()
    if url:
        return url
    return "sqlite:///./socialboost.db"

def get_engine() -> Engine:
    global _engine
    if _engine is not None:
        return _engine
    url = _compute_sqlite_url()
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    log.info("Creando engine en %s", url)
    _engine = create_engine(url, connect_args=connect_args, echo=False, future=True)
    return _engine

def reset_engine():
    global _engine
    if _engine is not None:
        _engine.dispose()
    _engine = None

def _apply_light_migrations(engine: Engine):
    """Pequeñas migraciones sin Alembic."""
    insp = inspect(engine)
    try:
        if "postrecord" in insp.get_table_names():
            cols = [c["name"] for c in insp.get_columns("postrecord")]
            if "engagement_updated_at" not in cols:
                with engine.connect() as conn:
                    conn.execute(sqltext("ALTER TABLE postrecord ADD COLUMN engagement_updated_at TEXT"))
                    conn.commit()
                    log.info("Migración: postrecord.engagement_updated_at agregado")
    except Exception as e:
        log.warning("Light migrations warning: %s", e)

def init_db():
    engine = get_engine()
    SQLModel.metadata.create_all(engine)
    _apply_light_migrations(engine)

def get_session():
    engine = get_engine()
    with Session(engine) as session:
        yield session

@contextmanager
def session_cm():
    engine = get_engine()
    with Session(engine) as s:
        yield s

# ---------------------------
# Helpers de posts
# ---------------------------
def save_post(session: Session, post: Post) -> PostRecord:
    rec = session.get(PostRecord, post.id)
    new = PostRecord.from_post(post)
    if rec is None:
        rec = new
    else:
        for k, v in new.model_dump(exclude={"id"}).items():
            setattr(rec, k, v)
    session.add(rec); session.commit(); session.refresh(rec)
    return rec

def list_posts(session: Session) -> List[Post]:
    rows = session.exec(select(PostRecord).order_by(PostRecord.posted_at.desc())).all()
    return [r.to_post() for r in rows]

def update_engagement(session: Session, post_id: str, likes: int, comments: int, shares: int) -> Optional[PostRecord]:
    rec = session.get(PostRecord, post_id)
    if not rec:
        return None
    rec.likes, rec.comments, rec.shares = likes, comments, shares
    rec.engagement_updated_at = _now_iso()
    session.add(rec); session.commit(); session.refresh(rec)
    return rec

def replace_drafts(session: Session, drafts: Iterable[DraftAsset]) -> List[DraftAsset]:
    """Mismo contrato que el store del navegador: clear + put."""
    for old in session.exec(select(DraftAsset)).all():
        session.delete(old)
    session.flush()
    out = []
    for d in drafts:
        session.add(d)
        out.append(d)
    session.commit()
    for d in out:
        session.refresh(d)
    return out

__all__ = [
    "SQLModel","Field","Session","select",
    "PostRecord","DraftAsset",
    "init_db","get_session","session_cm","get_engine","reset_engine",
    "save_post","list_posts","update_engagement","replace_drafts",
]
