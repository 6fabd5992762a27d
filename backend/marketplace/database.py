import sqlite3
from pathlib import Path
from sqlalchemy import Integer, cast, create_engine, event, func
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from marketplace.config import settings


class Base(DeclarativeBase):
    pass


def _set_sqlite_pragmas(dbapi_conn, connection_record):
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def get_engine(db_path: Path | None = None):
    path = db_path or settings.db_path
    engine = create_engine(
        f"sqlite:///{path}",
        connect_args={"check_same_thread": False},
    )
    event.listen(engine, "connect", _set_sqlite_pragmas)
    return engine


engine = get_engine()
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def next_number(db, column, prefix: str) -> str:
    """Next ``<prefix>NNN`` after the highest numeric suffix already stored in ``column``.

    Deleted rows leave gaps instead of freeing their numbers for reuse.
    """
    highest = (
        db.query(func.max(cast(func.substr(column, len(prefix) + 1), Integer)))
        .filter(column.like(f"{prefix}%"))
        .scalar()
    )
    return f"{prefix}{(highest or 0) + 1:03d}"


SCHEMA_SQL = """\
-- ============================================================
-- USERS
-- ============================================================
CREATE TABLE IF NOT EXISTS users (
    id                TEXT PRIMARY KEY,
    email             TEXT NOT NULL UNIQUE,
    password_hash     TEXT NOT NULL,
    first_name        TEXT NOT NULL,
    last_name         TEXT NOT NULL,
    phone             TEXT UNIQUE,
    user_type         TEXT NOT NULL CHECK(user_type IN ('client','professional')),
    profile_image_url TEXT,
    address           TEXT,
    latitude          REAL,
    longitude         REAL,
    city              TEXT,
    is_active         INTEGER NOT NULL DEFAULT 1,
    rating_avg        REAL NOT NULL DEFAULT 0,
    rating_count      INTEGER NOT NULL DEFAULT 0,
    created_at        TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now')),
    updated_at        TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now'))
);

CREATE INDEX IF NOT EXISTS idx_users_type ON users(user_type);
CREATE INDEX IF NOT EXISTS idx_users_active ON users(is_active);
CREATE INDEX IF NOT EXISTS idx_users_location ON users(latitude, longitude);

-- ============================================================
-- SERVICE CATALOG
-- ============================================================
CREATE TABLE IF NOT EXISTS service_categories (
    id          TEXT PRIMARY KEY,
    name        TEXT NOT NULL,
    slug        TEXT NOT NULL UNIQUE,
    description TEXT,
    color_hex   TEXT DEFAULT '#007AFF',
    sort_order  INTEGER NOT NULL DEFAULT 0,
    is_active   INTEGER NOT NULL DEFAULT 1
);

CREATE TABLE IF NOT EXISTS services (
    id           TEXT PRIMARY KEY,
    category_id  TEXT NOT NULL REFERENCES service_categories(id) ON DELETE CASCADE,
    name         TEXT NOT NULL,
    slug         TEXT NOT NULL,
    description  TEXT,
    base_price   REAL,
    price_unit   TEXT NOT NULL DEFAULT 'servicio',
    is_emergency INTEGER NOT NULL DEFAULT 0,
    is_active    INTEGER NOT NULL DEFAULT 1,
    UNIQUE (category_id, slug)
);

CREATE INDEX IF NOT EXISTS idx_services_category ON services(category_id);

-- ============================================================
-- PROFESSIONALS
-- ============================================================
CREATE TABLE IF NOT EXISTS professional_profiles (
    id                        TEXT PRIMARY KEY,
    user_id                   TEXT NOT NULL UNIQUE REFERENCES users(id) ON DELETE CASCADE,
    bio                       TEXT,
    experience_years          INTEGER NOT NULL DEFAULT 0,
    hourly_rate               REAL,
    work_radius_km            REAL NOT NULL DEFAULT 10,
    work_schedule             TEXT,
    accepts_emergencies       INTEGER NOT NULL DEFAULT 0,
    emergency_rate_multiplier REAL NOT NULL DEFAULT 1.5,
    has_vehicle               INTEGER NOT NULL DEFAULT 0,
    has_tools                 INTEGER NOT NULL DEFAULT 0,
    verification_status       TEXT NOT NULL DEFAULT 'pending'
                              CHECK(verification_status IN ('pending','verified','rejected')),
    is_available              INTEGER NOT NULL DEFAULT 1,
    subscription_type         TEXT NOT NULL DEFAULT 'free'
                              CHECK(subscription_type IN ('free','premium')),
    subscription_expires_at   TEXT,
    created_at                TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now')),
    updated_at                TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now'))
);

CREATE INDEX IF NOT EXISTS idx_profiles_available ON professional_profiles(is_available);
CREATE INDEX IF NOT EXISTS idx_profiles_subscription ON professional_profiles(subscription_type);

CREATE TABLE IF NOT EXISTS professional_services (
    id              TEXT PRIMARY KEY,
    professional_id TEXT NOT NULL REFERENCES professional_profiles(id) ON DELETE CASCADE,
    service_id      TEXT NOT NULL REFERENCES services(id) ON DELETE CASCADE,
    custom_price    REAL NOT NULL,
    price_unit      TEXT NOT NULL DEFAULT 'servicio',
    description     TEXT,
    is_active       INTEGER NOT NULL DEFAULT 1,
    created_at      TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now')),
    UNIQUE (professional_id, service_id)
);

CREATE INDEX IF NOT EXISTS idx_prof_services_service ON professional_services(service_id);

CREATE TABLE IF NOT EXISTS professional_portfolio (
    id              TEXT PRIMARY KEY,
    professional_id TEXT NOT NULL REFERENCES professional_profiles(id) ON DELETE CASCADE,
    title           TEXT NOT NULL,
    description     TEXT,
    service_id      TEXT REFERENCES services(id),
    completed_date  TEXT,
    is_featured     INTEGER NOT NULL DEFAULT 0,
    created_at      TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now'))
);

-- ============================================================
-- JOBS
-- ============================================================
CREATE TABLE IF NOT EXISTS jobs (
    id                  TEXT PRIMARY KEY,
    job_number          TEXT NOT NULL UNIQUE,
    client_id           TEXT NOT NULL REFERENCES users(id),
    professional_id     TEXT REFERENCES users(id),
    service_id          TEXT REFERENCES services(id),
    title               TEXT NOT NULL,
    description         TEXT NOT NULL,
    work_address        TEXT NOT NULL,
    work_latitude       REAL,
    work_longitude      REAL,
    work_city           TEXT,
    urgency             TEXT NOT NULL DEFAULT 'normal'
                        CHECK(urgency IN ('normal','urgent','emergency')),
    preferred_date      TEXT,
    preferred_time      TEXT,
    flexible_schedule   INTEGER NOT NULL DEFAULT 1,
    status              TEXT NOT NULL DEFAULT 'draft'
                        CHECK(status IN ('draft','pending','quoted','assigned','confirmed',
                                         'in_progress','completed','delivered','cancelled','disputed')),
    budget_min          REAL,
    budget_max          REAL,
    final_price         REAL,
    price_currency      TEXT NOT NULL DEFAULT 'ARS',
    published_at        TEXT,
    assigned_at         TEXT,
    started_at          TEXT,
    completed_at        TEXT,
    delivered_at        TEXT,
    cancelled_at        TEXT,
    cancellation_reason TEXT,
    disputed_at         TEXT,
    disputed_by         TEXT,
    dispute_reason      TEXT,
    client_notes        TEXT,
    professional_notes  TEXT,
    version             INTEGER NOT NULL DEFAULT 1,
    created_at          TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now')),
    updated_at          TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now'))
);

CREATE INDEX IF NOT EXISTS idx_jobs_client ON jobs(client_id);
CREATE INDEX IF NOT EXISTS idx_jobs_professional ON jobs(professional_id);
CREATE INDEX IF NOT EXISTS idx_jobs_status ON jobs(status);
CREATE INDEX IF NOT EXISTS idx_jobs_published ON jobs(published_at);

CREATE TABLE IF NOT EXISTS job_status_history (
    id          TEXT PRIMARY KEY,
    job_id      TEXT NOT NULL REFERENCES jobs(id) ON DELETE CASCADE,
    seq         INTEGER NOT NULL,
    event       TEXT NOT NULL,
    from_status TEXT NOT NULL,
    to_status   TEXT NOT NULL,
    actor_id    TEXT,
    notes       TEXT,
    occurred_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now')),
    UNIQUE (job_id, seq)
);

-- ============================================================
-- QUOTATIONS
-- ============================================================
CREATE TABLE IF NOT EXISTS quotations (
    id                        TEXT PRIMARY KEY,
    job_id                    TEXT NOT NULL REFERENCES jobs(id) ON DELETE CASCADE,
    professional_id           TEXT NOT NULL REFERENCES users(id),
    total_price               REAL NOT NULL,
    price_currency            TEXT NOT NULL DEFAULT 'ARS',
    description               TEXT NOT NULL,
    estimated_hours           INTEGER,
    estimated_start_date      TEXT,
    estimated_completion_date TEXT,
    status                    TEXT NOT NULL DEFAULT 'pending'
                              CHECK(status IN ('pending','accepted','rejected','withdrawn','expired')),
    valid_until               TEXT NOT NULL,
    terms_and_conditions      TEXT,
    includes_materials        INTEGER NOT NULL DEFAULT 0,
    materials_description     TEXT,
    materials_cost            REAL NOT NULL DEFAULT 0,
    professional_notes        TEXT,
    client_feedback           TEXT,
    responded_at              TEXT,
    version                   INTEGER NOT NULL DEFAULT 1,
    created_at                TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now')),
    updated_at                TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now'))
);

CREATE INDEX IF NOT EXISTS idx_quotations_job ON quotations(job_id);
CREATE INDEX IF NOT EXISTS idx_quotations_professional ON quotations(professional_id);
CREATE INDEX IF NOT EXISTS idx_quotations_status ON quotations(status);

-- ============================================================
-- PAYMENTS
-- ============================================================
CREATE TABLE IF NOT EXISTS payments (
    id                  TEXT PRIMARY KEY,
    payment_number      TEXT NOT NULL UNIQUE,
    job_id              TEXT NOT NULL REFERENCES jobs(id),
    client_id           TEXT NOT NULL REFERENCES users(id),
    professional_id     TEXT NOT NULL REFERENCES users(id),
    total_amount        REAL NOT NULL,
    professional_amount REAL NOT NULL,
    platform_fee        REAL NOT NULL,
    currency            TEXT NOT NULL DEFAULT 'ARS',
    status              TEXT NOT NULL DEFAULT 'pending'
                        CHECK(status IN ('pending','processing','held','completed',
                                         'refunded','disputed','failed')),
    payment_method      TEXT NOT NULL
                        CHECK(payment_method IN ('mercadopago','transferencia','efectivo',
                                                 'tarjeta_credito','tarjeta_debito')),
    release_after       TEXT,
    released_at         TEXT,
    dispute_reason      TEXT,
    created_at          TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now'))
);

CREATE INDEX IF NOT EXISTS idx_payments_job ON payments(job_id);
CREATE INDEX IF NOT EXISTS idx_payments_status ON payments(status);

-- ============================================================
-- REVIEWS
-- ============================================================
CREATE TABLE IF NOT EXISTS reviews (
    id            TEXT PRIMARY KEY,
    job_id        TEXT NOT NULL REFERENCES jobs(id) ON DELETE CASCADE,
    reviewer_id   TEXT NOT NULL REFERENCES users(id),
    reviewee_id   TEXT NOT NULL REFERENCES users(id),
    reviewer_type TEXT NOT NULL CHECK(reviewer_type IN ('client','professional')),
    rating        INTEGER NOT NULL CHECK(rating BETWEEN 1 AND 5),
    comment       TEXT,
    created_at    TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now')),
    UNIQUE (job_id, reviewer_id)
);

CREATE INDEX IF NOT EXISTS idx_reviews_reviewee ON reviews(reviewee_id);

-- ============================================================
-- NOTIFICATIONS
-- ============================================================
CREATE TABLE IF NOT EXISTS notifications (
    id           TEXT PRIMARY KEY,
    user_id      TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    type         TEXT NOT NULL,
    title        TEXT NOT NULL,
    message      TEXT NOT NULL,
    job_id       TEXT REFERENCES jobs(id) ON DELETE CASCADE,
    quotation_id TEXT REFERENCES quotations(id) ON DELETE CASCADE,
    is_read      INTEGER NOT NULL DEFAULT 0,
    read_at      TEXT,
    created_at   TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now'))
);

CREATE INDEX IF NOT EXISTS idx_notifications_user ON notifications(user_id);
CREATE INDEX IF NOT EXISTS idx_notifications_read ON notifications(is_read);
"""


MIGRATIONS = [
    # v0.2: dispute metadata on jobs
    "ALTER TABLE jobs ADD COLUMN disputed_by TEXT",
    # v0.3: payment release window
    "ALTER TABLE payments ADD COLUMN release_after TEXT",
]


def init_db(db_path: Path | None = None):
    path = db_path or settings.db_path
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path))
    conn.executescript(SCHEMA_SQL)
    # Run migrations idempotently (ALTER TABLE fails if column exists)
    for migration in MIGRATIONS:
        try:
            conn.execute(migration)
            conn.commit()
        except sqlite3.OperationalError:
            pass  # column already exists
    conn.close()
