"""
Full-text index over stories.

``stories_search`` is an SQLite FTS5 table whose rowid is the story id. Title,
author and domain are tokenized; score, creation time, comment count and the
has-url flag are stored verbatim (UNINDEXED) so filters and ordering can be
evaluated without joining back to ``stories``. Triggers on ``stories`` keep the
index in step with every insert, update and delete inside the same transaction.
"""

from sqlalchemy import DDL, Boolean, Integer, String, event
from sqlalchemy.sql import column, literal_column, table

from hnsearch.models.base import UTCDateTime
from hnsearch.models.stories import Story

SEARCH_TABLE = "stories_search"

_INDEXED_VALUES = """
    new.id, new.title, new.author, COALESCE(new.domain, ''),
    new.score, new.created_at, new.comment_count,
    CASE WHEN new.url IS NOT NULL AND new.url != '' THEN 1 ELSE 0 END
"""

CREATE_SEARCH_TABLE = f"""
CREATE VIRTUAL TABLE IF NOT EXISTS {SEARCH_TABLE} USING fts5(
    title,
    author,
    domain,
    score UNINDEXED,
    created_at UNINDEXED,
    comment_count UNINDEXED,
    has_url UNINDEXED,
    tokenize='porter unicode61'
)
"""

CREATE_INSERT_TRIGGER = f"""
CREATE TRIGGER IF NOT EXISTS stories_ai AFTER INSERT ON stories BEGIN
    INSERT INTO {SEARCH_TABLE}(rowid, title, author, domain, score, created_at, comment_count, has_url)
    VALUES ({_INDEXED_VALUES});
END
"""

CREATE_DELETE_TRIGGER = f"""
CREATE TRIGGER IF NOT EXISTS stories_ad AFTER DELETE ON stories BEGIN
    DELETE FROM {SEARCH_TABLE} WHERE rowid = old.id;
END
"""

CREATE_UPDATE_TRIGGER = f"""
CREATE TRIGGER IF NOT EXISTS stories_au AFTER UPDATE ON stories BEGIN
    DELETE FROM {SEARCH_TABLE} WHERE rowid = old.id;
    INSERT INTO {SEARCH_TABLE}(rowid, title, author, domain, score, created_at, comment_count, has_url)
    VALUES ({_INDEXED_VALUES});
END
"""

CLEAR_SEARCH_INDEX = f"DELETE FROM {SEARCH_TABLE}"

POPULATE_SEARCH_INDEX = f"""
INSERT INTO {SEARCH_TABLE}(rowid, title, author, domain, score, created_at, comment_count, has_url)
SELECT id, title, author, COALESCE(domain, ''), score, created_at, comment_count,
       CASE WHEN url IS NOT NULL AND url != '' THEN 1 ELSE 0 END
FROM stories
"""

for _statement in (CREATE_SEARCH_TABLE, CREATE_INSERT_TRIGGER, CREATE_DELETE_TRIGGER, CREATE_UPDATE_TRIGGER):
    event.listen(Story.__table__, "after_create", DDL(_statement).execute_if(dialect="sqlite"))

event.listen(
    Story.__table__,
    "after_drop",
    DDL(f"DROP TABLE IF EXISTS {SEARCH_TABLE}").execute_if(dialect="sqlite"),
)

# Query-side view of the virtual table; it is not part of the metadata.
stories_search = table(
    SEARCH_TABLE,
    column("rowid", Integer),
    column("title", String),
    column("author", String),
    column("domain", String),
    column("score", Integer),
    column("created_at", UTCDateTime()),
    column("comment_count", Integer),
    column("has_url", Boolean),
)

search_rank = literal_column("rank")
search_document = literal_column(SEARCH_TABLE)
