"""SQLite knowledge store: message log, vector tables, channel/account registry."""

import asyncio
import sqlite3
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import AsyncIterator, Iterable, Protocol, Sequence

import aiosqlite

from ..config import resolve_db_path
from ..errors import EmbeddingError, StorageError
from ..llm import IEmbedder
from ..logging_config import get_logger
from ..models import (
    Account,
    Channel,
    ChannelType,
    Document,
    Message,
    Source,
)
from .vector_index import VectorIndex, VectorRow, to_blob

logger = get_logger(__name__)

MESSAGE_COLUMNS = (
    "row_id, id, source, source_id, channel_type, channel_id, "
    "account_id, role, content, created_at"
)
CHANNEL_COLUMNS = "id, channel_id, channel_type, source, name, created_at, updated_at"
ACCOUNT_COLUMNS = "id, name, source_id, source, created_at, updated_at"


class IKnowledgeStore(Protocol):
    """Persistent conversation knowledge (SQLite + vectors)."""

    async def init(self) -> None:
        """Open the database and create tables."""
        ...

    async def close(self) -> None:
        """Close database connection."""
        ...

    # Messages
    async def create_message(self, msg: Message) -> int:
        """Embed and persist a message, upserting its channel. Returns the row id."""
        ...

    async def get_message(self, row_id: int) -> Message | None:
        """Get a message by row id."""
        ...

    async def get_recent_messages(self, channel_id: str, limit: int) -> list[Message]:
        """Get the most recent messages of a channel, newest first."""
        ...

    async def channel_messages(self, channel_id: str, limit: int) -> list[tuple[str, str]]:
        """Get (source_id, content) of the most recent messages, newest first."""
        ...

    # Documents
    async def add_documents(self, documents: Iterable[Document]) -> None:
        """Embed and persist a batch of documents."""
        ...

    async def get_document(self, document_id: str) -> Document | None:
        """Get a document by id."""
        ...

    def document_index(self) -> VectorIndex:
        """Nearest-neighbour search over documents."""
        ...

    def message_index(self) -> VectorIndex:
        """Nearest-neighbour search over messages."""
        ...

    # Registry
    async def create_channel(
        self,
        channel_id: str,
        channel_type: ChannelType,
        name: str | None = None,
        source: Source | None = None,
    ) -> int:
        """Insert or update a channel by channel_id. Returns the row id."""
        ...

    async def get_channel(self, row_id: int) -> Channel | None:
        """Get a channel by row id."""
        ...

    async def get_channels_by_source(self, source: Source) -> list[Channel]:
        """Get all channels of a source."""
        ...

    async def create_user(
        self, name: str, source: Source, source_id: str | None = None
    ) -> int:
        """Insert or update an account by (source_id, source). Returns the row id."""
        ...

    async def get_user_by_source(self, source: Source) -> Account | None:
        """Get the first account registered for a source."""
        ...

    async def get_user(self, source_id: str, source: Source) -> Account | None:
        """Get an account by (source_id, source)."""
        ...


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


def _to_db_ts(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def _from_db_ts(value: str) -> datetime:
    ts = datetime.fromisoformat(value)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


def _row_to_message(row: Sequence) -> Message:
    return Message(
        id=row[1],
        source=Source.parse(row[2]),
        source_id=row[3],
        channel_type=ChannelType.parse(row[4]),
        channel_id=row[5],
        account_id=row[6],
        role=row[7],
        content=row[8],
        created_at=_from_db_ts(row[9]),
    )


def _row_to_channel(row: Sequence) -> Channel:
    return Channel(
        id=row[0],
        channel_id=row[1],
        channel_type=ChannelType.parse(row[2]),
        source=Source.parse(row[3]) if row[3] is not None else None,
        name=row[4],
        created_at=_from_db_ts(row[5]),
        updated_at=_from_db_ts(row[6]),
    )


def _row_to_account(row: Sequence) -> Account:
    return Account(
        id=row[0],
        name=row[1],
        source_id=row[2],
        source=Source.parse(row[3]),
        created_at=_from_db_ts(row[4]),
        updated_at=_from_db_ts(row[5]),
    )


class KnowledgeStore:
    """SQLite knowledge store.

    One aiosqlite connection is shared by every caller. Statements run
    through ``_transaction`` (writes) or ``_fetchall`` (reads), both of which
    hold ``_lock``, so a write transaction is never interleaved with another
    statement on the same connection.
    """

    def __init__(self, embedder: IEmbedder, db_path: str | Path | None = None):
        if db_path is None:
            self._db_path = resolve_db_path()
        else:
            self._db_path = resolve_db_path(db_path)
        self._embedder = embedder
        self._conn: aiosqlite.Connection | None = None
        self._lock = asyncio.Lock()

    async def init(self) -> None:
        """Open the database and create tables."""
        # Autocommit mode: transactions are opened explicitly in _transaction()
        self._conn = await aiosqlite.connect(self._db_path, isolation_level=None)

        schema_path = Path(__file__).parent / "schema.sql"
        with open(schema_path, "r", encoding="utf-8") as f:
            schema_sql = f.read()
        await self._conn.executescript(schema_sql)
        logger.info("Knowledge store initialized at %s", self._db_path)

    async def close(self) -> None:
        """Close database connection."""
        if self._conn:
            await self._conn.close()
            self._conn = None

    def _require_conn(self) -> aiosqlite.Connection:
        if not self._conn:
            raise RuntimeError("Storage not initialized")
        return self._conn

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """Run a block atomically: commit on success, roll back on any error."""
        conn = self._require_conn()
        async with self._lock:
            stage = "begin"
            try:
                await conn.execute("BEGIN")
                stage = "run"
                yield conn
                stage = "commit"
                await conn.execute("COMMIT")
            except BaseException as e:
                # Cancellation included: the shared connection must not be
                # left inside an open transaction.
                await self._rollback(conn)
                if isinstance(e, sqlite3.Error):
                    raise StorageError(f"Transaction failed at {stage}: {e}") from e
                raise

    async def _rollback(self, conn: aiosqlite.Connection) -> None:
        """Roll back, logging a failed rollback so the original error survives."""
        try:
            await conn.execute("ROLLBACK")
        except sqlite3.Error as e:
            logger.warning("Rollback failed: %s", e)

    async def _fetchall(self, query: str, params: Sequence = ()) -> list[tuple]:
        conn = self._require_conn()
        async with self._lock:
            try:
                cursor = await conn.execute(query, params)
                return list(await cursor.fetchall())
            except sqlite3.Error as e:
                raise StorageError(f"Query failed: {e}") from e

    async def _fetchone(self, query: str, params: Sequence = ()) -> tuple | None:
        rows = await self._fetchall(query, params)
        return rows[0] if rows else None

    async def _embed(self, texts: list[str]) -> list[list[float]]:
        try:
            vectors = await self._embedder.embed(texts)
        except Exception as e:
            raise EmbeddingError(f"Failed to embed {len(texts)} texts: {e}") from e

        if len(vectors) != len(texts):
            raise EmbeddingError(
                f"Embedder returned {len(vectors)} vectors for {len(texts)} texts"
            )
        return vectors

    # Messages
    async def create_message(self, msg: Message) -> int:
        """Embed and persist a message, upserting its channel. Returns the row id.

        The embedding is computed before the transaction opens; the channel
        upsert, message row and vector row then commit together or not at all.
        """
        if not msg.id or not msg.channel_id:
            raise ValueError("Message requires a non-empty id and channel_id")

        self._require_conn()
        [vector] = await self._embed([msg.content])
        now = _utcnow()

        async with self._transaction() as conn:
            await conn.execute(
                """
                INSERT INTO channels (channel_id, channel_type, source, name, created_at, updated_at)
                VALUES (?, ?, ?, NULL, ?, ?)
                ON CONFLICT (channel_id) DO UPDATE SET
                    source = COALESCE(channels.source, excluded.source),
                    updated_at = excluded.updated_at
                """,
                (
                    msg.channel_id,
                    msg.channel_type.value,
                    msg.source.value,
                    now,
                    now,
                ),
            )

            cursor = await conn.execute(
                """
                INSERT INTO messages
                (id, source, source_id, channel_type, channel_id, account_id, role, content, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    msg.id,
                    msg.source.value,
                    msg.source_id,
                    msg.channel_type.value,
                    msg.channel_id,
                    msg.account_id,
                    msg.role,
                    msg.content,
                    _to_db_ts(msg.created_at),
                ),
            )
            row_id = cursor.lastrowid

            await conn.execute(
                "INSERT INTO message_embeddings (message_row_id, embedding) VALUES (?, ?)",
                (row_id, to_blob(vector)),
            )

        logger.debug(
            "Stored message %s in channel %s",
            msg.id,
            msg.channel_id,
            extra={"context": {"row_id": row_id, "source": msg.source.value}},
        )
        return row_id

    async def get_message(self, row_id: int) -> Message | None:
        """Get a message by row id."""
        row = await self._fetchone(
            f"SELECT {MESSAGE_COLUMNS} FROM messages WHERE row_id = ?",
            (row_id,),
        )
        if not row:
            return None
        return _row_to_message(row)

    async def get_recent_messages(self, channel_id: str, limit: int) -> list[Message]:
        """Get the most recent messages of a channel, newest first."""
        rows = await self._fetchall(
            f"""
            SELECT {MESSAGE_COLUMNS}
            FROM messages
            WHERE channel_id = ?
            ORDER BY created_at DESC, row_id DESC
            LIMIT ?
            """,
            (channel_id, limit),
        )
        return [_row_to_message(row) for row in rows]

    async def channel_messages(self, channel_id: str, limit: int) -> list[tuple[str, str]]:
        """Get (source_id, content) of the most recent messages, newest first."""
        rows = await self._fetchall(
            """
            SELECT source_id, content
            FROM messages
            WHERE channel_id = ?
            ORDER BY created_at DESC, row_id DESC
            LIMIT ?
            """,
            (channel_id, limit),
        )
        return [(row[0], row[1]) for row in rows]

    # Documents
    async def add_documents(self, documents: Iterable[Document]) -> None:
        """Embed and persist a batch of documents.

        Re-adding a document id replaces its content and vector. A failed
        embedding call leaves both tables untouched.
        """
        documents = list(documents)
        if not documents:
            return

        self._require_conn()
        logger.info("Adding %s documents to knowledge store", len(documents))
        vectors = await self._embed([doc.content for doc in documents])

        async with self._transaction() as conn:
            for doc, vector in zip(documents, vectors):
                cursor = await conn.execute(
                    """
                    INSERT INTO documents (id, source_id, content, created_at)
                    VALUES (?, ?, ?, ?)
                    ON CONFLICT (id) DO UPDATE SET
                        source_id = excluded.source_id,
                        content = excluded.content
                    RETURNING row_id
                    """,
                    (doc.id, doc.source_id, doc.content, _to_db_ts(doc.created_at)),
                )
                [row] = await cursor.fetchall()
                await conn.execute(
                    """
                    INSERT OR REPLACE INTO document_embeddings (document_row_id, embedding)
                    VALUES (?, ?)
                    """,
                    (row[0], to_blob(vector)),
                )

        logger.info("Successfully added %s documents", len(documents))

    async def get_document(self, document_id: str) -> Document | None:
        """Get a document by id."""
        row = await self._fetchone(
            "SELECT id, source_id, content, created_at FROM documents WHERE id = ?",
            (document_id,),
        )
        if not row:
            return None
        return Document(
            id=row[0],
            source_id=row[1],
            content=row[2],
            created_at=_from_db_ts(row[3]),
        )

    async def _document_vectors(self) -> list[VectorRow]:
        rows = await self._fetchall(
            """
            SELECT d.id, d.content, e.embedding
            FROM documents d
            JOIN document_embeddings e ON e.document_row_id = d.row_id
            ORDER BY d.row_id
            """
        )
        return [(row[0], row[1], row[2]) for row in rows]

    async def _message_vectors(self) -> list[VectorRow]:
        rows = await self._fetchall(
            """
            SELECT m.id, m.content, e.embedding
            FROM messages m
            JOIN message_embeddings e ON e.message_row_id = m.row_id
            ORDER BY m.row_id
            """
        )
        return [(row[0], row[1], row[2]) for row in rows]

    def document_index(self) -> VectorIndex:
        """Nearest-neighbour search over documents."""
        return VectorIndex(self._embedder, self._document_vectors)

    def message_index(self) -> VectorIndex:
        """Nearest-neighbour search over messages."""
        return VectorIndex(self._embedder, self._message_vectors)

    # Registry
    async def create_channel(
        self,
        channel_id: str,
        channel_type: ChannelType,
        name: str | None = None,
        source: Source | None = None,
    ) -> int:
        """Insert or update a channel by channel_id. Returns the row id.

        An existing row keeps its name unless a non-null name is supplied.
        """
        now = _utcnow()
        async with self._transaction() as conn:
            cursor = await conn.execute(
                """
                INSERT INTO channels (channel_id, channel_type, source, name, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT (channel_id) DO UPDATE SET
                    name = COALESCE(excluded.name, channels.name),
                    source = COALESCE(excluded.source, channels.source),
                    updated_at = excluded.updated_at
                RETURNING id
                """,
                (
                    channel_id,
                    channel_type.value,
                    source.value if source else None,
                    name,
                    now,
                    now,
                ),
            )
            [row] = await cursor.fetchall()
        return row[0]

    async def get_channel(self, row_id: int) -> Channel | None:
        """Get a channel by row id."""
        row = await self._fetchone(
            f"SELECT {CHANNEL_COLUMNS} FROM channels WHERE id = ?",
            (row_id,),
        )
        if not row:
            return None
        return _row_to_channel(row)

    async def get_channels_by_source(self, source: Source) -> list[Channel]:
        """Get all channels of a source."""
        rows = await self._fetchall(
            f"SELECT {CHANNEL_COLUMNS} FROM channels WHERE source = ? ORDER BY id",
            (source.value,),
        )
        return [_row_to_channel(row) for row in rows]

    async def create_user(
        self, name: str, source: Source, source_id: str | None = None
    ) -> int:
        """Insert or update an account by (source_id, source). Returns the row id.

        source_id defaults to the name for sources without stable user ids.
        """
        now = _utcnow()
        async with self._transaction() as conn:
            cursor = await conn.execute(
                """
                INSERT INTO accounts (name, source_id, source, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT (source_id, source) DO UPDATE SET
                    name = excluded.name,
                    updated_at = excluded.updated_at
                RETURNING id
                """,
                (name, source_id or name, source.value, now, now),
            )
            [row] = await cursor.fetchall()
        return row[0]

    async def get_user_by_source(self, source: Source) -> Account | None:
        """Get the first account registered for a source."""
        row = await self._fetchone(
            f"SELECT {ACCOUNT_COLUMNS} FROM accounts WHERE source = ? ORDER BY id LIMIT 1",
            (source.value,),
        )
        if not row:
            return None
        return _row_to_account(row)

    async def get_user(self, source_id: str, source: Source) -> Account | None:
        """Get an account by its natural key."""
        row = await self._fetchone(
            f"SELECT {ACCOUNT_COLUMNS} FROM accounts WHERE source_id = ? AND source = ?",
            (source_id, source.value),
        )
        if not row:
            return None
        return _row_to_account(row)
