"""Tests for KnowledgeStore."""

import asyncio
import sqlite3
from datetime import datetime, timezone

import pytest

from rina.errors import ConversionError, EmbeddingError, StorageError
from rina.knowledge import KnowledgeStore
from rina.models import ChannelType, Document, Source


async def count_rows(store, table: str) -> int:
    async with store._conn.execute(f"SELECT COUNT(*) FROM {table}") as cursor:
        row = await cursor.fetchone()
    return row[0]


class TestKnowledgeStoreInit:
    """Tests for KnowledgeStore initialization."""

    async def test_init_creates_tables(self, knowledge):
        """Test that init creates all tables."""
        async with knowledge._conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table'"
        ) as cursor:
            tables = [row[0] for row in await cursor.fetchall()]
            assert "accounts" in tables
            assert "channels" in tables
            assert "messages" in tables
            assert "message_embeddings" in tables
            assert "documents" in tables
            assert "document_embeddings" in tables

    async def test_use_before_init_raises(self, fake_embedder, make_message):
        """Test that using the store before init raises."""
        store = KnowledgeStore(fake_embedder, ":memory:")

        with pytest.raises(RuntimeError, match="not initialized"):
            await store.create_message(make_message("hello"))

        with pytest.raises(RuntimeError, match="not initialized"):
            await store.get_message(1)

    async def test_close_is_idempotent(self, fake_embedder):
        """Test that close can be called twice."""
        store = KnowledgeStore(fake_embedder, ":memory:")
        await store.init()
        await store.close()
        await store.close()
        assert store._conn is None


class TestKnowledgeStoreMessages:
    """Tests for message persistence."""

    async def test_create_message_round_trip(self, knowledge, make_message):
        """Test that every field survives create_message/get_message."""
        msg = make_message(
            "hello there",
            source=Source.TELEGRAM,
            channel_type=ChannelType.THREAD,
            role="user",
            created_at=datetime(2024, 1, 2, 3, 4, 5, 123456, tzinfo=timezone.utc),
        )

        row_id = await knowledge.create_message(msg)
        retrieved = await knowledge.get_message(row_id)

        assert retrieved == msg
        assert retrieved.source is Source.TELEGRAM
        assert retrieved.channel_type is ChannelType.THREAD

    async def test_naive_timestamp_round_trip(self, knowledge, make_message):
        """Test that a message with a naive timestamp reads back equal."""
        msg = make_message("hello there", created_at=datetime(2024, 1, 2, 3, 4, 5))

        row_id = await knowledge.create_message(msg)

        assert await knowledge.get_message(row_id) == msg

    async def test_create_message_embeds_content(self, knowledge, fake_embedder, make_message):
        """Test that only the content is sent to the embedder."""
        await knowledge.create_message(make_message("python is fun"))

        assert fake_embedder.calls == [["python is fun"]]
        assert await count_rows(knowledge, "message_embeddings") == 1

    async def test_create_message_upserts_channel(self, knowledge, make_message):
        """Test that create_message registers the channel."""
        await knowledge.create_message(make_message("first", channel_id="general"))
        await knowledge.create_message(make_message("second", channel_id="general"))

        channels = await knowledge.get_channels_by_source(Source.DISCORD)
        assert len(channels) == 1
        assert channels[0].channel_id == "general"
        assert channels[0].channel_type is ChannelType.TEXT
        assert channels[0].name is None

    async def test_create_message_keeps_existing_channel_name(self, knowledge, make_message):
        """Test that message ingestion does not clear a channel name."""
        row_id = await knowledge.create_channel("general", ChannelType.TEXT, name="General")
        await knowledge.create_message(make_message("hi all", channel_id="general"))

        channel = await knowledge.get_channel(row_id)
        assert channel.name == "General"
        assert channel.source is Source.DISCORD

    async def test_create_message_requires_ids(self, knowledge, make_message):
        """Test that empty id or channel_id is rejected."""
        with pytest.raises(ValueError):
            await knowledge.create_message(make_message("hello", id=""))

        with pytest.raises(ValueError):
            await knowledge.create_message(make_message("hello", channel_id=""))

        assert await count_rows(knowledge, "messages") == 0

    async def test_embedding_failure_writes_nothing(
        self, knowledge, fake_embedder, make_message
    ):
        """Test that a failed embedding leaves no row, vector or channel."""
        fake_embedder.fail = True

        with pytest.raises(EmbeddingError):
            await knowledge.create_message(make_message("hello world"))

        assert await count_rows(knowledge, "messages") == 0
        assert await count_rows(knowledge, "message_embeddings") == 0
        assert await count_rows(knowledge, "channels") == 0

    async def test_duplicate_message_rolls_back(self, knowledge, make_message):
        """Test that a failed insert rolls back the whole transaction."""
        await knowledge.create_message(make_message("hello", id="dup", channel_id="a"))

        with pytest.raises(StorageError):
            await knowledge.create_message(make_message("again", id="dup", channel_id="b"))

        assert await count_rows(knowledge, "messages") == 1
        assert await count_rows(knowledge, "message_embeddings") == 1
        # Channel "b" was upserted inside the failed transaction
        assert await count_rows(knowledge, "channels") == 1

    async def test_same_id_different_source_allowed(self, knowledge, make_message):
        """Test that ids are unique per source, not globally."""
        await knowledge.create_message(make_message("a", id="42", source=Source.DISCORD))
        await knowledge.create_message(make_message("b", id="42", source=Source.TELEGRAM))

        assert await count_rows(knowledge, "messages") == 2

    async def test_get_nonexistent_message(self, knowledge):
        """Test retrieving nonexistent message returns None."""
        assert await knowledge.get_message(999) is None

    async def test_channel_messages_newest_first(self, knowledge, make_message):
        """Test that channel_messages returns (source_id, content), newest first."""
        await knowledge.create_message(make_message("one", source_id="alice"))
        await knowledge.create_message(make_message("two", source_id="bob"))
        await knowledge.create_message(make_message("three", source_id="alice"))
        await knowledge.create_message(make_message("elsewhere", channel_id="other"))

        history = await knowledge.channel_messages("chan1", 10)

        assert history == [("alice", "three"), ("bob", "two"), ("alice", "one")]

    async def test_channel_messages_limit(self, knowledge, make_message):
        """Test that channel_messages keeps only the most recent messages."""
        for i in range(5):
            await knowledge.create_message(make_message(f"message {i}"))

        history = await knowledge.channel_messages("chan1", 2)

        assert [content for _, content in history] == ["message 4", "message 3"]

    async def test_ordering_uses_created_at_not_arrival(self, knowledge, make_message):
        """Test that a late-arriving older message sorts by its timestamp."""
        newer = make_message("newer")
        older = make_message(
            "older", created_at=datetime(2020, 1, 1, tzinfo=timezone.utc)
        )

        await knowledge.create_message(newer)
        await knowledge.create_message(older)

        history = await knowledge.channel_messages("chan1", 10)
        assert [content for _, content in history] == ["newer", "older"]

    async def test_get_recent_messages(self, knowledge, make_message):
        """Test that get_recent_messages returns full messages, newest first."""
        first = make_message("first")
        second = make_message("second")
        await knowledge.create_message(first)
        await knowledge.create_message(second)

        messages = await knowledge.get_recent_messages("chan1", 10)

        assert messages == [second, first]

    async def test_corrupted_enum_raises_conversion_error(self, knowledge):
        """Test that an unknown stored source is reported as a storage error."""
        await knowledge._conn.execute(
            """
            INSERT INTO messages
            (id, source, source_id, channel_type, channel_id, account_id, role, content, created_at)
            VALUES ('m1', 'myspace', 'u', 'text', 'c', 'u', 'user', 'hi', '2024-01-01T00:00:00+00:00')
            """
        )

        with pytest.raises(ConversionError):
            await knowledge.get_recent_messages("c", 10)

        with pytest.raises(StorageError):
            await knowledge.get_recent_messages("c", 10)

    async def test_stored_enum_decoding_is_case_insensitive(self, knowledge):
        """Test that enum strings are decoded regardless of case."""
        await knowledge._conn.execute(
            """
            INSERT INTO messages
            (id, source, source_id, channel_type, channel_id, account_id, role, content, created_at)
            VALUES ('m1', 'Discord', 'u', 'DIRECT_MESSAGE', 'c', 'u', 'user', 'hi', '2024-01-01T00:00:00+00:00')
            """
        )

        [message] = await knowledge.get_recent_messages("c", 10)
        assert message.source is Source.DISCORD
        assert message.channel_type is ChannelType.DIRECT_MESSAGE


class TestKnowledgeStoreChannels:
    """Tests for the channel registry."""

    async def test_create_channel_returns_row_id(self, knowledge):
        """Test that create_channel returns a retrievable row id."""
        row_id = await knowledge.create_channel(
            "c1", ChannelType.TEXT, name="general", source=Source.DISCORD
        )

        channel = await knowledge.get_channel(row_id)
        assert channel.channel_id == "c1"
        assert channel.name == "general"
        assert channel.source is Source.DISCORD

    async def test_create_channel_is_idempotent(self, knowledge):
        """Test that repeated upserts keep one row with the latest non-null name."""
        first_id = await knowledge.create_channel("c1", ChannelType.TEXT, name="general")
        first = await knowledge.get_channel(first_id)

        second_id = await knowledge.create_channel("c1", ChannelType.TEXT, name="random")
        third_id = await knowledge.create_channel("c1", ChannelType.TEXT, name=None)

        assert first_id == second_id == third_id
        assert await count_rows(knowledge, "channels") == 1

        channel = await knowledge.get_channel(first_id)
        assert channel.name == "random"
        assert channel.created_at == first.created_at
        assert channel.updated_at >= first.updated_at

    async def test_get_nonexistent_channel(self, knowledge):
        """Test retrieving nonexistent channel returns None."""
        assert await knowledge.get_channel(123) is None

    async def test_get_channels_by_source(self, knowledge):
        """Test filtering channels by source."""
        await knowledge.create_channel("d1", ChannelType.TEXT, source=Source.DISCORD)
        await knowledge.create_channel("t1", ChannelType.TEXT, source=Source.TELEGRAM)
        await knowledge.create_channel("d2", ChannelType.VOICE, source=Source.DISCORD)

        channels = await knowledge.get_channels_by_source(Source.DISCORD)

        assert [c.channel_id for c in channels] == ["d1", "d2"]


class TestKnowledgeStoreAccounts:
    """Tests for the account registry."""

    async def test_create_user_is_idempotent(self, knowledge):
        """Test that the same (source_id, source) maps to one row."""
        first_id = await knowledge.create_user("alice", Source.DISCORD, source_id="111")
        second_id = await knowledge.create_user("alice_renamed", Source.DISCORD, source_id="111")

        assert first_id == second_id
        assert await count_rows(knowledge, "accounts") == 1

        account = await knowledge.get_user("111", Source.DISCORD)
        assert account.name == "alice_renamed"

    async def test_same_name_on_different_sources(self, knowledge):
        """Test that equal display names on two platforms stay separate."""
        discord_id = await knowledge.create_user("alice", Source.DISCORD)
        telegram_id = await knowledge.create_user("alice", Source.TELEGRAM)

        assert discord_id != telegram_id
        assert await count_rows(knowledge, "accounts") == 2

    async def test_source_id_defaults_to_name(self, knowledge):
        """Test that source_id falls back to the name."""
        await knowledge.create_user("bob", Source.X)

        account = await knowledge.get_user("bob", Source.X)
        assert account is not None
        assert account.source is Source.X

    async def test_get_user_by_source(self, knowledge):
        """Test retrieving the first account of a source."""
        await knowledge.create_user("alice", Source.DISCORD)
        await knowledge.create_user("bob", Source.DISCORD)

        account = await knowledge.get_user_by_source(Source.DISCORD)
        assert account.name == "alice"

        assert await knowledge.get_user_by_source(Source.GITHUB) is None


class TestKnowledgeStoreDocuments:
    """Tests for document ingestion."""

    async def test_add_documents(self, knowledge, fake_embedder):
        """Test that documents are embedded in one batch and stored."""
        await knowledge.add_documents(
            [
                Document(id="a.md", source_id="repo", content="cats"),
                Document(id="b.md", source_id="repo", content="dogs"),
            ]
        )

        assert fake_embedder.calls == [["cats", "dogs"]]
        assert await count_rows(knowledge, "documents") == 2
        assert await count_rows(knowledge, "document_embeddings") == 2

        document = await knowledge.get_document("a.md")
        assert document.content == "cats"
        assert document.source_id == "repo"

    async def test_add_documents_replaces_existing(self, knowledge):
        """Test that re-adding a document id replaces content and vector."""
        await knowledge.add_documents([Document(id="a.md", source_id="repo", content="old")])
        await knowledge.add_documents([Document(id="a.md", source_id="repo", content="new")])

        assert await count_rows(knowledge, "documents") == 1
        assert await count_rows(knowledge, "document_embeddings") == 1
        assert (await knowledge.get_document("a.md")).content == "new"

    async def test_add_documents_failure_leaves_index_unchanged(
        self, knowledge, fake_embedder
    ):
        """Test that a failed batch inserts nothing."""
        fake_embedder.fail = True

        with pytest.raises(EmbeddingError):
            await knowledge.add_documents(
                [Document(id="a.md", source_id="repo", content="cats")]
            )

        assert await count_rows(knowledge, "documents") == 0

    async def test_add_documents_vector_count_mismatch(self, knowledge, fake_embedder):
        """Test that a short embedding response is rejected."""
        fake_embedder.short = True

        with pytest.raises(EmbeddingError):
            await knowledge.add_documents(
                [
                    Document(id="a.md", source_id="repo", content="cats"),
                    Document(id="b.md", source_id="repo", content="dogs"),
                ]
            )

        assert await count_rows(knowledge, "documents") == 0

    async def test_add_empty_batch(self, knowledge, fake_embedder):
        """Test that an empty batch is a no-op."""
        await knowledge.add_documents([])
        assert fake_embedder.calls == []


class TestKnowledgeStoreTransactions:
    """Tests for transaction cleanup on the shared connection."""

    async def test_cancelled_write_releases_transaction(
        self, knowledge, make_message, monkeypatch
    ):
        """Test that a write cancelled after BEGIN does not block later writes."""
        conn = knowledge._conn
        execute = conn.execute
        began = asyncio.Event()

        async def stalled_execute(sql, *args, **kwargs):
            result = await execute(sql, *args, **kwargs)
            if sql == "BEGIN":
                began.set()
                await asyncio.sleep(3600)
            return result

        monkeypatch.setattr(conn, "execute", stalled_execute)
        task = asyncio.create_task(knowledge.create_message(make_message("first")))
        await began.wait()
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

        monkeypatch.undo()
        row_id = await knowledge.create_message(make_message("second"))

        assert (await knowledge.get_message(row_id)).content == "second"
        assert await count_rows(knowledge, "messages") == 1

    async def test_failed_rollback_keeps_original_error(self, knowledge, monkeypatch):
        """Test that a failing ROLLBACK does not replace the error being raised."""
        conn = knowledge._conn
        execute = conn.execute

        async def broken_rollback(sql, *args, **kwargs):
            if sql == "ROLLBACK":
                raise sqlite3.OperationalError("disk I/O error")
            return await execute(sql, *args, **kwargs)

        monkeypatch.setattr(conn, "execute", broken_rollback)

        with pytest.raises(ValueError, match="bad row"):
            async with knowledge._transaction():
                raise ValueError("bad row")

        monkeypatch.undo()
        await conn.execute("ROLLBACK")

    async def test_sqlite_error_rolls_back_and_wraps(self, knowledge):
        """Test that SQL failures inside a transaction surface as StorageError."""
        with pytest.raises(StorageError, match="run"):
            async with knowledge._transaction() as conn:
                await conn.execute(
                    "INSERT INTO documents (id, source_id, content, created_at) "
                    "VALUES ('d', 'kb', 'x', 'now')"
                )
                await conn.execute("SELECT * FROM no_such_table")

        assert await count_rows(knowledge, "documents") == 0
