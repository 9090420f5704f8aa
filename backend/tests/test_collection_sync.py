"""CollectionSyncEngine 测试"""
import re

import pytest
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool

from linkshelf.models import Link, Collection, CollectionLink
from linkshelf.services import collection_sync
from linkshelf.services.collection_sync import CollectionSyncEngine, generate_share_id
from linkshelf.services.exceptions import StoreError
from linkshelf.services.share import ShareResolver


async def add_links(db, owner_id, *urls):
    links = [Link(user_id=owner_id, url=url) for url in urls]
    db.add_all(links)
    await db.commit()
    return [link.id for link in links]


async def member_ids(db, collection_id):
    result = await db.execute(
        select(CollectionLink.link_id).where(CollectionLink.collection_id == collection_id)
    )
    return set(result.scalars().all())


async def collection_count(db, owner_id):
    result = await db.execute(select(func.count()).select_from(Collection).where(Collection.user_id == owner_id))
    return result.scalar()


def test_share_id_format():
    ids = {generate_share_id() for _ in range(50)}
    assert len(ids) == 50
    assert all(re.fullmatch(r"[0-9a-f]{16}", share_id) for share_id in ids)


async def test_first_call_creates_collection_with_all_links(db_session, owner_id):
    link_ids = await add_links(db_session, owner_id, "https://a.com", "https://b.com")

    collection = await CollectionSyncEngine(db_session).ensure_and_sync(owner_id, "Reading list")
    await db_session.commit()

    assert collection.name == "Reading list"
    assert collection.user_id == owner_id
    assert await member_ids(db_session, collection.id) == set(link_ids)


async def test_blank_name_uses_default(db_session, owner_id):
    collection = await CollectionSyncEngine(db_session).ensure_and_sync(owner_id, "   ")
    assert collection.name == "My Collection"


async def test_repeat_calls_are_idempotent(db_session, owner_id):
    link_ids = await add_links(db_session, owner_id, "https://a.com", "https://b.com")
    engine = CollectionSyncEngine(db_session)

    first = await engine.ensure_and_sync(owner_id, "First")
    await db_session.commit()
    first_id, first_share_id = first.id, first.share_id

    second = await engine.ensure_and_sync(owner_id, "Renamed")
    await db_session.commit()

    assert second.id == first_id
    assert second.share_id == first_share_id
    assert second.name == "First"
    assert await member_ids(db_session, first_id) == set(link_ids)
    assert await collection_count(db_session, owner_id) == 1


async def test_resync_drops_deleted_links(db_session, owner_id):
    first_link, second_link = await add_links(db_session, owner_id, "https://a.com", "https://b.com")
    engine = CollectionSyncEngine(db_session)
    collection = await engine.ensure_and_sync(owner_id)
    await db_session.commit()

    link = await db_session.get(Link, first_link)
    await db_session.delete(link)
    await db_session.commit()

    await engine.ensure_and_sync(owner_id)
    await db_session.commit()
    assert await member_ids(db_session, collection.id) == {second_link}


async def test_resync_picks_up_new_links(db_session, owner_id):
    engine = CollectionSyncEngine(db_session)
    collection = await engine.ensure_and_sync(owner_id)
    await db_session.commit()
    assert await member_ids(db_session, collection.id) == set()

    link_ids = await add_links(db_session, owner_id, "https://new.com")
    count = await engine.resync(collection.id, owner_id)
    await db_session.commit()

    assert count == 1
    assert await member_ids(db_session, collection.id) == set(link_ids)


async def test_resync_heals_drifted_membership(db_session, owner_id, other_id):
    link_ids = await add_links(db_session, owner_id, "https://a.com", "https://b.com")
    other_links = await add_links(db_session, other_id, "https://theirs.com")
    engine = CollectionSyncEngine(db_session)
    collection = await engine.ensure_and_sync(owner_id)
    await db_session.commit()

    # 人为制造漂移：删除一条关联，加入一条别人的链接和一条不存在的链接
    await db_session.execute(
        CollectionLink.__table__.delete().where(CollectionLink.link_id == link_ids[0])
    )
    db_session.add(CollectionLink(collection_id=collection.id, link_id=other_links[0]))
    db_session.add(CollectionLink(collection_id=collection.id, link_id="ghost-link"))
    await db_session.commit()

    await engine.resync(collection.id, owner_id)
    await db_session.commit()
    assert await member_ids(db_session, collection.id) == set(link_ids)


async def test_owners_never_share_a_collection(db_session, owner_id, other_id):
    await add_links(db_session, owner_id, "https://a.com")
    engine = CollectionSyncEngine(db_session)

    mine = await engine.ensure_and_sync(owner_id)
    await db_session.commit()
    mine_id, mine_share_id = mine.id, mine.share_id
    theirs = await engine.ensure_and_sync(other_id)
    await db_session.commit()

    assert theirs.id != mine_id
    assert theirs.share_id != mine_share_id
    assert await member_ids(db_session, theirs.id) == set()


async def test_create_retries_on_share_id_collision(db_session, owner_id, other_id, monkeypatch):
    db_session.add(Collection(user_id=other_id, share_id="taken0000000000", name="Theirs"))
    await db_session.commit()

    candidates = iter(["taken0000000000", "fresh0000000000"])
    monkeypatch.setattr(collection_sync, "generate_share_id", lambda: next(candidates))

    collection = await CollectionSyncEngine(db_session).ensure_and_sync(owner_id)
    await db_session.commit()

    assert collection.share_id == "fresh0000000000"
    assert collection.user_id == owner_id


async def test_create_gives_up_after_max_attempts(db_session, owner_id, other_id, monkeypatch):
    db_session.add(Collection(user_id=other_id, share_id="taken0000000000", name="Theirs"))
    await db_session.commit()
    monkeypatch.setattr(collection_sync, "generate_share_id", lambda: "taken0000000000")

    with pytest.raises(StoreError):
        await CollectionSyncEngine(db_session, max_attempts=3).ensure_and_sync(owner_id)

    assert await collection_count(db_session, owner_id) == 0


async def test_zero_attempts_is_respected(db_session, owner_id):
    engine = CollectionSyncEngine(db_session, max_attempts=0)
    assert engine.max_attempts == 0

    with pytest.raises(StoreError):
        await engine.ensure_and_sync(owner_id)
    assert await collection_count(db_session, owner_id) == 0


async def test_concurrent_create_returns_existing_collection(db_session, owner_id):
    engine = CollectionSyncEngine(db_session)
    existing = await engine.create(owner_id, "Winner")
    await db_session.commit()
    existing_id = existing.id

    # 模拟另一个请求在 find_by_owner 之后抢先建好了集合
    again = await engine.create(owner_id, "Loser")

    assert again.id == existing_id
    assert again.name == "Winner"
    assert await collection_count(db_session, owner_id) == 1


async def test_reader_sees_previous_membership_until_resync_commits(db_session, owner_id, tmp_path):
    first, second = await add_links(db_session, owner_id, "https://a.com", "https://b.com")
    engine = CollectionSyncEngine(db_session)
    collection = await engine.ensure_and_sync(owner_id)
    await db_session.commit()
    third, = await add_links(db_session, owner_id, "https://c.com")

    # 另一个连接上的公开读取
    reader_engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'service.db'}", poolclass=NullPool)
    readers = async_sessionmaker(reader_engine, expire_on_commit=False)

    try:
        # 删除 + 插入已执行但未提交
        await engine.resync(collection.id, owner_id)

        async with readers() as reader:
            shared = await ShareResolver(reader).get_by_share_id(collection.share_id)
        assert {link.id for link in shared.links} == {first, second}

        await db_session.commit()

        async with readers() as reader:
            shared = await ShareResolver(reader).get_by_share_id(collection.share_id)
        assert {link.id for link in shared.links} == {first, second, third}
    finally:
        await reader_engine.dispose()
