import asyncio
import csv
import os
import time
from datetime import timedelta
from typing import Any

from gsheet_db import DatabaseOptions, SheetDatabase

from fakes import FakeSheetStore, User, make_users


def connect(store: FakeSheetStore, options: DatabaseOptions) -> SheetDatabase[User]:
    return asyncio.run(SheetDatabase.connect(User, store, "doc", "Users", options))


def get_range_count(store: FakeSheetStore) -> int:
    return len(store.calls_to("get_range"))


def test_connect_creates_directory_and_snapshot(store, cached_options) -> None:
    store.seed([User.header()])
    database = connect(store, cached_options)

    assert database.cache is not None
    assert database.cache.cache_file == cached_options.local_cache_path / "doc_Users.csv"
    with database.cache.cache_file.open(newline="", encoding="utf-8") as f:
        assert list(csv.reader(f)) == [User.header()]


def test_get_all_served_from_memory(store, cached_options) -> None:
    database = connect(store, cached_options)
    before = get_range_count(store)

    asyncio.run(database.get_all())
    asyncio.run(database.search(lambda u: True))

    assert get_range_count(store) == before


def test_use_cache_false_goes_remote(store, cached_options) -> None:
    database = connect(store, cached_options)
    before = get_range_count(store)

    asyncio.run(database.get_all(use_cache=False))

    assert get_range_count(store) == before + 1


def test_mutations_refresh_cache(store, cached_options) -> None:
    database = connect(store, cached_options)
    users = make_users(4)

    async def scenario():
        await database.add_many(users)
        assert await database.get_all() == users

        await database.remove(lambda u: u.id == 1)
        assert [u.id for u in await database.get_all()] == [2, 3, 4]

        replacement = User(id=9, name="nine")
        await database.update(lambda u: u.id == 3, replacement)
        assert [u.id for u in await database.get_all()] == [2, 9, 4]

        await database.add(User(id=10, name="ten"))
        return await database.get_all()

    assert [u.id for u in asyncio.run(scenario())] == [2, 9, 4, 10]


def test_snapshot_used_when_memory_entry_missing(store, cached_options) -> None:
    database = connect(store, cached_options)
    users = make_users(3)
    asyncio.run(database.add_many(users))

    # A second instance over the same cache directory starts with an empty
    # memory entry; its first cached read comes from the snapshot.
    other = SheetDatabase(User, store, "doc", "Users", cached_options)
    before = get_range_count(store)

    assert asyncio.run(other.get_all()) == users
    assert get_range_count(store) == before
    assert other.cache.entry is not None


def test_expired_entry_and_snapshot_go_remote(store, tmp_path) -> None:
    options = DatabaseOptions(
        enable_local_cache=True,
        local_cache_path=tmp_path,
        cache_expiration=timedelta(seconds=30),
        retry_delay=timedelta(0),
    )
    database = connect(store, options)
    store.seed([database.codec.encode(u) for u in make_users(2)])

    stale = time.time() - 60
    database.cache.entry.timestamp = stale
    os.utime(database.cache.cache_file, (stale, stale))
    before = get_range_count(store)

    records = asyncio.run(database.get_all())

    assert [u.id for u in records] == [1, 2]
    assert get_range_count(store) == before + 1


def test_failed_refresh_invalidates_cache(store, cached_options) -> None:
    database = connect(store, cached_options)
    store.failures["get_range"] = 3

    assert asyncio.run(database.add(User(id=1, name="a"))) is True
    assert database.cache.entry is None
    assert not database.cache.cache_file.exists()

    assert [u.id for u in asyncio.run(database.get_all())] == [1]


class SlowReadStore(FakeSheetStore):
    """Holds the next ``slow_reads`` reads for a while after taking their rows."""

    def __init__(self) -> None:
        super().__init__()
        self.slow_reads = 0

    def get_range(self, spreadsheet_id: str, a1_range: str) -> list[list[Any]]:
        rows = super().get_range(spreadsheet_id, a1_range)
        if self.slow_reads:
            self.slow_reads -= 1
            time.sleep(0.3)
        return rows


def test_slow_read_does_not_overwrite_refresh_after_mutation(cached_options) -> None:
    store = SlowReadStore()
    database = connect(store, cached_options)

    async def scenario():
        store.slow_reads = 1
        reader = asyncio.create_task(database.get_all(use_cache=False))
        await asyncio.sleep(0.05)
        await database.add(User(id=1, name="a"))
        return await reader, await database.get_all()

    in_flight, cached = asyncio.run(scenario())

    assert in_flight == []
    assert [u.id for u in cached] == [1]
    with database.cache.cache_file.open(newline="", encoding="utf-8") as f:
        assert len(list(csv.reader(f))) == 2


def test_store_with_outdated_generation_is_discarded(store, cached_options) -> None:
    database = connect(store, cached_options)
    cache = database.cache
    generation = cache.generation

    asyncio.run(cache.store([User(id=2, name="fresh")]))

    assert asyncio.run(cache.store([], if_generation=generation)) is False
    assert [u.id for u in asyncio.run(cache.load())] == [2]


def test_invalidate_outdates_pending_rows(store, cached_options) -> None:
    database = connect(store, cached_options)
    cache = database.cache
    generation = cache.generation

    asyncio.run(cache.invalidate())

    assert asyncio.run(cache.store([User(id=1, name="old")], if_generation=generation)) is False
    assert cache.entry is None
    assert not cache.cache_file.exists()


def test_cached_records_are_copies(store, cached_options) -> None:
    database = connect(store, cached_options)
    asyncio.run(database.add(User(id=1, name="a", tags=["x"])))

    first = asyncio.run(database.get_all())
    first[0].name = "changed"
    first[0].tags.append("y")

    assert asyncio.run(database.get_all()) == [User(id=1, name="a", tags=["x"])]


def test_refresh_cache_picks_up_rows_written_elsewhere(store, cached_options) -> None:
    database = connect(store, cached_options)
    store.seed([database.codec.encode(u) for u in make_users(2)])

    asyncio.run(database.refresh_cache())
    before = get_range_count(store)

    assert [u.id for u in asyncio.run(database.get_all())] == [1, 2]
    assert get_range_count(store) == before
