import datetime

import pytest
import pytest_asyncio

from rostercord.database.database import Database
from rostercord.datatypes.discord_datatypes import GuildID, UserID
from rostercord.datatypes.roster_datatypes import RosterEntry
from rostercord.repositories.roster_repo import RosterRepo


GUILD = GuildID(10)
T0 = datetime.datetime(2026, 5, 4, 18, 30, tzinfo=datetime.timezone.utc)
FOUR_HOURS = datetime.timedelta(hours=4)


@pytest_asyncio.fixture
async def database(tmp_path):
    db = Database("shifts", db_path=tmp_path / "repo.db")
    assert await db.initialize() is True
    yield db
    await db.shutdown()


@pytest.fixture
def repo() -> RosterRepo:
    return RosterRepo("shifts")


async def _insert(database, repo, user_id, start, guild_id=GUILD):
    async with database.connection.transaction() as conn:
        return await repo.insert(conn, RosterEntry.start(UserID(user_id), guild_id, f"user{user_id}", start, FOUR_HOURS))


@pytest.mark.asyncio
async def test_insert_round_trips_timestamps_and_ids(database, repo):
    inserted = await _insert(database, repo, 77, T0)

    async with database.connection.read() as conn:
        rows = await repo.find_for_guild(conn, GUILD)

    assert len(rows) == 1
    stored = rows[0]
    assert stored.entry_id == inserted.entry_id
    assert stored.user_id == UserID(77)
    assert stored.guild_id == GUILD
    assert stored.display_name == "user77"
    assert stored.clock_in_time == T0
    assert stored.clock_out_time == T0 + FOUR_HOURS
    assert stored.clock_in_time.tzinfo is not None


@pytest.mark.asyncio
async def test_user_id_is_stored_as_text(database, repo):
    await _insert(database, repo, 123456789012345678, T0)

    async with database.connection.read() as conn:
        cursor = await conn.execute("SELECT typeof(user_id), typeof(clock_out_time) FROM shifts")
        row = await cursor.fetchone()

    assert tuple(row) == ("text", "integer")


@pytest.mark.asyncio
async def test_active_and_expired_split_at_clock_out_time(database, repo):
    await _insert(database, repo, 1, T0)
    await _insert(database, repo, 2, T0 + datetime.timedelta(hours=1))
    boundary = T0 + FOUR_HOURS

    async with database.connection.read() as conn:
        active = await repo.find_active(conn, GUILD, boundary)
        expired = await repo.find_expired(conn, GUILD, boundary)

    assert [entry.user_id for entry in active] == [UserID(2)]
    assert [entry.user_id for entry in expired] == [UserID(1)]


@pytest.mark.asyncio
async def test_find_active_for_one_user(database, repo):
    await _insert(database, repo, 1, T0)
    await _insert(database, repo, 2, T0)

    async with database.connection.read() as conn:
        only_two = await repo.find_active(conn, GUILD, T0, user_id=UserID(2))

    assert [entry.user_id for entry in only_two] == [UserID(2)]


@pytest.mark.asyncio
async def test_results_come_back_in_insertion_order(database, repo):
    for user_id in (5, 3, 9):
        await _insert(database, repo, user_id, T0)

    async with database.connection.read() as conn:
        active = await repo.find_active(conn, GUILD, T0)

    assert [str(entry.user_id) for entry in active] == ["5", "3", "9"]


@pytest.mark.asyncio
async def test_deletes_report_row_counts(database, repo):
    await _insert(database, repo, 1, T0)
    await _insert(database, repo, 1, T0 + datetime.timedelta(minutes=1))
    await _insert(database, repo, 2, T0 - FOUR_HOURS)
    await _insert(database, repo, 3, T0, guild_id=GuildID(99))

    async with database.connection.transaction() as conn:
        assert await repo.delete_active_for_user(conn, GUILD, UserID(1), T0) == 2
        assert await repo.delete_active_for_user(conn, GUILD, UserID(1), T0) == 0
        assert await repo.delete_expired(conn, GUILD, T0) == 1
        assert await repo.delete_for_guild(conn, GuildID(99)) == 1
        assert await repo.delete_for_guild(conn, GuildID(99)) == 0


@pytest.mark.asyncio
async def test_failed_transaction_rolls_back(database, repo):
    with pytest.raises(RuntimeError):
        async with database.connection.transaction() as conn:
            await repo.insert(conn, RosterEntry.start(UserID(1), GUILD, "x", T0, FOUR_HOURS))
            raise RuntimeError("boom")

    async with database.connection.read() as conn:
        assert await repo.find_for_guild(conn, GUILD) == []
