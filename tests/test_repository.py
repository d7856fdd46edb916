"""Tests for the in-memory match repository."""

import pytest

from partyengine.engine.repository import InMemoryMatchRepository
from partyengine.errors import MatchNotFoundError, StaleStateError
from partyengine.models import (
    MatchConfig,
    MatchState,
    RoleSnapshot,
    RoundSnapshot,
    ScoreSnapshot,
    TurnSnapshot,
)


def new_state(match_id: str = "m1") -> MatchState:
    return MatchState(
        match_id=match_id,
        game_type="quiz",
        settings=MatchConfig(game_type="quiz"),
        players={"a"},
        round=RoundSnapshot(total_rounds=1),
        turn=TurnSnapshot(turn_order=["a"]),
        roles=RoleSnapshot(player_roles={"a": "player"}),
        scores=ScoreSnapshot(scores={"a": 0}),
    )


class TestInMemoryMatchRepository:
    """Tests for load/save semantics."""

    @pytest.mark.asyncio
    async def test_load_missing(self):
        """Test loading an unknown match raises MatchNotFoundError."""
        repo = InMemoryMatchRepository()
        with pytest.raises(MatchNotFoundError):
            await repo.load("nope")

    @pytest.mark.asyncio
    async def test_save_bumps_version(self):
        """Test every save increments the version."""
        repo = InMemoryMatchRepository()
        saved = await repo.save("m1", new_state(), expected_version=0)
        assert saved.version == 1
        loaded = await repo.load("m1")
        assert loaded.version == 1
        saved = await repo.save("m1", loaded, expected_version=1)
        assert saved.version == 2

    @pytest.mark.asyncio
    async def test_stale_save_rejected(self):
        """Test a save against a moved version raises StaleStateError."""
        repo = InMemoryMatchRepository()
        await repo.save("m1", new_state(), expected_version=0)
        first = await repo.load("m1")
        second = await repo.load("m1")
        await repo.save("m1", first, expected_version=first.version)
        with pytest.raises(StaleStateError) as exc_info:
            await repo.save("m1", second, expected_version=second.version)
        assert exc_info.value.expected == 1
        assert exc_info.value.actual == 2

    @pytest.mark.asyncio
    async def test_create_twice_rejected(self):
        """Test expected_version=0 only succeeds for a new match."""
        repo = InMemoryMatchRepository()
        await repo.save("m1", new_state(), expected_version=0)
        with pytest.raises(StaleStateError):
            await repo.save("m1", new_state(), expected_version=0)

    @pytest.mark.asyncio
    async def test_unconditional_save(self):
        """Test expected_version=None is last-writer-wins."""
        repo = InMemoryMatchRepository()
        await repo.save("m1", new_state())
        await repo.save("m1", new_state())
        assert repo.current_version("m1") == 2

    @pytest.mark.asyncio
    async def test_loaded_state_is_a_copy(self):
        """Test mutating a loaded state does not touch the store."""
        repo = InMemoryMatchRepository()
        await repo.save("m1", new_state(), expected_version=0)
        loaded = await repo.load("m1")
        loaded.players.add("intruder")
        assert (await repo.load("m1")).players == {"a"}

    @pytest.mark.asyncio
    async def test_exists_delete_and_ids(self):
        """Test bookkeeping helpers."""
        repo = InMemoryMatchRepository()
        await repo.save("m2", new_state("m2"))
        await repo.save("m1", new_state("m1"))
        assert await repo.exists("m1") is True
        assert repo.match_ids() == ["m1", "m2"]
        assert await repo.delete("m1") is True
        assert await repo.delete("m1") is False
        assert await repo.exists("m1") is False
