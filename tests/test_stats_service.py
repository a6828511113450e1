"""
Tests for stats reconciliation.

Stats are always rebuilt from the visible matches on read, so the tests
mostly check the numbers after ``get_stats`` rather than the stored rows.
"""
import pytest

from matchledger.models import MatchRecord, NewMatch, PlayerStatsRecord
from matchledger.services import fold_matches

from conftest import ALICE, BOB, CAROL


def make_match(match_id, p1, p2, s1, s2) -> MatchRecord:
    return MatchRecord(id=match_id, player1=p1, player2=p2, player1_score=s1, player2_score=s2)


def counters(stats: PlayerStatsRecord) -> tuple:
    return (stats.wins, stats.losses, stats.draws, stats.goals_for, stats.goals_against, stats.total_games)


class TestFoldMatches:
    """Pure fold over a player's matches."""

    def test_no_matches_gives_zeros(self):
        assert counters(fold_matches(ALICE, [])) == (0, 0, 0, 0, 0, 0)

    def test_win_and_draw_from_both_sides(self):
        matches = [
            make_match(1, ALICE, BOB, 2, 2),
            make_match(2, CAROL, ALICE, 0, 5),
        ]
        stats = fold_matches(ALICE, matches)
        assert counters(stats) == (1, 0, 1, 7, 2, 2)

    def test_ignores_matches_of_other_players(self):
        matches = [make_match(1, BOB, CAROL, 3, 0)]
        assert fold_matches(ALICE, matches).total_games == 0

    def test_total_games_is_sum_of_results(self):
        matches = [
            make_match(1, ALICE, BOB, 1, 0),
            make_match(2, ALICE, BOB, 0, 1),
            make_match(3, BOB, ALICE, 4, 4),
            make_match(4, ALICE, CAROL, 9, 3),
        ]
        stats = fold_matches(ALICE, matches)
        assert stats.total_games == stats.wins + stats.losses + stats.draws == 4

    def test_self_match_counts_once(self):
        stats = fold_matches(ALICE, [make_match(1, ALICE, ALICE, 1, 1)])
        assert counters(stats) == (0, 0, 1, 1, 1, 1)


class TestGetStats:
    """Recompute-on-read against the store."""

    @pytest.mark.asyncio
    async def test_recompute_overwrites_stale_row(self, memory_store, stats_service):
        await memory_store.upsert_stats(PlayerStatsRecord(user_id=ALICE, wins=40, total_games=40))
        await memory_store.insert_match(NewMatch(player1=ALICE, player2=BOB, player1_score=3, player2_score=1))

        stats = await stats_service.get_stats(ALICE)

        assert counters(stats) == (1, 0, 0, 3, 1, 1)
        assert (await memory_store.get_stats(ALICE)) == stats

    @pytest.mark.asyncio
    async def test_win_for_player1_is_loss_for_player2(self, match_service, stats_service):
        await match_service.create_match(ALICE, BOB, 3, 1)

        alice = await stats_service.get_stats(ALICE)
        bob = await stats_service.get_stats(BOB)

        assert (alice.wins, alice.losses) == (1, 0)
        assert (bob.wins, bob.losses) == (0, 1)
        assert (bob.goals_for, bob.goals_against) == (1, 3)

    @pytest.mark.asyncio
    async def test_mixed_results(self, match_service, stats_service):
        await match_service.create_match(ALICE, BOB, 2, 2)
        await match_service.create_match(ALICE, CAROL, 5, 0)

        stats = await stats_service.get_stats(ALICE)

        assert counters(stats) == (1, 0, 1, 7, 2, 2)

    @pytest.mark.asyncio
    async def test_tombstoned_matches_are_not_counted(self, memory_store, tombstones, stats_service):
        match = await memory_store.insert_match(
            NewMatch(player1=ALICE, player2=BOB, player1_score=3, player2_score=1)
        )
        tombstones.add(match.id)

        stats = await stats_service.get_stats(ALICE)

        assert stats.total_games == 0

    @pytest.mark.asyncio
    async def test_read_failure_returns_stored_row(self, memory_store, stats_service, monkeypatch):
        await memory_store.upsert_stats(PlayerStatsRecord(user_id=ALICE, wins=2, total_games=2))

        async def broken(*args, **kwargs):
            raise RuntimeError("backend unavailable")

        monkeypatch.setattr(memory_store, "list_matches_for_player", broken)

        stats = await stats_service.get_stats(ALICE)

        assert (stats.wins, stats.total_games) == (2, 2)

    @pytest.mark.asyncio
    async def test_read_failure_without_row_returns_zeros(self, memory_store, stats_service, monkeypatch):
        async def broken(*args, **kwargs):
            raise RuntimeError("backend unavailable")

        monkeypatch.setattr(memory_store, "list_matches_for_player", broken)

        stats = await stats_service.get_stats(BOB)

        assert counters(stats) == (0, 0, 0, 0, 0, 0)


class TestIncrementalUpdates:
    """apply_match / reverse_match on the stored rows."""

    @pytest.mark.asyncio
    async def test_apply_match_increments_stored_rows(self, memory_store, stats_service):
        await memory_store.upsert_stats(PlayerStatsRecord(user_id=ALICE, wins=1, goals_for=2, total_games=1))

        await stats_service.apply_match(make_match(7, ALICE, BOB, 0, 4))

        alice = await memory_store.get_stats(ALICE)
        bob = await memory_store.get_stats(BOB)
        assert counters(alice) == (1, 1, 0, 2, 4, 2)
        assert counters(bob) == (1, 0, 0, 4, 0, 1)

    @pytest.mark.asyncio
    async def test_reverse_match_clamps_and_recomputes(self, memory_store, stats_service):
        # Stored row says nothing about the match; reversing must not go negative
        match = make_match(9, ALICE, BOB, 3, 1)

        results = await stats_service.reverse_match(match)

        assert [s.user_id for s in results] == [ALICE, BOB]
        for stats in results:
            assert counters(stats) == (0, 0, 0, 0, 0, 0)

    @pytest.mark.asyncio
    async def test_self_match_applied_once(self, memory_store, stats_service):
        await stats_service.apply_match(make_match(3, ALICE, ALICE, 2, 2))

        stats = await memory_store.get_stats(ALICE)
        assert stats.total_games == 1


class TestLeaderboard:

    @pytest.mark.asyncio
    async def test_orders_by_wins_then_losses(self, match_service, stats_service, user_service):
        await user_service.update_display_name(BOB, "Bobby")
        await match_service.create_match(ALICE, BOB, 3, 0)
        await match_service.create_match(BOB, CAROL, 2, 1)
        await match_service.create_match(ALICE, CAROL, 1, 0)

        board = await stats_service.leaderboard()

        assert [e.user_id for e in board] == [ALICE, BOB, CAROL]
        assert [e.rank for e in board] == [1, 2, 3]
        assert board[1].display_name == "Bobby"
        assert board[2].display_name == f"{CAROL[:6]}...{CAROL[-4:]}"

    @pytest.mark.asyncio
    async def test_includes_users_without_matches(self, stats_service, user_service):
        await user_service.ensure_user(CAROL)

        board = await stats_service.leaderboard()

        assert [e.user_id for e in board] == [CAROL]
        assert board[0].total_games == 0

    @pytest.mark.asyncio
    async def test_limit(self, match_service, stats_service):
        await match_service.create_match(ALICE, BOB, 3, 0)
        await match_service.create_match(ALICE, CAROL, 3, 0)

        board = await stats_service.leaderboard(limit=1)

        assert len(board) == 1
        assert board[0].user_id == ALICE

    @pytest.mark.asyncio
    async def test_refresh_all_repairs_every_player(self, memory_store, match_service, stats_service):
        await match_service.create_match(ALICE, BOB, 1, 0)
        await memory_store.upsert_stats(PlayerStatsRecord(user_id=BOB, wins=9, total_games=9))

        refreshed = await stats_service.refresh_all()

        assert refreshed == 2
        bob = await memory_store.get_stats(BOB)
        assert (bob.wins, bob.losses, bob.total_games) == (0, 1, 1)
