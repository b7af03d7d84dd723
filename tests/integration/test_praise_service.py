"""
Integration Tests for PraiseService
===================================

Test Coverage
-------------
- 10 XP per praise, three per UTC day
- Quota resets at the next UTC midnight
- Status reads
- Monthly top-praiser board
"""

from datetime import timedelta

import pytest

from questboard.modules.praise.service import day_window, month_window
from questboard.modules.shared.exceptions import DailyLimitError, NotFoundError


@pytest.mark.integration
@pytest.mark.database
class TestGivePraise:
    async def test_praise_grants_xp(self, praise_service, make_actor, recorded_events, now):
        # Arrange
        await make_actor("alice")

        # Act
        result = await praise_service.give_praise("alice", now=now)

        # Assert
        assert result == {
            "xp_earned": 10,
            "total_xp": 10,
            "praises_remaining": 2,
            "leveled_up": False,
            "new_level": 1,
        }
        assert recorded_events == [
            ("praise.given", {"actor_id": "alice", "xp_earned": 10, "praises_remaining": 2})
        ]

    async def test_daily_limit(self, praise_service, progression, make_actor, now):
        # Arrange
        await make_actor("alice")
        for minute in range(3):
            await praise_service.give_praise("alice", now=now + timedelta(minutes=minute))

        # Act & Assert
        with pytest.raises(DailyLimitError) as exc_info:
            await praise_service.give_praise("alice", now=now + timedelta(minutes=5))

        assert exc_info.value.limit == 3
        assert (await progression.get_actor("alice"))["xp"] == 30

    async def test_limit_resets_next_utc_day(self, praise_service, make_actor, now):
        await make_actor("alice")
        for minute in range(3):
            await praise_service.give_praise("alice", now=now + timedelta(minutes=minute))

        start, end = day_window(now)
        result = await praise_service.give_praise("alice", now=end)

        assert result["praises_remaining"] == 2
        assert result["total_xp"] == 40

    async def test_praise_can_level_up(self, praise_service, make_actor, recorded_events, now):
        await make_actor("alice", xp=95)

        result = await praise_service.give_praise("alice", now=now)

        assert result["leveled_up"] is True
        assert ("actor.leveled_up", {
            "actor_id": "alice",
            "old_level": 1,
            "new_level": 2,
            "levels": [2],
            "reason": "praise",
        }) in recorded_events

    async def test_unknown_actor(self, praise_service, now):
        with pytest.raises(NotFoundError):
            await praise_service.give_praise("ghost", now=now)


@pytest.mark.integration
@pytest.mark.database
class TestStatus:
    async def test_status_counts_today(self, praise_service, make_actor, now):
        await make_actor("alice")
        await praise_service.give_praise("alice", now=now - timedelta(days=1))
        await praise_service.give_praise("alice", now=now)

        status = await praise_service.status("alice", now=now)

        assert status == {"total_xp": 20, "praises_today": 1, "praises_remaining": 2}

    async def test_status_unknown_actor(self, praise_service, now):
        with pytest.raises(NotFoundError):
            await praise_service.status("ghost", now=now)


@pytest.mark.integration
@pytest.mark.database
class TestTopPraisers:
    async def test_ranked_by_praises_this_month(self, praise_service, make_actor, now):
        # Arrange
        await make_actor("alice")
        await make_actor("bob")
        await make_actor("carol")
        month_start, _ = month_window(now)

        await praise_service.give_praise("bob", now=now)
        await praise_service.give_praise("bob", now=now + timedelta(minutes=1))
        await praise_service.give_praise("alice", now=now)
        await praise_service.give_praise("carol", now=now)
        # Last month does not count
        for minute in range(3):
            await praise_service.give_praise(
                "carol", now=month_start - timedelta(hours=2, minutes=minute)
            )

        # Act
        board = await praise_service.top_praisers(now=now)

        # Assert
        assert [(row["rank"], row["actor_id"]) for row in board] == [
            (1, "bob"),
            (2, "alice"),
            (3, "carol"),
        ]
        assert board[0]["total_praises"] == 2
        assert board[0]["praise_xp"] == 20
        assert board[2]["total_xp"] == 40

    async def test_empty_month(self, praise_service, now):
        assert await praise_service.top_praisers(now=now) == []


@pytest.mark.unit
class TestWindows:
    def test_day_window(self, now):
        start, end = day_window(now)

        assert (start.hour, start.minute) == (0, 0)
        assert end - start == timedelta(days=1)
        assert start <= now < end

    def test_month_window_december(self, now):
        start, end = month_window(now.replace(month=12, day=31))

        assert (start.year, start.month, start.day) == (now.year, 12, 1)
        assert (end.year, end.month, end.day) == (now.year + 1, 1, 1)
