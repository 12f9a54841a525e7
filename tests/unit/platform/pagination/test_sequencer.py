"""Unit tests for PageSequencer flat and nested traversal."""

import asyncio
import math

import pytest

from pagesync.core.exceptions import (
    InvalidCursorStateError,
    InvalidPageRequestError,
    UpstreamDataShapeError,
    UpstreamTimeoutError,
)
from pagesync.core.shared_models import PagingMode
from pagesync.platform.cursors import CompositeCursor, decode_cursor, encode_cursor, validate_cursor
from pagesync.platform.pagination import FetchResult, PagePlan, PageSequencer
from pagesync.platform.sources.fake import FakeListing, FakeNestedListing

MAX_CALLS = 500


async def _drain_flat(sequencer, fetch_page, page_size, cursor_type=int):
    """Run a full sync, round-tripping every cursor through the wire format."""
    cursor = None
    seen = []
    calls = 0
    while True:
        page = await sequencer.next_page(cursor, page_size, fetch_page)
        calls += 1
        seen.extend(page.objects)
        if page.next_cursor is None:
            return seen, calls
        cursor = decode_cursor(encode_cursor(page.next_cursor), cursor_type)
        validate_cursor(cursor, "users", allows_nesting=False)
        assert calls < MAX_CALLS


async def _drain_nested(sequencer, listing, page_size):
    cursor = None
    pairs = []
    cursors = []
    while True:
        page = await sequencer.next_nested_page(
            cursor, page_size, listing.fetch_outer, listing.fetch_inner, entity_id="members"
        )
        pairs.extend((page.collection_id, obj["id"]) for obj in page.objects)
        cursors.append(page.next_cursor)
        if page.next_cursor is None:
            return pairs, cursors
        cursor = decode_cursor(encode_cursor(page.next_cursor), int)
        validate_cursor(cursor, "members", allows_nesting=True)
        assert len(cursors) < MAX_CALLS


# ---------------------------------------------------------------------------
# Advance rule
# ---------------------------------------------------------------------------


def test_offset_advance_uses_more_flag():
    sequencer = PageSequencer()
    result = FetchResult(objects=[{"id": 1}, {"id": 2}], has_more=True)
    assert sequencer.next_position(4, 10, result) == 6


def test_offset_advance_more_flag_false_ends():
    sequencer = PageSequencer()
    result = FetchResult(objects=[{"id": 1}, {"id": 2}, {"id": 3}], has_more=False)
    assert sequencer.next_position(0, 3, result) is None


def test_offset_advance_without_flag_counts():
    sequencer = PageSequencer()
    full = FetchResult(objects=[{}, {}, {}])
    short = FetchResult(objects=[{}, {}])
    assert sequencer.next_position(None, 3, full) == 3
    assert sequencer.next_position(3, 3, short) is None


def test_offset_advance_empty_page_ends_even_if_vendor_claims_more():
    sequencer = PageSequencer()
    assert sequencer.next_position(5, 3, FetchResult(objects=[], has_more=True)) is None


def test_token_advance_follows_vendor_token():
    sequencer = PageSequencer(mode=PagingMode.TOKEN)
    assert sequencer.next_position(None, 2, FetchResult(objects=[{}], next_cursor="t2")) == "t2"
    assert sequencer.next_position("t2", 2, FetchResult(objects=[{}])) is None
    assert (
        sequencer.next_position(
            "t2", 2, FetchResult(objects=[{}], next_cursor="t3", has_more=False)
        )
        is None
    )


# ---------------------------------------------------------------------------
# Flat traversal
# ---------------------------------------------------------------------------


def test_plan_starts_at_zero_without_cursor():
    assert PageSequencer().plan(None, 25) == PagePlan(position=0, limit=25)


def test_plan_resumes_at_cursor():
    assert PageSequencer().plan(CompositeCursor[int](cursor=50), 25) == PagePlan(
        position=50, limit=25
    )


def test_plan_token_mode_starts_without_token():
    sequencer = PageSequencer(mode=PagingMode.TOKEN)
    assert sequencer.plan(None, 10).position is None


def test_plan_rejects_non_positive_page_size():
    with pytest.raises(InvalidPageRequestError):
        PageSequencer().plan(None, 0)


def test_advance_builds_cursor_only_state():
    sequencer = PageSequencer()
    plan = PagePlan(position=3, limit=3)
    next_cursor = sequencer.advance(plan, FetchResult(objects=[{}, {}, {}], has_more=True))
    assert next_cursor == CompositeCursor[int](cursor=6)
    assert next_cursor.collection_id is None
    assert next_cursor.collection_cursor is None


@pytest.mark.asyncio
async def test_flat_scenario_five_groups_page_size_three(fake_groups):
    sequencer = PageSequencer()

    first = await sequencer.next_page(None, 3, fake_groups.fetch_page)
    assert [g["id"] for g in first.objects] == ["group1", "group2", "group3"]
    assert encode_cursor(first.next_cursor) == encode_cursor(CompositeCursor[int](cursor=3))

    second = await sequencer.next_page(first.next_cursor, 3, fake_groups.fetch_page)
    assert [g["id"] for g in second.objects] == ["group4", "group5"]
    assert second.next_cursor is None
    assert fake_groups.calls == [(0, 3), (3, 3)]


@pytest.mark.asyncio
@pytest.mark.parametrize("total", [1, 2, 5, 9, 10, 17])
@pytest.mark.parametrize("page_size", [1, 2, 3, 10])
async def test_flat_traversal_visits_each_item_once_in_order(total, page_size):
    listing = FakeListing([{"id": i} for i in range(total)])

    seen, calls = await _drain_flat(PageSequencer(), listing.fetch_page, page_size)

    assert [obj["id"] for obj in seen] == list(range(total))
    assert calls == math.ceil(total / page_size)


@pytest.mark.asyncio
async def test_flat_traversal_of_empty_listing_is_one_empty_page():
    listing = FakeListing([])
    seen, calls = await _drain_flat(PageSequencer(), listing.fetch_page, 5)
    assert seen == []
    assert calls == 1


@pytest.mark.asyncio
async def test_flat_traversal_without_more_flag_needs_trailing_empty_page():
    """A full last page cannot be told apart from a middle page by counting."""
    listing = FakeListing([{"id": i} for i in range(6)], report_more=False)

    seen, calls = await _drain_flat(PageSequencer(), listing.fetch_page, 3)

    assert [obj["id"] for obj in seen] == list(range(6))
    assert calls == 3
    assert listing.calls[-1] == (6, 3)


@pytest.mark.asyncio
async def test_flat_token_traversal():
    pages = {None: (["a", "b"], "t2"), "t2": (["c", "d"], "t3"), "t3": (["e"], None)}

    async def fetch_page(position, limit):
        ids, token = pages[position]
        return FetchResult(objects=[{"id": i} for i in ids], next_cursor=token)

    seen, calls = await _drain_flat(
        PageSequencer(mode=PagingMode.TOKEN), fetch_page, 2, cursor_type=str
    )

    assert [obj["id"] for obj in seen] == ["a", "b", "c", "d", "e"]
    assert calls == 3


@pytest.mark.asyncio
async def test_next_page_does_not_mutate_incoming_cursor(fake_groups):
    cursor = CompositeCursor[int](cursor=3)
    page = await PageSequencer().next_page(cursor, 1, fake_groups.fetch_page)
    assert cursor.cursor == 3
    assert page.next_cursor.cursor == 4


# ---------------------------------------------------------------------------
# Nested traversal
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_nested_scenario_two_teams_page_size_one(fake_team_members):
    sequencer = PageSequencer()
    listing = fake_team_members
    results = []
    cursor = None
    for _ in range(4):
        page = await sequencer.next_nested_page(
            cursor, 1, listing.fetch_outer, listing.fetch_inner, entity_id="members"
        )
        results.append(page)
        cursor = page.next_cursor

    members = [(p.collection_id, p.objects[0]["user"]["id"]) for p in results]
    assert members == [("team1", "u1"), ("team1", "u2"), ("team2", "u3"), ("team2", "u4")]

    after_team1_last = results[1].next_cursor
    assert after_team1_last.collection_id == "team1"
    assert after_team1_last.cursor is None
    assert after_team1_last.collection_cursor == 1

    assert results[3].next_cursor is None
    # team1 and team2 are each fetched once
    assert listing.outer_calls == [(0, 1), (1, 1)]


@pytest.mark.asyncio
async def test_nested_first_page_binds_collection_and_saves_outer_position(fake_team_members):
    page = await PageSequencer().next_nested_page(
        None, 1, fake_team_members.fetch_outer, fake_team_members.fetch_inner
    )
    assert page.next_cursor == CompositeCursor[int](
        cursor=1, collection_id="team1", collection_cursor=1
    )
    assert fake_team_members.inner_calls == [("team1", 0, 1)]


@pytest.mark.asyncio
async def test_nested_mid_collection_does_not_refetch_outer(fake_team_members):
    cursor = CompositeCursor[int](cursor=1, collection_id="team1", collection_cursor=1)
    await PageSequencer().next_nested_page(
        cursor, 5, fake_team_members.fetch_outer, fake_team_members.fetch_inner
    )
    assert fake_team_members.outer_calls == []
    assert fake_team_members.inner_calls == [("team1", 1, 5)]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "sizes",
    [[2, 2], [3, 0, 1], [0, 0, 4], [1, 1, 1, 1], [5], [0], [2, 3, 0]],
    ids=lambda s: "-".join(map(str, s)),
)
@pytest.mark.parametrize("page_size", [1, 2, 3])
async def test_nested_traversal_visits_every_pair_once_in_order(sizes, page_size):
    members = {
        f"team{t}": [{"id": f"team{t}#{m}"} for m in range(size)]
        for t, size in enumerate(sizes, start=1)
    }
    listing = FakeNestedListing(members)

    pairs, cursors = await _drain_nested(PageSequencer(), listing, page_size)

    expected = [(team, member["id"]) for team, ms in members.items() for member in ms]
    assert pairs == expected
    assert cursors[-1] is None
    # Every collection is selected exactly once
    assert [pos for pos, _ in listing.outer_calls] == list(range(len(sizes)))


@pytest.mark.asyncio
async def test_nested_traversal_counting_fallback_completes():
    listing = FakeNestedListing(
        {"a": [{"id": "a1"}, {"id": "a2"}], "b": [{"id": "b1"}]}, report_more=False
    )
    pairs, cursors = await _drain_nested(PageSequencer(), listing, 2)
    assert pairs == [("a", "a1"), ("a", "a2"), ("b", "b1")]
    assert cursors[-1] is None


@pytest.mark.asyncio
async def test_nested_empty_outer_collection_completes_immediately():
    listing = FakeNestedListing({})
    page = await PageSequencer().next_nested_page(
        None, 10, listing.fetch_outer, listing.fetch_inner
    )
    assert page.objects == []
    assert page.next_cursor is None
    assert listing.inner_calls == []


@pytest.mark.asyncio
async def test_nested_drained_last_collection_cursor_completes(fake_team_members):
    cursor = CompositeCursor[int](collection_id="team2")
    page = await PageSequencer().next_nested_page(
        cursor, 10, fake_team_members.fetch_outer, fake_team_members.fetch_inner
    )
    assert page.objects == []
    assert page.next_cursor is None
    assert fake_team_members.outer_calls == []


@pytest.mark.asyncio
async def test_nested_cursor_without_collection_id_is_invalid(fake_team_members):
    with pytest.raises(InvalidCursorStateError, match="members"):
        await PageSequencer().next_nested_page(
            CompositeCursor[int](cursor=2),
            1,
            fake_team_members.fetch_outer,
            fake_team_members.fetch_inner,
            entity_id="members",
        )


@pytest.mark.asyncio
async def test_nested_outer_returning_many_objects_is_shape_error():
    async def fetch_outer(position, limit):
        return FetchResult(objects=[{"id": "t1"}, {"id": "t2"}], has_more=True)

    async def fetch_inner(collection_id, position, limit):
        raise AssertionError("inner fetch must not run")

    with pytest.raises(UpstreamDataShapeError, match="expected 1, got 2"):
        await PageSequencer().next_nested_page(None, 1, fetch_outer, fetch_inner)


@pytest.mark.asyncio
async def test_nested_outer_object_without_string_id_is_shape_error():
    async def fetch_outer(position, limit):
        return FetchResult(objects=[{"id": 42}], has_more=False)

    async def fetch_inner(collection_id, position, limit):
        raise AssertionError("inner fetch must not run")

    with pytest.raises(UpstreamDataShapeError) as exc_info:
        await PageSequencer().next_nested_page(None, 1, fetch_outer, fetch_inner)
    assert exc_info.value.field_name == "id"
    assert exc_info.value.expected == "string"
    assert exc_info.value.actual == "integer"


@pytest.mark.asyncio
async def test_nested_token_mode_traversal():
    outer_pages = {None: ("g1", "o2"), "o2": ("g2", None)}
    inner_pages = {
        ("g1", None): (["m1", "m2"], "i2"),
        ("g1", "i2"): (["m3"], None),
        ("g2", None): (["m4"], None),
    }

    async def fetch_outer(position, limit):
        group, token = outer_pages[position]
        return FetchResult(objects=[{"id": group}], next_cursor=token)

    async def fetch_inner(collection_id, position, limit):
        ids, token = inner_pages[(collection_id, position)]
        return FetchResult(objects=[{"id": i} for i in ids], next_cursor=token)

    sequencer = PageSequencer(mode=PagingMode.TOKEN)
    cursor = None
    pairs = []
    for _ in range(MAX_CALLS):
        page = await sequencer.next_nested_page(cursor, 2, fetch_outer, fetch_inner)
        pairs.extend((page.collection_id, obj["id"]) for obj in page.objects)
        if page.next_cursor is None:
            break
        cursor = decode_cursor(encode_cursor(page.next_cursor), str)

    assert pairs == [("g1", "m1"), ("g1", "m2"), ("g1", "m3"), ("g2", "m4")]


# ---------------------------------------------------------------------------
# Vendor-reported positions
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.parametrize("bad_token", [2, True, 1.5])
async def test_flat_token_of_wrong_type_is_shape_error(bad_token):
    async def fetch_page(position, limit):
        return FetchResult(objects=[{"id": "a"}], next_cursor=bad_token)

    with pytest.raises(UpstreamDataShapeError) as exc_info:
        await PageSequencer(mode=PagingMode.TOKEN).next_page(None, 1, fetch_page)
    assert exc_info.value.field_name == "next_cursor"
    assert exc_info.value.expected == "string"


@pytest.mark.asyncio
async def test_nested_inner_token_of_wrong_type_is_shape_error():
    async def fetch_outer(position, limit):
        return FetchResult(objects=[{"id": "g1"}], next_cursor="o2")

    async def fetch_inner(collection_id, position, limit):
        return FetchResult(objects=[{"id": "m1"}], next_cursor=7)

    with pytest.raises(UpstreamDataShapeError) as exc_info:
        await PageSequencer(mode=PagingMode.TOKEN).next_nested_page(
            None, 1, fetch_outer, fetch_inner
        )
    assert exc_info.value.field_name == "next_cursor"
    assert exc_info.value.actual == "integer"


@pytest.mark.asyncio
async def test_nested_outer_token_of_wrong_type_is_shape_error():
    async def fetch_outer(position, limit):
        return FetchResult(objects=[{"id": "g1"}], next_cursor=2)

    async def fetch_inner(collection_id, position, limit):
        raise AssertionError("inner fetch must not run")

    with pytest.raises(UpstreamDataShapeError, match="next_cursor"):
        await PageSequencer(mode=PagingMode.TOKEN).next_nested_page(
            None, 1, fetch_outer, fetch_inner
        )


# ---------------------------------------------------------------------------
# Timeouts and cancellation
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_fetch_timeout_raises_without_cursor():
    async def slow_fetch(position, limit):
        await asyncio.sleep(5)
        return FetchResult()

    sequencer = PageSequencer(timeout_seconds=0.01)
    with pytest.raises(UpstreamTimeoutError) as exc_info:
        await sequencer.next_page(CompositeCursor[int](cursor=3), 2, slow_fetch)
    assert exc_info.value.retryable is True


@pytest.mark.asyncio
async def test_inner_fetch_timeout_aborts_nested_page(fake_team_members):
    async def slow_inner(collection_id, position, limit):
        await asyncio.sleep(5)
        return FetchResult()

    sequencer = PageSequencer(timeout_seconds=0.01)
    with pytest.raises(UpstreamTimeoutError):
        await sequencer.next_nested_page(None, 1, fake_team_members.fetch_outer, slow_inner)


@pytest.mark.asyncio
async def test_cancellation_propagates():
    started = asyncio.Event()

    async def blocking_fetch(position, limit):
        started.set()
        await asyncio.sleep(5)
        return FetchResult()

    task = asyncio.create_task(PageSequencer(timeout_seconds=10).next_page(None, 1, blocking_fetch))
    await started.wait()
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task


@pytest.mark.asyncio
async def test_concurrent_syncs_share_one_sequencer():
    sequencer = PageSequencer()
    listings = [FakeListing([{"id": f"{n}-{i}"} for i in range(7)]) for n in range(4)]

    results = await asyncio.gather(
        *(_drain_flat(sequencer, listing.fetch_page, 2) for listing in listings)
    )

    for n, (seen, calls) in enumerate(results):
        assert [obj["id"] for obj in seen] == [f"{n}-{i}" for i in range(7)]
        assert calls == 4
