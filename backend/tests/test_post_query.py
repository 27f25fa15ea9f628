from datetime import timedelta

import pytest

from conftest import NOW, caller_for, orphan_post, post_data
from utsalapp.schemas import Category, FilterSpec, SortBy
from utsalapp.services.post_query import query_page, query_posts
from utsalapp.services.sale_posts import create_sale_post
from utsalapp.storage.base import matches_search


async def _create(storage, store, **overrides):
    return await create_sale_post(storage, caller_for(store), post_data(**overrides))


class TestDerivedFilters:

    async def test_min_discount_is_inclusive(self, storage, store_a):
        post = await _create(storage, store_a, price_original=10000, price_sale=6000)

        excluded = await query_posts(storage, FilterSpec(min_discount=50), now=NOW)
        included = await query_posts(storage, FilterSpec(min_discount=40), now=NOW)

        assert excluded == []
        assert [p.id for p in included] == [post.id]

    async def test_price_bounds_are_inclusive_on_sale_price(self, storage, store_a):
        cheap = await _create(storage, store_a, price_original=2000, price_sale=1000)
        mid = await _create(storage, store_a, price_original=8000, price_sale=5000)
        await _create(storage, store_a, price_original=20000, price_sale=15000)

        result = await query_posts(storage, FilterSpec(min_price=1000, max_price=5000), now=NOW)

        assert {p.id for p in result} == {cheap.id, mid.id}


class TestStructuralFilters:

    async def test_search_is_case_insensitive(self, storage, store_a):
        dress = await _create(storage, store_a, title="Rauður Kjóll", description=None)
        await _create(storage, store_a, title="Sófasett", description="Þægilegur sófi", category="husgogn")

        result = await query_posts(storage, FilterSpec(search="kjóll"), now=NOW)

        assert [p.id for p in result] == [dress.id]

    async def test_search_matches_description(self, storage, store_a):
        post = await _create(storage, store_a, title="Tilboð", description="Leðurskór fyrir alla")

        result = await query_posts(storage, FilterSpec(search="LEÐURSKÓR"), now=NOW)

        assert [p.id for p in result] == [post.id]

    async def test_category_and_store(self, storage, store_a, store_b):
        sofa = await _create(storage, store_a, title="Sófi", category="husgogn")
        await _create(storage, store_a, title="Kjóll", category="fatnad")
        await _create(storage, store_b, title="Borð", category="husgogn")

        result = await query_posts(
            storage,
            FilterSpec(store_id=store_a.id, category=Category.husgogn),
            now=NOW,
        )

        assert [p.id for p in result] == [sofa.id]

    @pytest.mark.parametrize("title,search,expected", [
        ("Rauður KJÓLL", "kjóll", True),
        ("Ævintýri", "æV", True),
        ("Straße", "strasse", False),
    ])
    async def test_search_folds_plain_lowercase(self, storage, store_a, title, search, expected):
        post = await _create(storage, store_a, title=title, description=None)

        assert matches_search(post, search) is expected


class TestActiveWindow:

    @pytest.mark.parametrize("now_offset,expected", [
        (timedelta(0), True),                   # now == starts_at
        (timedelta(days=2), True),              # now == ends_at
        (timedelta(days=1), True),
        (timedelta(seconds=-1), False),         # not started
        (timedelta(days=2, seconds=1), False),  # ended
    ])
    async def test_window_boundaries(self, storage, store_a, now_offset, expected):
        starts_at = NOW
        ends_at = NOW + timedelta(days=2)
        post = await _create(storage, store_a, starts_at=starts_at, ends_at=ends_at)

        result = await query_posts(storage, FilterSpec(active_only=True), now=NOW + now_offset)

        assert ([p.id for p in result] == [post.id]) is expected

    async def test_inactive_flag_excludes(self, storage, store_a):
        post = await _create(storage, store_a)
        await storage.update_sale_post(post.id, {"is_active": False})

        active = await query_posts(storage, FilterSpec(active_only=True), now=NOW)
        everything = await query_posts(storage, FilterSpec(), now=NOW)

        assert active == []
        assert [p.id for p in everything] == [post.id]


class TestSorting:

    async def test_recent_is_newest_first(self, storage, store_a):
        first = await _create(storage, store_a, title="Fyrst")
        second = await _create(storage, store_a, title="Síðast")

        result = await query_posts(storage, FilterSpec(sort_by=SortBy.recent), now=NOW)

        assert [p.id for p in result] == [second.id, first.id]
        assert result[0].created_at > result[1].created_at

    async def test_discount_ties_broken_by_recency(self, storage, store_a):
        older_40 = await _create(storage, store_a, price_original=10000, price_sale=6000)
        top_50 = await _create(storage, store_a, price_original=10000, price_sale=5000)
        newer_40 = await _create(storage, store_a, price_original=5000, price_sale=3000)
        low_10 = await _create(storage, store_a, price_original=1000, price_sale=900)

        result = await query_posts(storage, FilterSpec(sort_by=SortBy.discount), now=NOW)

        assert [p.id for p in result] == [top_50.id, newer_40.id, older_40.id, low_10.id]
        discounts = [p.discount_percent for p in result]
        assert discounts == sorted(discounts, reverse=True)


class TestPagination:

    async def test_pages_partition_the_results(self, storage, store_a):
        for i in range(7):
            await _create(storage, store_a, title=f"Tilboð {i}", price_sale=1000 + i * 500)

        full = await query_posts(storage, FilterSpec(sort_by=SortBy.discount), now=NOW)
        pages = [
            await query_posts(storage, FilterSpec(sort_by=SortBy.discount, page=n, limit=3), now=NOW)
            for n in (1, 2, 3)
        ]

        assert [len(page) for page in pages] == [3, 3, 1]
        assert [p.id for page in pages for p in page] == [p.id for p in full]

    async def test_query_page_envelope(self, storage, store_a):
        for i in range(5):
            await _create(storage, store_a, title=f"Tilboð {i}")

        first = await query_page(storage, FilterSpec(page=1, limit=2), now=NOW)
        last = await query_page(storage, FilterSpec(page=3, limit=2), now=NOW)
        unbounded = await query_page(storage, FilterSpec(), now=NOW)

        assert first.total == 5 and len(first.items) == 2 and first.has_more
        assert last.total == 5 and len(last.items) == 1 and not last.has_more
        assert len(unbounded.items) == 5 and not unbounded.has_more

    async def test_page_without_limit_is_the_whole_listing(self, storage, store_a):
        for i in range(3):
            await _create(storage, store_a, title=f"Tilboð {i}")

        result = await query_page(storage, FilterSpec(page=4), now=NOW)

        assert len(result.items) == 3
        assert result.page == 1
        assert result.limit is None
        assert not result.has_more


async def test_orphans_never_surface_in_listings(storage, store_a):
    kept = await _create(storage, store_a)
    await orphan_post(storage)

    result = await query_posts(storage, FilterSpec(), now=NOW)

    assert [p.id for p in result] == [kept.id]
