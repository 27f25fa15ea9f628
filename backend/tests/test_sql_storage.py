"""The SQLAlchemy backend must behave like the in-memory one."""
import pytest

from conftest import NOW, caller_for, post_data
from utsalapp.database import Base
from utsalapp.errors import BackendUnavailable, ValidationError
from utsalapp.schemas import Category, FilterSpec, ImageIn, Role, StoreCreate
from utsalapp.services.aggregation import get_post_with_details
from utsalapp.services.post_query import query_posts
from utsalapp.services.sale_posts import create_sale_post, delete_sale_post
from utsalapp.services.tracking import record_view


@pytest.fixture
async def sql_store(sql_storage):
    user = await sql_storage.create_user("heima@example.is", "not-a-real-hash", Role.store)
    return await sql_storage.create_store(StoreCreate(name="Heima&Heilsa", owner_user_id=user.id))


async def test_lookups_by_email_and_owner(sql_storage, sql_store):
    user = await sql_storage.get_user_by_email("heima@example.is")

    assert user.role == Role.store
    assert (await sql_storage.get_store_by_owner(user.id)).id == sql_store.id
    assert await sql_storage.get_user("missing") is None
    assert await sql_storage.get_store("missing") is None


async def test_update_store_replaces_fields(sql_storage, sql_store):
    updated = await sql_storage.update_store(sql_store.id, {"phone": "554-3210"})

    assert updated.phone == "554-3210"
    assert updated.name == "Heima&Heilsa"
    assert await sql_storage.update_store("missing", {"phone": "1"}) is None


async def test_post_with_details(sql_storage, sql_store):
    images = [ImageIn(url="/uploads/sofi-1.webp"), ImageIn(url="/uploads/sofi-2.webp", alt="Sófi")]
    created = await create_sale_post(
        sql_storage,
        caller_for(sql_store),
        post_data(title="Sófasett", category="husgogn", images=images),
    )
    await record_view(sql_storage, created.id, "hash-1")
    await record_view(sql_storage, created.id, "hash-1")

    detailed = await get_post_with_details(sql_storage, created.id)

    assert detailed.category == Category.husgogn
    assert detailed.discount_percent == 40
    assert detailed.view_count == 2
    assert [img.url for img in detailed.images] == ["/uploads/sofi-1.webp", "/uploads/sofi-2.webp"]
    assert detailed.store.name == "Heima&Heilsa"


async def test_structural_filters(sql_storage, sql_store):
    dress = await create_sale_post(sql_storage, caller_for(sql_store), post_data(title="Rauður Kjóll"))
    await create_sale_post(
        sql_storage, caller_for(sql_store), post_data(title="Matborð", category="husgogn")
    )

    by_search = await query_posts(sql_storage, FilterSpec(search="KJÓLL"), now=NOW)
    by_category = await query_posts(sql_storage, FilterSpec(category=Category.fatnad), now=NOW)
    active = await query_posts(sql_storage, FilterSpec(active_only=True), now=NOW)

    assert [p.id for p in by_search] == [dress.id]
    assert [p.id for p in by_category] == [dress.id]
    assert len(active) == 2


async def test_delete_cascades(sql_storage, sql_store):
    created = await create_sale_post(sql_storage, caller_for(sql_store), post_data())
    await record_view(sql_storage, created.id, None)

    await delete_sale_post(sql_storage, caller_for(sql_store), created.id)

    assert await sql_storage.get_sale_post(created.id) is None
    assert await sql_storage.list_images(created.id) == []
    assert await sql_storage.count_view_events(created.id) == 0
    assert await sql_storage.delete_sale_post(created.id) is False


async def test_delete_store_removes_its_posts(sql_storage, sql_store):
    created = await create_sale_post(sql_storage, caller_for(sql_store), post_data())
    await record_view(sql_storage, created.id, "hash-1")

    assert await sql_storage.delete_store(sql_store.id) is True

    assert await get_post_with_details(sql_storage, created.id) is None
    assert await sql_storage.count_view_events(created.id) == 0
    assert await query_posts(sql_storage, FilterSpec(), now=NOW) == []


async def test_foreign_keys_are_enforced(sql_storage):
    fields = post_data().model_dump(exclude={"images", "store_id"})

    with pytest.raises(BackendUnavailable):
        await sql_storage.create_sale_post({**fields, "store_id": "missing"})


async def test_failed_image_swap_keeps_old_images(sql_storage, sql_store):
    created = await create_sale_post(sql_storage, caller_for(sql_store), post_data())
    # Violates NOT NULL on images.url inside the swap transaction
    broken = [ImageIn(url="/uploads/ok.webp"), ImageIn.model_construct(url=None, alt=None)]

    with pytest.raises(BackendUnavailable):
        await sql_storage.replace_images(created.id, broken)

    assert [img.url for img in await sql_storage.list_images(created.id)] == ["/uploads/kjoll.webp"]


async def test_replace_images_restarts_order(sql_storage, sql_store):
    created = await create_sale_post(sql_storage, caller_for(sql_store), post_data())

    await sql_storage.replace_images(
        created.id, [ImageIn(url="/uploads/b.webp"), ImageIn(url="/uploads/a.webp")]
    )

    images = await sql_storage.list_images(created.id)
    assert [img.url for img in images] == ["/uploads/b.webp", "/uploads/a.webp"]


async def test_duplicate_email_is_a_validation_error(sql_storage, sql_store):
    with pytest.raises(ValidationError) as exc_info:
        await sql_storage.create_user("heima@example.is", "another-hash", Role.store)

    assert exc_info.value.field == "email"
    assert await sql_storage.get_user_by_email("heima@example.is") is not None


async def test_backend_failure_is_reported(sql_storage, sql_engine):
    Base.metadata.drop_all(bind=sql_engine)

    with pytest.raises(BackendUnavailable):
        await sql_storage.get_sale_post("anything")
