"""
PropDesk Backend — Property Service Unit Tests
================================================

What:  Tests for PropertyService business logic and its coercion helpers.
How:   In-memory record store and a temp-dir object store (see conftest.py).

What we test:
    ✅ Lenient field coercion (numbers, dates, lists, attributes, location)
    ✅ Create: owner required, id shared by record and image keys, image order
    ✅ Uploads: only real image content is accepted, checked before any write
    ✅ Listing: newest first, owner filter, paging arithmetic and defaults
    ✅ Notes: type routing with inspection fallback, append-only, text required
    ✅ Captions: exact key match, other images untouched, both 404 cases
"""

import uuid
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch

import pytest

from propdesk.config import settings
from propdesk.exceptions import InvalidIdError, NotFoundError, ObjectStorageError, ValidationError
from propdesk.models.property import Property
from propdesk.services.object_store import UploadedFile
from propdesk.services.property_service import (
    MAX_PAGE_NUMBER,
    parse_attributes,
    parse_datetime,
    parse_number,
    parse_page_param,
    parse_property_id,
    parse_string_list,
)


def make_property(owner="owner-1", created_at=None, images=None, **fields):
    now = created_at or datetime.now(timezone.utc)
    return Property(
        id=uuid.uuid4(),
        user_id=owner,
        utilities=[],
        amenities=[],
        inspection_notes=[],
        maintenance_notes=[],
        marketing_notes=[],
        images=images or [],
        created_at=now,
        updated_at=now,
        **fields,
    )


class TestCoercionHelpers:

    def test_parse_number_accepts_numeric_strings(self):
        assert parse_number("3") == 3.0
        assert parse_number(" 2.5 ") == 2.5
        assert parse_number(1200) == 1200.0

    def test_parse_number_drops_unparseable(self):
        assert parse_number("three") is None
        assert parse_number("") is None
        assert parse_number(None) is None
        assert parse_number("nan") is None
        assert parse_number("inf") is None
        assert parse_number(True) is None

    def test_parse_number_takes_last_repeated_value(self):
        assert parse_number(["1", "4"]) == 4.0

    def test_parse_datetime_variants(self):
        assert parse_datetime("2025-03-01") == datetime(2025, 3, 1, tzinfo=timezone.utc)
        assert parse_datetime("2025-03-01T10:00:00Z") == datetime(
            2025, 3, 1, 10, 0, tzinfo=timezone.utc
        )
        assert parse_datetime("not a date") is None
        assert parse_datetime("") is None

    def test_parse_attributes_only_keeps_objects(self):
        assert parse_attributes('{"petsAllowed": true}') == {"petsAllowed": True}
        assert parse_attributes("[1, 2]") is None
        assert parse_attributes("{broken") is None
        assert parse_attributes(None) is None

    def test_parse_string_list_forms(self):
        assert parse_string_list(["pool", "gym"]) == ["pool", "gym"]
        assert parse_string_list("water, power,, gas") == ["water", "power", "gas"]
        assert parse_string_list('["wifi", "parking"]') == ["wifi", "parking"]
        assert parse_string_list(None) == []

    def test_parse_string_list_skips_json_nulls(self):
        assert parse_string_list('["wifi", null, 3]') == ["wifi", "3"]

    def test_parse_page_param_falls_back(self):
        assert parse_page_param("abc", 1) == 1
        assert parse_page_param(None, 50) == 50
        assert parse_page_param("2.9", 1) == 2

    def test_parse_property_id_rejects_malformed(self):
        with pytest.raises(InvalidIdError):
            parse_property_id("not-a-uuid")


class TestCreateProperty:

    @pytest.mark.asyncio
    async def test_create_coerces_fields(self, service):
        result = await service.create_property(
            "owner-1",
            {
                "title": "  Loft  ",
                "bedrooms": "3",
                "rent": "abc",
                "availableFrom": "2025-06-01",
                "amenities": ["pool", "gym"],
                "utilities": "water,power",
                "attributes": '{"floor": 4}',
                "lng": "-73.98",
                "lat": "40.75",
            },
        )

        assert result.user_id == "owner-1"
        assert result.title == "Loft"
        assert result.bedrooms == 3
        assert result.rent is None
        assert result.available_from == datetime(2025, 6, 1, tzinfo=timezone.utc)
        assert result.amenities == ["pool", "gym"]
        assert result.utilities == ["water", "power"]
        assert result.attributes == {"floor": 4}
        assert result.location.coordinates == [-73.98, 40.75]
        assert result.inspection_notes == []
        assert result.images == []

    @pytest.mark.asyncio
    async def test_create_requires_owner(self, service, memory_store):
        with pytest.raises(ValidationError) as exc_info:
            await service.create_property("   ", {"title": "x"})
        assert exc_info.value.field == "userId"
        assert memory_store.records == {}

    @pytest.mark.asyncio
    async def test_images_keep_submission_order_and_share_property_id(
        self, service, sample_image_bytes, sample_png_bytes
    ):
        files = [
            UploadedFile("front.jpg", sample_image_bytes, "image/jpeg"),
            UploadedFile("back.PNG", sample_png_bytes, "image/png"),
        ]

        result = await service.create_property("owner-1", {}, files)

        assert [image.content_type for image in result.images] == ["image/jpeg", "image/png"]
        first, second = result.images
        assert first.key.startswith(f"owner-1/{result.id}/images/")
        assert first.key.endswith("-0.jpg")
        assert second.key.endswith("-1.PNG")
        assert first.size == len(sample_image_bytes)
        assert first.url == f"http://test/api/files/{first.key}"
        assert first.caption is None

    @pytest.mark.asyncio
    async def test_content_type_comes_from_file_bytes(self, service, sample_png_bytes):
        files = [UploadedFile("photo", sample_png_bytes, "application/octet-stream")]

        result = await service.create_property("owner-1", {}, files)

        assert result.images[0].content_type == "image/png"

    @pytest.mark.asyncio
    async def test_non_image_content_rejected_before_upload(
        self, service, local_store, memory_store, sample_image_bytes
    ):
        files = [
            UploadedFile("front.jpg", sample_image_bytes, "image/jpeg"),
            UploadedFile("page.jpg", b"<html><script>alert(1)</script></html>", "image/jpeg"),
        ]

        with patch.object(local_store, "upload_batch", new_callable=AsyncMock) as upload:
            with pytest.raises(ValidationError) as exc_info:
                await service.create_property("owner-1", {}, files)
            upload.assert_not_awaited()

        assert exc_info.value.context["filename"] == "page.jpg"
        assert memory_store.records == {}

    @pytest.mark.asyncio
    async def test_non_image_extension_rejected(self, service, sample_image_bytes):
        files = [UploadedFile("x.html", sample_image_bytes, "text/html")]

        with pytest.raises(ValidationError) as exc_info:
            await service.create_property("owner-1", {}, files)
        assert exc_info.value.context["extension"] == ".html"

    @pytest.mark.asyncio
    async def test_svg_rejected(self, service):
        svg = b'<svg xmlns="http://www.w3.org/2000/svg"><script>alert(1)</script></svg>'
        with pytest.raises(ValidationError):
            await service.create_property("owner-1", {}, [UploadedFile("a.png", svg, "image/svg+xml")])

    @pytest.mark.asyncio
    async def test_long_free_form_values_pass_through(self, service):
        owner = "o" * 400
        result = await service.create_property(owner, {"city": "x" * 300, "postalCode": "9" * 120})

        assert result.user_id == owner
        assert len(result.city) == 300
        assert len(result.postal_code) == 120

    @pytest.mark.asyncio
    async def test_too_many_files_rejected_before_upload(self, service, local_store, monkeypatch):
        monkeypatch.setattr(settings, "max_upload_files", 1)
        files = [UploadedFile(f"{i}.jpg", b"x", "image/jpeg") for i in range(2)]

        with patch.object(local_store, "upload_batch", new_callable=AsyncMock) as upload:
            with pytest.raises(ValidationError):
                await service.create_property("owner-1", {}, files)
            upload.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_oversized_file_rejected(self, service, monkeypatch):
        monkeypatch.setattr(settings, "max_file_size", 1024)
        files = [UploadedFile("big.jpg", b"x" * 2048, "image/jpeg")]

        with pytest.raises(ValidationError) as exc_info:
            await service.create_property("owner-1", {}, files)
        assert exc_info.value.context["filename"] == "big.jpg"

    @pytest.mark.asyncio
    async def test_upload_failure_persists_nothing(
        self, service, local_store, memory_store, sample_image_bytes
    ):
        with patch.object(
            local_store,
            "upload_batch",
            new=AsyncMock(side_effect=ObjectStorageError()),
        ):
            with pytest.raises(ObjectStorageError):
                await service.create_property(
                    "owner-1", {}, [UploadedFile("a.jpg", sample_image_bytes, "image/jpeg")]
                )
        assert memory_store.records == {}


class TestListProperties:

    @pytest.mark.asyncio
    async def test_newest_first_with_owner_filter(self, service, memory_store):
        base = datetime(2025, 1, 1, tzinfo=timezone.utc)
        older = make_property("owner-1", created_at=base)
        newer = make_property("owner-1", created_at=base + timedelta(hours=1))
        other = make_property("owner-2", created_at=base + timedelta(hours=2))
        for prop in (older, newer, other):
            await memory_store.insert(prop)

        result = await service.list_properties(owner_id="owner-1")

        assert [item.id for item in result.items] == [newer.id, older.id]
        assert result.total == 2
        assert result.has_more is False

        everyone = await service.list_properties()
        assert everyone.total == 3
        assert everyone.items[0].id == other.id

    @pytest.mark.asyncio
    async def test_second_page_of_fifteen(self, service, memory_store):
        base = datetime(2025, 1, 1, tzinfo=timezone.utc)
        for i in range(15):
            await memory_store.insert(make_property("owner-1", created_at=base + timedelta(minutes=i)))

        first = await service.list_properties("owner-1", page="1", limit="10")
        second = await service.list_properties("owner-1", page="2", limit="10")

        assert len(first.items) == 10
        assert first.has_more is True
        assert len(second.items) == 5
        assert second.page == 2
        assert second.limit == 10
        assert second.total == 15
        assert second.has_more is False

    @pytest.mark.asyncio
    async def test_page_and_limit_defaults(self, service):
        result = await service.list_properties(page="zero", limit="lots")
        assert result.page == 1
        assert result.limit == settings.default_page_size

        result = await service.list_properties(page="-3", limit="0")
        assert result.page == 1
        assert result.limit == settings.default_page_size

        result = await service.list_properties(limit="100000")
        assert result.limit == settings.max_page_size

    @pytest.mark.asyncio
    async def test_page_past_the_end_is_empty(self, service, memory_store):
        await memory_store.insert(make_property())
        result = await service.list_properties(page="5", limit="10")
        assert result.items == []
        assert result.total == 1
        assert result.has_more is False

    @pytest.mark.asyncio
    async def test_huge_page_stays_within_offset_range(self, service, memory_store):
        await memory_store.insert(make_property())

        with patch.object(
            memory_store, "find_many", wraps=memory_store.find_many
        ) as find_many:
            result = await service.list_properties(page="1e20", limit="100")

        _, page, limit = find_many.await_args.args
        assert (page - 1) * limit < 2 ** 63
        assert result.page == MAX_PAGE_NUMBER
        assert result.items == []
        assert result.has_more is False


class TestGetProperty:

    @pytest.mark.asyncio
    async def test_get_existing(self, service, memory_store):
        prop = make_property(title="Cottage")
        await memory_store.insert(prop)
        result = await service.get_property(str(prop.id))
        assert result.title == "Cottage"

    @pytest.mark.asyncio
    async def test_get_missing_raises_not_found(self, service):
        with pytest.raises(NotFoundError):
            await service.get_property(str(uuid.uuid4()))

    @pytest.mark.asyncio
    async def test_get_malformed_id(self, service):
        with pytest.raises(InvalidIdError):
            await service.get_property("12345")


class TestAddNote:

    @pytest.mark.asyncio
    async def test_note_routed_by_type(self, service, memory_store):
        prop = make_property()
        await memory_store.insert(prop)

        result = await service.add_note(str(prop.id), "maintenance", "  Fix sink ", "tech-7")

        assert result.inspection_notes == []
        assert len(result.maintenance_notes) == 1
        note = result.maintenance_notes[0]
        assert note.text == "Fix sink"
        assert note.author_id == "tech-7"
        assert note.created_at.tzinfo is not None

    @pytest.mark.asyncio
    async def test_unknown_type_falls_back_to_inspection(self, service, memory_store):
        prop = make_property()
        await memory_store.insert(prop)

        result = await service.add_note(str(prop.id), "Marketing", "Great light")
        result = await service.add_note(str(prop.id), None, "Roof ok")

        assert [n.text for n in result.inspection_notes] == ["Great light", "Roof ok"]
        assert result.marketing_notes == []

    @pytest.mark.asyncio
    async def test_notes_are_appended(self, service, memory_store):
        prop = make_property()
        await memory_store.insert(prop)

        await service.add_note(str(prop.id), "marketing", "first")
        result = await service.add_note(str(prop.id), "marketing", "second")

        assert [n.text for n in result.marketing_notes] == ["first", "second"]

    @pytest.mark.asyncio
    async def test_blank_text_rejected(self, service, memory_store):
        prop = make_property()
        await memory_store.insert(prop)
        with pytest.raises(ValidationError):
            await service.add_note(str(prop.id), "inspection", "   ")

    @pytest.mark.asyncio
    async def test_missing_property(self, service):
        with pytest.raises(NotFoundError):
            await service.add_note(str(uuid.uuid4()), "inspection", "hello")


class TestSetImageCaption:

    def _images(self, owner, pid):
        return [
            {"key": f"{owner}/{pid}/images/1-0.jpg", "url": "u0", "contentType": "image/jpeg", "size": 1},
            {"key": f"{owner}/{pid}/images/1-1.jpg", "url": "u1", "contentType": "image/jpeg", "size": 2},
        ]

    @pytest.mark.asyncio
    async def test_caption_set_on_exact_key_only(self, service, memory_store):
        prop = make_property()
        prop.images = self._images("owner-1", prop.id)
        await memory_store.insert(prop)

        result = await service.set_image_caption(
            str(prop.id), f"owner-1/{prop.id}/images/1-1.jpg", "Kitchen"
        )

        assert result.images[0].caption is None
        assert result.images[1].caption == "Kitchen"
        assert [image.key for image in result.images] == [i["key"] for i in self._images("owner-1", prop.id)]

    @pytest.mark.asyncio
    async def test_missing_caption_clears(self, service, memory_store):
        prop = make_property()
        prop.images = self._images("owner-1", prop.id)
        await memory_store.insert(prop)

        result = await service.set_image_caption(str(prop.id), prop.images[0]["key"], None)
        assert result.images[0].caption == ""

    @pytest.mark.asyncio
    async def test_unknown_key_is_not_found_and_not_added(self, service, memory_store):
        prop = make_property()
        prop.images = self._images("owner-1", prop.id)
        await memory_store.insert(prop)

        with pytest.raises(NotFoundError) as exc_info:
            await service.set_image_caption(str(prop.id), "OWNER-1/nope.jpg", "x")

        assert exc_info.value.context["resource"] == "image"
        assert len(memory_store.records[prop.id].images) == 2

    @pytest.mark.asyncio
    async def test_unknown_property(self, service):
        with pytest.raises(NotFoundError) as exc_info:
            await service.set_image_caption(str(uuid.uuid4()), "k", "x")
        assert exc_info.value.context["resource"] == "property"
