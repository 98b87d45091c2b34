from datetime import datetime, timedelta, timezone

import httpx
import pytest

from gallery.client.api import GalleryAPI, GalleryAPIError
from gallery.client.controller import AuthenticationRequired, GalleryController, SelectedFile
from gallery.client.grouping import group_by_month, image_count_label, month_name, month_short, sorted_months
from gallery.client.render import render_gallery
from gallery.client.state import GalleryState, ImageData
from tests.conftest import JPEG_BYTES, data_url

UTC = timezone.utc


def jpeg(name="photo.jpg", content_type="image/jpeg"):
    return SelectedFile(name=name, content_type=content_type, data=JPEG_BYTES)


def image(image_id, when):
    return ImageData(id=image_id, url=f"https://blobs.test/{image_id}", date=when, month_year=f"{when:%Y-%m}")


class Recorder:
    def __init__(self, answer=True):
        self.messages = []
        self.answer = answer

    def __call__(self, message):
        self.messages.append(message)
        return self.answer


def make_controller(api, clock=None, confirm=None):
    alerts = Recorder()
    controller = GalleryController(
        api,
        alert=alerts,
        confirm=confirm or Recorder(),
        clock=clock or (lambda: datetime(2024, 3, 15, 10, 0, tzinfo=UTC)),
    )
    return controller, alerts


def failing_api(status_code=500):
    transport = httpx.MockTransport(lambda request: httpx.Response(status_code, json={"error": "boom"}))
    return GalleryAPI(base_url="http://test/gallery", public_key="k", transport=transport)


# Grouping

def test_months_sort_newest_first():
    groups = {"2024-03": [], "2023-12": [], "2024-11": []}
    assert sorted_months(groups) == ["2024-11", "2024-03", "2023-12"]


def test_group_by_month_partitions_in_load_order():
    start = datetime(2024, 11, 20, tzinfo=UTC)
    images = [image(f"{i}.jpg", start - timedelta(days=10 * i)) for i in range(8)]

    groups = group_by_month(images)
    flattened = [img for month in sorted_months(groups) for img in groups[month]]
    assert flattened == images
    for month, members in groups.items():
        assert all(img.month_year == month for img in members)


def test_month_labels():
    assert month_name("2024-03") == "March 2024"
    assert month_short("2024-03") == "03/24"
    assert image_count_label(1) == "1 image"
    assert image_count_label(3) == "3 images"


# Login

def test_login_and_logout():
    controller, _ = make_controller(failing_api())
    controller.open_login_modal()
    assert controller.state.show_login_modal

    assert controller.login("henjuu", "solros45")
    state = controller.state
    assert state.is_authenticated
    assert not state.show_login_modal
    assert (state.username, state.password, state.login_error) == ("", "", "")

    controller.logout()
    assert not state.is_authenticated


def test_login_rejects_wrong_password():
    controller, _ = make_controller(failing_api())
    controller.open_login_modal()

    assert not controller.login("henjuu", "wrong")
    state = controller.state
    assert not state.is_authenticated
    assert state.login_error == "Invalid username or password"
    assert state.username == "henjuu"
    assert state.password == ""
    assert state.show_login_modal

    controller.close_login_modal()
    assert (state.username, state.login_error, state.show_login_modal) == ("", "", False)


# Controller against the service

@pytest.mark.asyncio
async def test_upload_one_jpeg_groups_under_its_month(gallery_api):
    controller, alerts = make_controller(gallery_api)
    controller.login("henjuu", "solros45")

    assert await controller.upload([jpeg()])
    assert alerts.messages == []
    [loaded] = controller.state.images
    assert loaded.month_year == "2024-03"
    assert loaded.date == datetime(2024, 3, 15, 10, 0, tzinfo=UTC)

    rendered = render_gallery(controller.state)
    [section] = rendered.sections
    assert section.heading == "March 2024"
    assert section.count_label == "1 image"


@pytest.mark.asyncio
async def test_uploads_in_two_months_sort_newest_first(gallery_api):
    stamps = iter([datetime(2024, 3, 15, 10, 0, tzinfo=UTC), datetime(2024, 11, 2, 8, 30, tzinfo=UTC)])
    controller, _ = make_controller(gallery_api, clock=lambda: next(stamps))
    controller.login("henjuu", "solros45")

    await controller.upload([jpeg("march.jpg")])
    await controller.upload([jpeg("november.jpg")])

    dates = [img.date for img in controller.state.images]
    assert dates == sorted(dates, reverse=True)
    assert sorted_months(group_by_month(controller.state.images)) == ["2024-11", "2024-03"]


@pytest.mark.asyncio
async def test_upload_leaves_out_non_jpeg_files(gallery_api, stores):
    metadata_store, _ = stores
    controller, _ = make_controller(gallery_api)
    controller.login("henjuu", "solros45")

    batch = controller.build_upload_batch([jpeg(), jpeg("shot.png", "image/png"), jpeg("b.jpg", "image/jpg")])
    assert len(batch) == 2
    assert batch[0]["monthYear"] == "2024-03"
    assert batch[0]["base64"].startswith("data:image/jpeg;base64,")

    await controller.upload([jpeg(), jpeg("notes.txt", "text/plain")])
    assert len(metadata_store.items) == 1
    assert len(controller.state.images) == 1


@pytest.mark.asyncio
async def test_upload_with_no_jpegs_sends_nothing():
    controller, alerts = make_controller(failing_api())
    controller.login("henjuu", "solros45")
    assert not await controller.upload([jpeg("shot.png", "image/png")])
    assert alerts.messages == []


@pytest.mark.asyncio
async def test_upload_requires_login(gallery_api):
    controller, _ = make_controller(gallery_api)
    with pytest.raises(AuthenticationRequired):
        await controller.upload([jpeg()])


@pytest.mark.asyncio
async def test_upload_ignored_while_in_flight():
    controller, alerts = make_controller(failing_api())
    controller.login("henjuu", "solros45")
    controller.state.uploading = True
    assert not await controller.upload([jpeg()])
    assert alerts.messages == []


@pytest.mark.asyncio
async def test_upload_failure_alerts():
    controller, alerts = make_controller(failing_api())
    controller.login("henjuu", "solros45")
    assert not await controller.upload([jpeg()])
    assert alerts.messages == ["Failed to upload images"]
    assert not controller.state.uploading


@pytest.mark.asyncio
async def test_delete_reloads_list(gallery_api):
    controller, _ = make_controller(gallery_api)
    controller.login("henjuu", "solros45")
    await controller.upload([jpeg(), jpeg("second.jpg")])
    assert len(controller.state.images) == 2

    assert await controller.delete(controller.state.images[0].id)
    assert len(controller.state.images) == 1


@pytest.mark.asyncio
async def test_delete_unknown_image_alerts_and_keeps_list(gallery_api):
    controller, alerts = make_controller(gallery_api)
    controller.login("henjuu", "solros45")
    await controller.upload([jpeg()])
    before = list(controller.state.images)

    assert not await controller.delete("1710496800000-zzzzzz.jpg")
    assert alerts.messages == ["Failed to delete image"]
    assert controller.state.images == before
    assert not controller.state.deleting


@pytest.mark.asyncio
async def test_delete_needs_confirmation(gallery_api, stores):
    metadata_store, _ = stores
    controller, _ = make_controller(gallery_api, confirm=Recorder(answer=False))
    controller.login("henjuu", "solros45")
    await controller.upload([jpeg()])

    assert not await controller.delete(controller.state.images[0].id)
    assert len(metadata_store.items) == 1


@pytest.mark.asyncio
async def test_load_failure_ends_loading():
    controller, alerts = make_controller(failing_api())
    await controller.load()
    assert controller.state.images == []
    assert not controller.state.loading
    assert alerts.messages == []


@pytest.mark.asyncio
async def test_api_error_carries_status():
    api = failing_api(404)
    with pytest.raises(GalleryAPIError) as excinfo:
        await api.delete_image("missing.jpg")
    assert excinfo.value.status_code == 404
    assert "boom" in str(excinfo.value)
    await api.aclose()


@pytest.mark.asyncio
async def test_context_manager_loads_and_resets(gallery_api):
    controller, _ = make_controller(gallery_api)
    controller.login("henjuu", "solros45")
    await controller.upload([jpeg()])

    state = GalleryState()
    async with GalleryController(gallery_api, state=state) as reopened:
        assert len(reopened.state.images) == 1
    assert state == GalleryState()


@pytest.mark.asyncio
async def test_load_sorts_mixed_offset_and_naive_dates(client, gallery_api):
    for date, month in (("2024-03-15T10:00:00Z", "2024-03"), ("2024-11-02T08:30:00", "2024-11")):
        body = {"images": [{"base64": data_url(), "date": date, "monthYear": month}]}
        assert (await client.post("/images", json=body)).status_code == 200

    controller, _ = make_controller(gallery_api)
    await controller.load()
    assert not controller.state.loading
    assert [img.month_year for img in controller.state.images] == ["2024-11", "2024-03"]
    assert controller.state.images[0].date == datetime(2024, 11, 2, 8, 30, tzinfo=UTC)


def test_image_data_reads_naive_date_as_utc():
    loaded = ImageData.model_validate({"id": "a.jpg", "date": "2024-11-02T08:30:00", "monthYear": "2024-11"})
    assert loaded.date.tzinfo is not None
