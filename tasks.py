"""
Command-line tasks for running and using the photo gallery.

    invoke serve
    invoke list
    invoke upload --path a.jpg --path b.jpg --username ... --password ...
    invoke delete --image-id 1710496800000-abc123.jpg --username ... --password ...
    invoke render --output gallery.html
"""

import asyncio
import mimetypes
import os

import structlog
from invoke import Context, task

from gallery.client.api import GalleryAPI
from gallery.client.controller import GalleryController, SelectedFile
from gallery.client.grouping import image_count_label, month_name
from gallery.client.render import render_gallery
from gallery.logging_config import configure_logging

logger = structlog.get_logger()


def _controller(confirm=lambda message: True) -> GalleryController:
    return GalleryController(GalleryAPI(), alert=lambda message: print(f"! {message}"), confirm=confirm)


def _read_file(path: str) -> SelectedFile:
    content_type = mimetypes.guess_type(path)[0] or "application/octet-stream"
    with open(path, "rb") as f:
        return SelectedFile(name=os.path.basename(path), content_type=content_type, data=f.read())


@task
def serve(c: Context, host: str = "0.0.0.0", port: int = 8000, reload: bool = False):
    """Run the gallery service under uvicorn."""
    import uvicorn

    uvicorn.run("gallery.main:app", host=host, port=port, reload=reload)


@task
def health(c: Context):
    """Check that the gallery service answers."""
    async def run():
        async with GalleryAPI() as api:
            return await api.health()

    print(asyncio.run(run()))


@task(name="list")
def list_images(c: Context):
    """Print the gallery grouped by month, newest first."""
    configure_logging()

    async def run():
        async with _controller() as controller:
            return render_gallery(controller.state)

    rendered = asyncio.run(run())
    if not rendered.sections:
        print("No images uploaded yet")
    for section in rendered.sections:
        print(f"{month_name(section.month_year)} ({image_count_label(len(section.images))})")
        for image in section.images:
            print(f"  {image.date.isoformat()}  {image.id}")


@task(iterable=["path"])
def upload(c: Context, path, username: str = "", password: str = ""):
    """
    Upload JPEG files in one batch.

    Args:
        c (Context): Invoke context.
        path (list[str]): Files to upload; non-JPEG files are left out.
        username (str): Gallery username.
        password (str): Gallery password.
    """
    configure_logging()
    files = [_read_file(p) for p in path]

    async def run():
        async with _controller() as controller:
            if not controller.login(username, password):
                print(controller.state.login_error)
                return False
            ok = await controller.upload(files)
            if ok:
                print(f"Gallery now holds {image_count_label(len(controller.state.images))}")
            return ok

    if not asyncio.run(run()):
        logger.error("Upload did not complete", files=len(files))


@task
def delete(c: Context, image_id: str, username: str = "", password: str = "", yes: bool = False):
    """Delete one image by id."""
    configure_logging()

    def ask(message: str) -> bool:
        return yes or input(f"{message} [y/N] ").strip().lower() in ("y", "yes")

    async def run():
        async with _controller(confirm=ask) as controller:
            if not controller.login(username, password):
                print(controller.state.login_error)
                return False
            return await controller.delete(image_id)

    if asyncio.run(run()):
        print(f"Deleted {image_id}")


@task
def render(c: Context, output: str = "gallery.html"):
    """Write the gallery as a single HTML page."""
    configure_logging()

    async def run():
        async with _controller() as controller:
            return render_gallery(controller.state)

    rendered = asyncio.run(run())
    with open(output, "w", encoding="utf-8") as f:
        f.write(rendered.html)
    logger.info("Gallery rendered", output=output, months=len(rendered.sections))
