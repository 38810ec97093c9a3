"""Tests for ImageLinkValidator."""

from __future__ import annotations

import asyncio

import httpx
import pytest

from mojo.images import ImageLinkValidator, sanitize_url


def _handler(request: httpx.Request) -> httpx.Response:
    path = request.url.path
    if path.endswith(".png"):
        return httpx.Response(200, headers={"content-type": "image/png"})
    if path.endswith(".html"):
        return httpx.Response(200, headers={"content-type": "text/html; charset=utf-8"})
    if path.endswith("missing.jpg"):
        return httpx.Response(404, headers={"content-type": "image/jpeg"})
    raise httpx.ConnectError("unreachable", request=request)


def _validator(timeout: float = 1.0) -> ImageLinkValidator:
    return ImageLinkValidator(timeout_seconds=timeout, transport=httpx.MockTransport(_handler))


@pytest.mark.asyncio
async def test_image_content_type_is_valid():
    assert await _validator().is_valid_image("https://img.test/a.png") is True


@pytest.mark.asyncio
async def test_html_content_type_is_invalid():
    assert await _validator().is_valid_image("https://img.test/page.html") is False


@pytest.mark.asyncio
async def test_error_status_is_invalid():
    assert await _validator().is_valid_image("https://img.test/missing.jpg") is False


@pytest.mark.asyncio
async def test_network_error_is_invalid():
    assert await _validator().is_valid_image("https://img.test/down") is False


@pytest.mark.asyncio
async def test_slow_probe_times_out_as_invalid():
    async def slow(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(1)
        return httpx.Response(200, headers={"content-type": "image/png"})

    validator = ImageLinkValidator(timeout_seconds=0.05, transport=httpx.MockTransport(slow))
    assert await validator.is_valid_image("https://img.test/slow.png") is False


@pytest.mark.asyncio
async def test_filter_images_keeps_order_and_drops_bad_entries():
    images = [
        {"url": "https://img.test/b.png", "description": "second"},
        {"url": "https://img.test/page.html", "description": "page"},
        {"url": "https://img.test/a.png", "description": "first"},
        {"url": "https://img.test/c.png", "description": ""},
        {"url": "", "description": "no url"},
    ]
    kept = await _validator().filter_images(images)
    assert kept == [
        {"url": "https://img.test/b.png", "description": "second"},
        {"url": "https://img.test/a.png", "description": "first"},
    ]


def test_sanitize_url_encodes_whitespace():
    assert sanitize_url("https://img.test/a b.png") == "https://img.test/a%20b.png"


@pytest.mark.asyncio
async def test_unparseable_url_is_invalid():
    assert await _validator().is_valid_image("https://img.test/\x00.png") is False


@pytest.mark.asyncio
async def test_filter_images_survives_unparseable_url():
    images = [
        {"url": "https://img.test/\x00.png", "description": "control character"},
        {"url": "https://img.test/a.png", "description": "first"},
    ]
    assert await _validator().filter_images(images) == [{"url": "https://img.test/a.png", "description": "first"}]
