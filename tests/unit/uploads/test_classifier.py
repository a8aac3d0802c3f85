from __future__ import annotations

import pytest

from src.dashboard.uploads.classifier import AspectRatioClassifier, measure
from src.dashboard.uploads.upload_errors import ClassificationError
from src.dashboard.uploads.upload_models import PendingFile
from tests.helpers.images import make_file

pytestmark = pytest.mark.unit


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("width", "height", "expected"),
    [
        (100, 100, True),
        (104, 100, True),
        (100, 104, True),
        (160, 90, False),
        (90, 160, False),
        (106, 100, False),
    ],
)
async def test_square_within_tolerance(width: int, height: int, expected: bool) -> None:
    classifier = AspectRatioClassifier()

    assert await classifier.is_square(make_file("img.png", width, height)) is expected
    assert await classifier.needs_crop(make_file("img.png", width, height)) is not expected


@pytest.mark.asyncio
async def test_undecodable_payload_fails_open() -> None:
    classifier = AspectRatioClassifier()
    broken = PendingFile(filename="broken.png", content_type="image/png", payload=b"not an image")

    assert await classifier.is_square(broken) is True


@pytest.mark.asyncio
async def test_non_image_media_type_is_not_cropped() -> None:
    classifier = AspectRatioClassifier()
    document = PendingFile(filename="notes.txt", content_type="text/plain", payload=b"hello")

    assert await classifier.needs_crop(document) is False


@pytest.mark.asyncio
async def test_custom_tolerance() -> None:
    strict = AspectRatioClassifier(tolerance=0.01)

    assert await strict.is_square(make_file("img.png", 104, 100)) is False


def test_measure_reports_dimensions() -> None:
    assert measure(make_file("img.png", 30, 20).payload) == (30, 20)


def test_measure_rejects_garbage() -> None:
    with pytest.raises(ClassificationError):
        measure(b"\x89PNG garbage")
