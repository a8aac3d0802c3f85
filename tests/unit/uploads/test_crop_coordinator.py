from __future__ import annotations

from typing import Sequence

import pytest

from src.dashboard.uploads.classifier import AspectRatioClassifier
from src.dashboard.uploads.crop_coordinator import CropCoordinator, QueuedFile
from src.dashboard.uploads.previews import PreviewRegistry
from src.dashboard.uploads.upload_errors import CropStateError
from src.dashboard.uploads.upload_models import CropState, PendingFile
from tests.helpers.images import square, wide

pytestmark = pytest.mark.unit


class Recorder:
    def __init__(self) -> None:
        self.dispatched: list[tuple[list[str], list[str]]] = []
        self.discarded: list[list[str]] = []

    def dispatch(self, files: Sequence[PendingFile], keys: Sequence[str]) -> None:
        self.dispatched.append(([item.filename for item in files], list(keys)))

    def discard(self, keys: Sequence[str]) -> None:
        self.discarded.append(list(keys))


def build() -> tuple[CropCoordinator, Recorder, PreviewRegistry]:
    recorder = Recorder()
    previews = PreviewRegistry()
    coordinator = CropCoordinator(
        classifier=AspectRatioClassifier(),
        previews=previews,
        dispatch=recorder.dispatch,
        discard=recorder.discard,
    )
    return coordinator, recorder, previews


@pytest.mark.asyncio
async def test_square_files_before_first_crop_are_dispatched() -> None:
    coordinator, recorder, previews = build()

    await coordinator.start(
        [
            QueuedFile(square("a.png"), "k-a"),
            QueuedFile(wide("b.png"), "k-b"),
            QueuedFile(square("c.png"), "k-c"),
        ]
    )

    assert recorder.dispatched == [(["a.png"], ["k-a"])]
    assert coordinator.state is CropState.AWAITING_CROP
    assert coordinator.active is not None
    assert coordinator.active.source.filename == "b.png"
    assert coordinator.pending_count == 1
    assert previews.active_count == 1


@pytest.mark.asyncio
async def test_complete_uploads_crop_then_drains_square_files() -> None:
    coordinator, recorder, previews = build()
    await coordinator.start(
        [
            QueuedFile(wide("a.png"), "k-a"),
            QueuedFile(square("b.png"), "k-b"),
            QueuedFile(square("c.png"), "k-c"),
        ]
    )

    await coordinator.complete(square("a-cropped.png"))

    assert recorder.dispatched == [
        (["a-cropped.png"], ["k-a"]),
        (["b.png", "c.png"], ["k-b", "k-c"]),
    ]
    assert coordinator.state is CropState.IDLE
    assert coordinator.active is None
    assert previews.active_count == 0


@pytest.mark.asyncio
async def test_jobs_are_shown_in_selection_order() -> None:
    coordinator, recorder, previews = build()
    await coordinator.start(
        [
            QueuedFile(wide("first.png"), "k-1"),
            QueuedFile(square("middle.png"), "k-2"),
            QueuedFile(wide("second.png"), "k-3"),
        ]
    )
    shown = [coordinator.active.source.filename]  # type: ignore[union-attr]

    await coordinator.complete(square("first.png"))
    shown.append(coordinator.active.source.filename)  # type: ignore[union-attr]
    await coordinator.complete(square("second.png"))

    assert shown == ["first.png", "second.png"]
    assert [keys for _, keys in recorder.dispatched] == [["k-1"], ["k-2"], ["k-3"]]
    assert coordinator.state is CropState.IDLE
    assert previews.active_count == 0


@pytest.mark.asyncio
async def test_known_classification_is_not_measured_again() -> None:
    coordinator, _, _ = build()
    undecodable = PendingFile(filename="raw.png", content_type="image/png", payload=b"???")

    await coordinator.start([QueuedFile(undecodable, "k-raw", needs_crop=True)])

    assert coordinator.active is not None
    assert coordinator.active.source.filename == "raw.png"


@pytest.mark.asyncio
async def test_cancel_discards_active_and_queued_files() -> None:
    coordinator, recorder, previews = build()
    await coordinator.start(
        [
            QueuedFile(wide("a.png"), "k-a"),
            QueuedFile(wide("b.png"), "k-b"),
            QueuedFile(square("c.png"), "k-c"),
        ]
    )

    coordinator.cancel()

    assert recorder.dispatched == []
    assert recorder.discarded == [["k-a", "k-b", "k-c"]]
    assert coordinator.state is CropState.IDLE
    assert coordinator.pending_count == 0
    assert previews.active_count == 0


@pytest.mark.asyncio
async def test_complete_without_active_job_raises() -> None:
    coordinator, _, _ = build()

    with pytest.raises(CropStateError):
        await coordinator.complete(square("a.png"))


@pytest.mark.asyncio
async def test_start_while_awaiting_crop_raises() -> None:
    coordinator, _, _ = build()
    await coordinator.start([QueuedFile(wide("a.png"), "k-a")])

    with pytest.raises(CropStateError):
        await coordinator.start([QueuedFile(wide("b.png"), "k-b")])


@pytest.mark.asyncio
async def test_start_with_only_square_files_stays_idle() -> None:
    coordinator, recorder, previews = build()

    await coordinator.start([QueuedFile(square("a.png"), "k-a")])

    assert recorder.dispatched == [(["a.png"], ["k-a"])]
    assert coordinator.state is CropState.IDLE
    assert previews.active_count == 0


@pytest.mark.asyncio
async def test_complete_for_stale_job_is_refused() -> None:
    coordinator, recorder, _ = build()
    await coordinator.start(
        [QueuedFile(wide("a.png"), "k-a"), QueuedFile(wide("b.png"), "k-b")]
    )
    first = coordinator.active
    await coordinator.complete(square("a.png"), first)

    with pytest.raises(CropStateError):
        await coordinator.complete(square("a.png"), first)

    assert recorder.dispatched == [(["a.png"], ["k-a"])]
    assert coordinator.active is not None
    assert coordinator.active.source.filename == "b.png"
