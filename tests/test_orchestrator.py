from __future__ import annotations

import asyncio

import pytest

from pricescan.core.exceptions import (
    RECOGNITION_CREDENTIALS_MISSING,
    ConfigurationError,
    MalformedResponseError,
    ServiceUnavailableError,
)
from pricescan.domain.scan.dispatch_queue import DispatchQueue
from pricescan.domain.scan.models import (
    ImagePayload,
    OutcomeStatus,
    RecognitionResult,
    ResultSource,
    ScanRecord,
    ScanState,
)
from pricescan.domain.scan.orchestrator import (
    MSG_CAMERA_NOT_READY,
    MSG_NOT_FOUND,
    MSG_SKIPPED,
    ScanOrchestrator,
)
from tests.fakes import (
    FakeCart,
    FakeClock,
    FakeCropper,
    FakeFrameSource,
    FakeNotifier,
    FakeRecognition,
    echo_text,
)


def _orchestrator(
    clock: FakeClock,
    cart: FakeCart,
    notifier: FakeNotifier,
    client: FakeRecognition,
    *,
    frame_source: FakeFrameSource | None = None,
    cropper: FakeCropper | None = None,
    spacing_ms: int = 0,
    dedup_window_ms: int = 3000,
) -> ScanOrchestrator:
    return ScanOrchestrator(
        frame_source=frame_source or FakeFrameSource(),
        cropper=cropper or FakeCropper(),
        queue=DispatchQueue(client, spacing_ms=spacing_ms, clock=clock),
        cart=cart,
        clock=clock,
        notifier=notifier,
        dedup_window_ms=dedup_window_ms,
    )


async def _settle(rounds: int = 5) -> None:
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.mark.asyncio
async def test_image_scan_accepted_from_remote(clock: FakeClock, cart: FakeCart, notifier: FakeNotifier) -> None:
    client = FakeRecognition(clock, script=[RecognitionResult(price_candidate=4830, product_name_candidate="한우 등심")])
    cropper = FakeCropper()
    orch = _orchestrator(clock, cart, notifier, client, cropper=cropper)

    outcome = await orch.trigger()

    assert outcome.status == OutcomeStatus.ACCEPTED
    assert outcome.source == ResultSource.REMOTE
    assert outcome.message == "Added 한우 등심 4,830원"
    assert cart.records == [ScanRecord(name="한우 등심", price=4830)]
    assert notifier.messages == ["Added 한우 등심 4,830원"]
    assert orch.state == ScanState.IDLE

    # the mapped guide region was cropped and sent as an image payload
    assert cropper.rects[0].width == pytest.approx(460.8)
    assert isinstance(client.calls[0], ImagePayload)
    assert client.calls[0].content.startswith("data:image/jpeg;base64,")


@pytest.mark.asyncio
async def test_duplicate_within_window(clock: FakeClock, cart: FakeCart, notifier: FakeNotifier) -> None:
    script = [RecognitionResult(price_candidate=5000, product_name_candidate="우유")] * 3
    orch = _orchestrator(clock, cart, notifier, FakeRecognition(clock, script=script))

    first = await orch.trigger()
    clock.advance(1.0)
    second = await orch.trigger()
    clock.advance(3.0)
    third = await orch.trigger()

    assert [o.status for o in (first, second, third)] == [
        OutcomeStatus.ACCEPTED,
        OutcomeStatus.DUPLICATE,
        OutcomeStatus.ACCEPTED,
    ]
    assert second.message == "Already scanned: 5,000원"
    assert len(cart.records) == 2
    assert orch.dedup_state.last_accepted_at == pytest.approx(4.0)


@pytest.mark.asyncio
async def test_different_price_is_not_a_duplicate(clock: FakeClock, cart: FakeCart, notifier: FakeNotifier) -> None:
    script = [RecognitionResult(price_candidate=5000), RecognitionResult(price_candidate=5100)]
    orch = _orchestrator(clock, cart, notifier, FakeRecognition(clock, script=script))

    await orch.trigger()
    clock.advance(0.5)
    outcome = await orch.trigger()

    assert outcome.status == OutcomeStatus.ACCEPTED
    assert [r.price for r in cart.records] == [5000, 5100]


@pytest.mark.asyncio
async def test_duplicate_does_not_refresh_window(clock: FakeClock, cart: FakeCart, notifier: FakeNotifier) -> None:
    script = [RecognitionResult(price_candidate=5000)] * 3
    orch = _orchestrator(clock, cart, notifier, FakeRecognition(clock, script=script))

    await orch.trigger()
    clock.advance(2.0)
    assert (await orch.trigger()).status == OutcomeStatus.DUPLICATE
    clock.advance(1.0)
    assert (await orch.trigger()).status == OutcomeStatus.ACCEPTED


@pytest.mark.asyncio
async def test_trigger_skipped_while_request_outstanding(
    clock: FakeClock, cart: FakeCart, notifier: FakeNotifier
) -> None:
    client = FakeRecognition(clock, script=[RecognitionResult(price_candidate=1200)])
    client.gate = asyncio.Event()
    orch = _orchestrator(clock, cart, notifier, client)

    pending = asyncio.create_task(orch.trigger())
    await _settle()
    assert orch.has_outstanding_request
    assert orch.state == ScanState.AWAITING_RESULT

    skipped = await orch.trigger()
    assert skipped.status == OutcomeStatus.SKIPPED
    assert skipped.message == MSG_SKIPPED
    assert len(client.calls) == 1

    client.gate.set()
    outcome = await pending
    assert outcome.status == OutcomeStatus.ACCEPTED
    assert not orch.has_outstanding_request
    assert len(cart.records) == 1


@pytest.mark.asyncio
async def test_remote_failure_on_image_fails_cycle(clock: FakeClock, cart: FakeCart, notifier: FakeNotifier) -> None:
    client = FakeRecognition(clock, script=[ServiceUnavailableError("down", status_code=503)])
    orch = _orchestrator(clock, cart, notifier, client)

    outcome = await orch.trigger()

    assert outcome.status == OutcomeStatus.FAILED
    assert outcome.message == MSG_NOT_FOUND
    assert outcome.source == ResultSource.NONE
    assert cart.records == []
    assert notifier.messages == [MSG_NOT_FOUND]
    assert orch.remote_enabled
    assert orch.state == ScanState.IDLE


@pytest.mark.asyncio
async def test_malformed_response_fails_cycle_and_next_one_works(
    clock: FakeClock, cart: FakeCart, notifier: FakeNotifier
) -> None:
    script = [MalformedResponseError("bad shape"), RecognitionResult(price_candidate=2980)]
    orch = _orchestrator(clock, cart, notifier, FakeRecognition(clock, script=script))

    assert (await orch.trigger()).status == OutcomeStatus.FAILED
    assert (await orch.trigger()).status == OutcomeStatus.ACCEPTED


@pytest.mark.asyncio
async def test_text_scan_falls_back_to_heuristic_on_remote_failure(
    clock: FakeClock, cart: FakeCart, notifier: FakeNotifier
) -> None:
    client = FakeRecognition(clock, script=[ServiceUnavailableError("down")])
    orch = _orchestrator(clock, cart, notifier, client)

    outcome = await orch.scan_text("한우 등심\n4,830원\n100g")

    assert outcome.status == OutcomeStatus.ACCEPTED
    assert outcome.source == ResultSource.HEURISTIC
    assert cart.records == [ScanRecord(name="한우 등심", price=4830)]


@pytest.mark.asyncio
async def test_text_scan_falls_back_when_remote_finds_no_price(
    clock: FakeClock, cart: FakeCart, notifier: FakeNotifier
) -> None:
    client = FakeRecognition(clock, script=[echo_text(None)])
    orch = _orchestrator(clock, cart, notifier, client)

    outcome = await orch.scan_text("바나나 우유\n1,500원")

    assert outcome.source == ResultSource.HEURISTIC
    assert outcome.record == ScanRecord(name="바나나 우유", price=1500)


@pytest.mark.asyncio
async def test_remote_price_wins_over_heuristic(clock: FakeClock, cart: FakeCart, notifier: FakeNotifier) -> None:
    client = FakeRecognition(clock, script=[echo_text(9900, "할인 상품")])
    orch = _orchestrator(clock, cart, notifier, client)

    outcome = await orch.scan_text("정가 12,900원\n할인가 9,900원")

    assert outcome.source == ResultSource.REMOTE
    assert outcome.record == ScanRecord(name="할인 상품", price=9900)


@pytest.mark.asyncio
async def test_configuration_error_disables_remote_path(
    clock: FakeClock, cart: FakeCart, notifier: FakeNotifier
) -> None:
    error = ConfigurationError("GEMINI_API_KEY is not set", error_code=RECOGNITION_CREDENTIALS_MISSING)
    client = FakeRecognition(clock, script=[error, RecognitionResult(price_candidate=9999)])
    orch = _orchestrator(clock, cart, notifier, client)

    first = await orch.scan_text("사과\n1,200원")
    assert not orch.remote_enabled
    assert first.status == OutcomeStatus.ACCEPTED
    assert first.source == ResultSource.HEURISTIC

    second = await orch.scan_text("배\n2,400원")
    assert second.source == ResultSource.HEURISTIC
    assert second.record == ScanRecord(name="배", price=2400)
    assert len(client.calls) == 1

    # images have no local fallback once the remote path is off
    assert (await orch.trigger()).status == OutcomeStatus.FAILED
    assert len(client.calls) == 1


@pytest.mark.asyncio
async def test_zero_sized_frame_reports_camera_not_ready(
    clock: FakeClock, cart: FakeCart, notifier: FakeNotifier
) -> None:
    client = FakeRecognition(clock)
    orch = _orchestrator(clock, cart, notifier, client, frame_source=FakeFrameSource(frame_size=(0, 0)))

    outcome = await orch.trigger()

    assert outcome.status == OutcomeStatus.FAILED
    assert outcome.message == MSG_CAMERA_NOT_READY
    assert client.calls == []
    assert orch.state == ScanState.IDLE


@pytest.mark.asyncio
async def test_missing_name_uses_placeholder(clock: FakeClock, cart: FakeCart, notifier: FakeNotifier) -> None:
    orch = _orchestrator(clock, cart, notifier, FakeRecognition(clock, script=[RecognitionResult(price_candidate=1500)]))

    outcome = await orch.trigger()

    assert outcome.record == ScanRecord(name="Unknown Item", price=1500)
    assert notifier.messages == ["Added Unknown Item 1,500원"]


@pytest.mark.asyncio
async def test_close_detaches_outstanding_request(clock: FakeClock, cart: FakeCart, notifier: FakeNotifier) -> None:
    script = [
        RecognitionResult(price_candidate=5000),
        RecognitionResult(price_candidate=7000),
        RecognitionResult(price_candidate=5000),
    ]
    client = FakeRecognition(clock, script=script)
    orch = _orchestrator(clock, cart, notifier, client)

    await orch.trigger()
    assert orch.dedup_state.last_accepted_price == 5000

    client.gate = asyncio.Event()
    pending = asyncio.create_task(orch.trigger())
    await _settle()
    assert orch.has_outstanding_request

    orch.close()
    assert not orch.has_outstanding_request
    assert orch.dedup_state.last_accepted_price is None

    client.gate.set()
    detached = await pending
    assert detached.status == OutcomeStatus.SKIPPED
    assert [r.price for r in cart.records] == [5000]

    # fresh session: the same price is accepted again immediately
    outcome = await orch.trigger()
    assert outcome.status == OutcomeStatus.ACCEPTED
    assert [r.price for r in cart.records] == [5000, 5000]


@pytest.mark.asyncio
async def test_triggers_are_spaced_by_the_queue(clock: FakeClock, cart: FakeCart, notifier: FakeNotifier) -> None:
    script = [RecognitionResult(price_candidate=1000 + i) for i in range(3)]
    client = FakeRecognition(clock, script=script)
    orch = _orchestrator(clock, cart, notifier, client, spacing_ms=1500)

    for _ in range(3):
        await orch.trigger()

    assert client.call_times == pytest.approx([0.0, 1.5, 3.0])
    assert len(cart.records) == 3


@pytest.mark.asyncio
async def test_zero_remote_price_is_not_accepted(clock: FakeClock, cart: FakeCart, notifier: FakeNotifier) -> None:
    client = FakeRecognition(clock, script=[RecognitionResult(price_candidate=0), echo_text(0, "사과")])
    orch = _orchestrator(clock, cart, notifier, client)

    image = await orch.trigger()
    assert image.status == OutcomeStatus.FAILED
    assert image.message == MSG_NOT_FOUND

    text = await orch.scan_text("사과\n1,200원")
    assert text.source == ResultSource.HEURISTIC
    assert cart.records == [ScanRecord(name="사과", price=1200)]
