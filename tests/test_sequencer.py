import asyncio
import json

import httpx
import pytest

from script_writer.errors import (
    InvalidTransitionError,
    PreconditionError,
    StoreError,
    TransportError,
    UpstreamError,
)
from script_writer.generation.transport import ServiceReply
from script_writer.models import Episode, GenerationSession, PhasePlan, SessionStatus

from fakes import (
    FakeTransport,
    MemoryStore,
    batch_reply,
    completion,
    episode,
    make_openai_transport,
    make_phases,
    make_sequencer,
)


def assert_contiguous(session):
    for k, unit in enumerate(session.produced_units):
        assert unit.number == k + 1


@pytest.mark.asyncio
async def test_two_phase_plan_end_to_end(store):
    transport = FakeTransport([batch_reply(1, 2), batch_reply(3, 1)])
    sequencer = make_sequencer(transport, store)

    session = await sequencer.run(make_phases(2, 1))

    assert [u.number for u in session.produced_units] == [1, 2, 3]
    assert session.status == SessionStatus.COMPLETE
    assert len(store.saved) == 2
    assert store.last.status == SessionStatus.COMPLETE
    assert store.last.produced_units == session.produced_units


@pytest.mark.asyncio
async def test_unit_counts_after_each_phase(store):
    counts = [3, 2, 4]
    transport = FakeTransport([batch_reply(1, 3), batch_reply(4, 2), batch_reply(6, 4)])
    sequencer = make_sequencer(transport, store)

    session = await sequencer.run(make_phases(*counts))

    assert [len(s.produced_units) for s in store.saved] == [3, 5, 9]
    assert [s.completed_phases for s in store.saved] == [1, 2, 3]
    assert [s.status for s in store.saved] == [
        SessionStatus.COMMITTED, SessionStatus.COMMITTED, SessionStatus.COMPLETE,
    ]
    assert_contiguous(session)


@pytest.mark.asyncio
async def test_schema_error_in_phase_three_of_five(store, sleeps):
    transport = FakeTransport([
        batch_reply(1, 2),
        batch_reply(3, 2),
        batch_reply(6, 2),  # skips episode 5
    ])
    sequencer = make_sequencer(transport, store, sleep=sleeps)

    session = await sequencer.run(make_phases(2, 2, 2, 2, 2))

    assert session.status == SessionStatus.PARTIAL
    assert [u.number for u in session.produced_units] == [1, 2, 3, 4]
    assert session.completed_phases == 2
    assert "Phase 3" in session.error
    # no retries for schema errors and no further phases attempted
    assert len(transport.requests) == 3
    assert sleeps.delays == []
    assert store.last.status == SessionStatus.PARTIAL
    assert store.last.produced_units == session.produced_units
    assert store.last.model_dump() == session.model_dump()


@pytest.mark.asyncio
async def test_transient_failures_are_retried_within_a_phase(store, sleeps):
    transport = FakeTransport([
        batch_reply(1, 1),
        UpstreamError(429, "rate limited"),
        TransportError("connection reset"),
        batch_reply(2, 2),
    ])
    sequencer = make_sequencer(transport, store, sleep=sleeps)

    session = await sequencer.run(make_phases(1, 2))

    assert session.status == SessionStatus.COMPLETE
    assert len(sleeps.delays) == 2
    assert len(store.saved) == 2
    assert_contiguous(session)


@pytest.mark.asyncio
async def test_exhausted_retries_end_partial(store, sleeps):
    transport = FakeTransport([batch_reply(1, 2)] + [UpstreamError(500, "down")] * 4)
    sequencer = make_sequencer(transport, store, sleep=sleeps)

    session = await sequencer.run(make_phases(2, 3, 1))

    assert session.status == SessionStatus.PARTIAL
    assert len(session.produced_units) == 2
    assert len(sleeps.delays) == 3
    assert "4 attempts" in session.error
    assert store.last.status == SessionStatus.PARTIAL


@pytest.mark.asyncio
async def test_failure_in_first_phase_keeps_empty_session(store):
    transport = FakeTransport([UpstreamError(401, "invalid key")])
    session = await make_sequencer(transport, store).run(make_phases(2, 2))

    assert session.status == SessionStatus.PARTIAL
    assert session.produced_units == []
    assert len(store.saved) == 1


@pytest.mark.asyncio
async def test_continuity_and_history_are_threaded(store):
    last = episode(2, title="Cliffhanger", content="x" * 600 + "THE DOOR OPENED")
    first_reply = ServiceReply(
        content_type="application/json",
        text=json.dumps({"units": [episode(1), last], "adaptationSummary": "dropped the aunt"}),
    )
    transport = FakeTransport([first_reply, batch_reply(3, 1, summary="introduced the mentor")])
    sequencer = make_sequencer(transport, store)

    session = await sequencer.run(make_phases(2, 1), seed_context="")

    second = transport.requests[1].user_content
    assert "THE DOOR OPENED" in second
    assert "Cliffhanger" in second
    assert "dropped the aunt" in second
    assert "x" * 501 not in second
    assert session.adaptation_history == "[Phase 1] dropped the aunt\n[Phase 2] introduced the mentor"
    assert session.last_context.startswith("[Ending of episode 3]")


@pytest.mark.asyncio
async def test_seed_context_feeds_first_request(store):
    transport = FakeTransport([batch_reply(1, 1)])
    await make_sequencer(transport, store).run(make_phases(1), seed_context="PROLOGUE ENDING")
    assert "PROLOGUE ENDING" in transport.requests[0].user_content


@pytest.mark.asyncio
async def test_phases_run_strictly_in_order(store):
    seen = []

    def reply_for(start, count):
        def _reply(request):
            seen.append(request.user_content)
            return batch_reply(start, count)
        return _reply

    transport = FakeTransport([reply_for(1, 1), reply_for(2, 1), reply_for(3, 1)])
    phases = make_phases(1, 1, 1)
    await make_sequencer(transport, store).run(phases)

    assert [p in content for p, content in zip(["phase 1", "phase 2", "phase 3"], seen)] == [True] * 3


@pytest.mark.asyncio
async def test_events_report_progress(store):
    transport = FakeTransport([batch_reply(1, 2), batch_reply(3, 1)])
    sequencer = make_sequencer(transport, store)

    events = [e async for e in sequencer.iterate(make_phases(2, 1))]

    assert [(e.phase_index, e.units_so_far, e.status) for e in events] == [
        (1, 0, SessionStatus.RUNNING),
        (1, 2, SessionStatus.COMMITTED),
        (2, 2, SessionStatus.RUNNING),
        (2, 3, SessionStatus.COMPLETE),
    ]


@pytest.mark.asyncio
async def test_unordered_plan_is_rejected(store):
    phases = [
        PhasePlan(phase_index=2, episode_count=1),
        PhasePlan(phase_index=1, episode_count=1),
    ]
    transport = FakeTransport()
    with pytest.raises(PreconditionError):
        await make_sequencer(transport, store).run(phases)
    assert transport.requests == []
    assert store.saved == []


@pytest.mark.asyncio
async def test_empty_plan_is_rejected(store):
    with pytest.raises(PreconditionError):
        await make_sequencer(FakeTransport(), store).run([])


@pytest.mark.asyncio
async def test_cancel_between_phases_keeps_committed_units(store):
    transport = FakeTransport([batch_reply(1, 2), batch_reply(3, 2)])
    sequencer = make_sequencer(transport, store)

    events = []
    async for event in sequencer.iterate(make_phases(2, 2)):
        events.append(event)
        if event.status == SessionStatus.COMMITTED:
            sequencer.request_cancel()

    session = sequencer.session
    assert session.status == SessionStatus.CANCELLED
    assert len(session.produced_units) == 2
    assert len(transport.requests) == 1
    assert store.last.status == SessionStatus.CANCELLED
    assert events[-1].status == SessionStatus.CANCELLED


@pytest.mark.asyncio
async def test_task_cancellation_mid_phase(store):
    started = asyncio.Event()

    class SlowTransport(FakeTransport):
        async def send(self, request):
            if len(self.requests) == 1:
                self.requests.append(request)
                started.set()
                await asyncio.sleep(3600)
            return await super().send(request)

    transport = SlowTransport([batch_reply(1, 1)])
    sequencer = make_sequencer(transport, store)
    task = asyncio.create_task(sequencer.run(make_phases(1, 1)))

    await started.wait()
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    session = sequencer.session
    assert session.status == SessionStatus.CANCELLED
    assert [u.number for u in session.produced_units] == [1]
    assert store.last.status == SessionStatus.CANCELLED


@pytest.mark.asyncio
async def test_resume_partial_session(store, sleeps):
    first = FakeTransport([batch_reply(1, 2), UpstreamError(400, "bad")])
    partial = await make_sequencer(first, store, sleep=sleeps).run(make_phases(2, 2, 1))
    assert partial.status == SessionStatus.PARTIAL

    stored = await store.load("demo")
    second = FakeTransport([batch_reply(3, 2), batch_reply(5, 1)])
    sequencer = make_sequencer(second, store)

    session = await sequencer.resume(stored)

    assert session.status == SessionStatus.COMPLETE
    assert [u.number for u in session.produced_units] == [1, 2, 3, 4, 5]
    assert session.error is None
    assert "Ending of episode 2" in second.requests[0].user_content


@pytest.mark.asyncio
async def test_resume_rejects_complete_session(store):
    session = await make_sequencer(FakeTransport([batch_reply(1, 1)]), store).run(make_phases(1))
    with pytest.raises(PreconditionError, match="nothing to resume"):
        await make_sequencer(FakeTransport(), store).resume(session)


@pytest.mark.asyncio
async def test_resume_rejects_inconsistent_snapshot(store):
    session = GenerationSession(
        project_id="demo",
        phases=make_phases(2, 2),
        produced_units=[],
        completed_phases=1,
        status=SessionStatus.PARTIAL,
    )
    with pytest.raises(PreconditionError, match="account for 2"):
        await make_sequencer(FakeTransport(), store).resume(session)


@pytest.mark.asyncio
async def test_store_failure_ends_partial_without_losing_units(sleeps):
    store = MemoryStore(fail_with=[StoreError("disk full")])
    transport = FakeTransport([batch_reply(1, 2), batch_reply(3, 1)])

    session = await make_sequencer(transport, store, sleep=sleeps).run(make_phases(2, 1))

    assert session.status == SessionStatus.PARTIAL
    assert [u.number for u in session.produced_units] == [1, 2]
    assert "disk full" in session.error
    assert len(transport.requests) == 1


@pytest.mark.asyncio
async def test_transient_store_failure_is_retried(sleeps):
    store = MemoryStore(fail_with=[StoreError("busy", status=503)])
    transport = FakeTransport([batch_reply(1, 1)])

    session = await make_sequencer(transport, store, sleep=sleeps).run(make_phases(1))

    assert session.status == SessionStatus.COMPLETE
    assert len(store.saved) == 1
    assert len(sleeps.delays) == 1


def test_session_state_machine_rejects_illegal_moves():
    session = GenerationSession(project_id="demo", phases=make_phases(1))
    with pytest.raises(InvalidTransitionError):
        session.transition(SessionStatus.COMPLETE)
    session.transition(SessionStatus.RUNNING)
    session.transition(SessionStatus.COMPLETE)
    with pytest.raises(InvalidTransitionError):
        session.transition(SessionStatus.RUNNING)


@pytest.mark.asyncio
async def test_truncated_service_body_ends_partial(store, sleeps):
    replies = iter([
        httpx.Response(200, json=completion(batch_reply(1, 1).text)),
        httpx.Response(200, text='{"id": "x", "choi', headers={"content-type": "application/json"}),
    ])
    transport, seen = make_openai_transport(lambda r: next(replies))

    session = await make_sequencer(transport, store, sleep=sleeps).run(make_phases(1, 1))

    assert session.status == SessionStatus.PARTIAL
    assert [u.number for u in session.produced_units] == [1]
    assert "Malformed completion" in session.error
    assert len(seen) == 2
    assert sleeps.delays == []
    assert store.last.status == SessionStatus.PARTIAL


@pytest.mark.asyncio
@pytest.mark.parametrize("stopped_as", [SessionStatus.PARTIAL, SessionStatus.CANCELLED])
async def test_cancel_before_first_resumed_phase(store, stopped_as):
    session = GenerationSession(project_id="demo", phases=make_phases(1, 1))
    session.transition(SessionStatus.RUNNING)
    session.commit_phase([Episode(number=1, title="t", content="c")], "", "")
    if stopped_as == SessionStatus.PARTIAL:
        session.transition(SessionStatus.FAILED)
    session.transition(stopped_as)

    transport = FakeTransport([batch_reply(2, 1)])
    sequencer = make_sequencer(transport, store)
    events = sequencer.attach(session)
    sequencer.request_cancel()
    seen = [e async for e in events]

    assert session.status == SessionStatus.CANCELLED
    assert seen[-1].status == SessionStatus.CANCELLED
    assert transport.requests == []
    assert store.last.status == SessionStatus.CANCELLED
    assert len(store.last.produced_units) == 1


@pytest.mark.asyncio
async def test_cancelled_sequencer_can_run_again(store):
    transport = FakeTransport([batch_reply(1, 1), batch_reply(2, 1), batch_reply(1, 1)])
    sequencer = make_sequencer(transport, store)
    async for event in sequencer.iterate(make_phases(1, 1)):
        if event.status == SessionStatus.COMMITTED:
            sequencer.request_cancel()
    cancelled = sequencer.session
    assert cancelled.status == SessionStatus.CANCELLED

    resumed = await sequencer.resume(cancelled)
    assert resumed.status == SessionStatus.COMPLETE
    assert [u.number for u in resumed.produced_units] == [1, 2]

    fresh = await sequencer.run(make_phases(1))
    assert fresh.status == SessionStatus.COMPLETE
