"""Tests for the Live Activity sync bridge."""

import asyncio

import pytest

from core.models import AccessStatus, ActivityState, OutcomeKind, SessionHandle
from core.services.live_activity import LiveActivityBridge

from conftest import RecordingDisplay


@pytest.fixture
def display():
    return RecordingDisplay()


@pytest.fixture
def bridge(assignments, folders, display, clock):
    return LiveActivityBridge(
        assignments,
        folders,
        display,
        timeout=0.05,
        completion_delay=0.01,
        capture_settle=0.0,
        clock=clock,
    )


def test_capture_starts_session_with_folder_list(bridge, display, folders, abc_source):
    work = folders.create("Work")
    home = folders.create("Home")

    handle = asyncio.run(bridge.screenshot_captured("B"))

    assert handle == SessionHandle("session-1")
    assert bridge.state is ActivityState.STARTED
    [(started_handle, snapshot)] = display.started
    assert started_handle == handle
    assert snapshot.screenshot_asset_ref == "B"
    assert [f.id for f in snapshot.folders] == [work.id, home.id]
    assert snapshot.selected_folder_id is None
    assert snapshot.saved_successfully is None


def test_capture_without_ref_uses_latest_screenshot(bridge, display, abc_source):
    asyncio.run(bridge.screenshot_captured())

    assert display.started[0][1].screenshot_asset_ref == "C"


def test_capture_without_library_access_shows_nothing(bridge, display, abc_source):
    abc_source.status = AccessStatus.DENIED

    assert asyncio.run(bridge.screenshot_captured()) is None
    assert display.started == []
    assert bridge.state is ActivityState.IDLE


def test_unavailable_display_leaves_bridge_idle(assignments, folders, clock, abc_source):
    display = RecordingDisplay(available=False)
    bridge = LiveActivityBridge(assignments, folders, display, clock=clock)

    assert asyncio.run(bridge.screenshot_captured("A")) is None
    assert bridge.state is ActivityState.IDLE
    assert bridge.handle is None


def test_selection_files_screenshot_then_tears_down(bridge, display, folders, catalog, abc_source):
    work = folders.create("Work")

    async def scenario():
        handle = await bridge.screenshot_captured("B")
        outcome = await bridge.folder_selected(handle, work.id)
        assert bridge.state is ActivityState.COMPLETED
        await asyncio.sleep(0.1)
        return outcome

    outcome = asyncio.run(scenario())

    assert outcome.kind is OutcomeKind.ASSIGNED
    assert catalog.find_assignment("B", work) is not None
    saving, done = (snapshot for _, snapshot in display.updates)
    assert saving.is_saving and saving.selected_folder_id == work.id
    assert not done.is_saving and done.saved_successfully is True
    [(_, final)] = display.ended
    assert final.folders == ()
    assert final.selected_folder_id is None
    assert final.saved_successfully is None
    assert bridge.state is ActivityState.IDLE


def test_snapshot_versions_increase(bridge, display, folders, abc_source):
    work = folders.create("Work")

    async def scenario():
        handle = await bridge.screenshot_captured("A")
        await bridge.folder_selected(handle, work.id)
        await bridge.end()

    asyncio.run(scenario())

    versions = [display.started[0][1].version]
    versions += [s.version for _, s in display.updates]
    versions += [s.version for _, s in display.ended]
    assert versions == sorted(set(versions))


def test_selection_of_already_filed_screenshot_succeeds(
    bridge, display, folders, assignments, abc_source
):
    work = folders.create("Work")
    assignments.assign_to_folder("A", work)

    async def scenario():
        handle = await bridge.screenshot_captured("A")
        return await bridge.folder_selected(handle, work.id)

    outcome = asyncio.run(scenario())

    assert outcome.kind is OutcomeKind.ALREADY_ASSIGNED
    assert display.updates[-1][1].saved_successfully is True


def test_unknown_folder_reports_failure(bridge, display, catalog, abc_source):
    async def scenario():
        handle = await bridge.screenshot_captured("A")
        return await bridge.folder_selected(handle, "no-such-folder")

    outcome = asyncio.run(scenario())

    assert outcome.kind is OutcomeKind.FAILED
    assert display.updates[-1][1].saved_successfully is False
    assert catalog.all_assigned_asset_refs() == set()


def test_timeout_ends_session_without_assigning(bridge, display, folders, catalog, abc_source):
    folders.create("Work")

    async def scenario():
        await bridge.screenshot_captured("C")
        await asyncio.sleep(0.2)

    asyncio.run(scenario())

    assert len(display.ended) == 1
    assert bridge.state is ActivityState.IDLE
    assert catalog.all_assigned_asset_refs() == set()


def test_selection_for_replaced_session_is_dropped(bridge, display, folders, catalog, abc_source):
    work = folders.create("Work")

    async def scenario():
        first = await bridge.screenshot_captured("A")
        second = await bridge.screenshot_captured("B")
        stale = await bridge.folder_selected(first, work.id)
        return first, second, stale

    first, second, stale = asyncio.run(scenario())

    assert stale is None
    assert first != second
    assert display.ended[0][0] == first
    assert catalog.all_assigned_asset_refs() == set()


def test_second_selection_after_completion_is_dropped(bridge, folders, catalog, abc_source):
    work = folders.create("Work")
    home = folders.create("Home")

    async def scenario():
        handle = await bridge.screenshot_captured("A")
        await bridge.folder_selected(handle, work.id)
        return await bridge.folder_selected(handle, home.id)

    assert asyncio.run(scenario()) is None
    assert catalog.find_assignment("A", home) is None


def test_end_without_session_is_noop(bridge, display):
    asyncio.run(bridge.end())

    assert display.ended == []
    assert bridge.state is ActivityState.IDLE


def test_async_context_ends_session_and_cancels_timeout(bridge, display, abc_source):
    async def scenario():
        async with bridge:
            await bridge.screenshot_captured("A")
            assert bridge.state is ActivityState.STARTED
        await asyncio.sleep(0.1)

    asyncio.run(scenario())

    assert len(display.ended) == 1
    assert bridge.state is ActivityState.IDLE
    assert bridge.handle is None


def test_aclose_without_session_is_noop(bridge, display):
    asyncio.run(bridge.aclose())

    assert display.ended == []
    assert bridge.state is ActivityState.IDLE
