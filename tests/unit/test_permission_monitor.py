# pylint: disable=missing-module-docstring,missing-function-docstring
import asyncio

from adapters.permission.base import CaptureStream, PermissionCallback, PermissionProvider
from adapters.permission.monitor import PermissionMonitor
from orchestrator.enums.permission import PermissionState
from orchestrator.errors import MicrophoneAccessDenied


class FakeStream(CaptureStream):
    def __init__(self) -> None:
        self.released = 0

    def release(self) -> None:
        self.released += 1


class FakeProvider(PermissionProvider):
    def __init__(
        self,
        *,
        state: PermissionState = PermissionState.PROMPT,
        grant: bool = True,
        supports_query: bool = True,
    ) -> None:
        self.state = state
        self.grant = grant
        self.supports_query = supports_query
        self.callback: PermissionCallback | None = None
        self.streams: list[FakeStream] = []

    async def query(self) -> PermissionState:
        if not self.supports_query:
            raise NotImplementedError("no permission API")
        return self.state

    def watch(self, callback: PermissionCallback) -> None:
        self.callback = callback

    async def acquire_stream(self) -> CaptureStream:
        if not self.grant:
            raise MicrophoneAccessDenied("user said no")
        stream = FakeStream()
        self.streams.append(stream)
        return stream


def make_monitor(provider: PermissionProvider | None):
    monitor = PermissionMonitor(provider=provider)
    seen: list[PermissionState] = []

    async def handler(state: PermissionState) -> None:
        seen.append(state)

    monitor.subscribe(handler)
    return monitor, seen


def test_query_is_unknown_before_refresh():
    monitor, _ = make_monitor(FakeProvider())
    assert monitor.query() is PermissionState.UNKNOWN


def test_refresh_caches_and_notifies_once():
    async def run():
        provider = FakeProvider(state=PermissionState.GRANTED)
        monitor, seen = make_monitor(provider)
        await monitor.refresh()
        await monitor.refresh()
        return monitor, seen

    monitor, seen = asyncio.run(run())
    assert monitor.query() is PermissionState.GRANTED
    assert seen == [PermissionState.GRANTED]


def test_refresh_without_permission_api_stays_unknown():
    async def run():
        monitor, seen = make_monitor(FakeProvider(supports_query=False))
        state = await monitor.refresh()
        return state, seen

    state, seen = asyncio.run(run())
    assert state is PermissionState.UNKNOWN
    assert seen == []


def test_platform_changes_are_deduplicated():
    async def run():
        provider = FakeProvider(state=PermissionState.PROMPT)
        monitor, seen = make_monitor(provider)
        await monitor.refresh()

        provider.callback(PermissionState.PROMPT)
        provider.callback(PermissionState.DENIED)
        provider.callback(PermissionState.DENIED)
        for _ in range(5):
            await asyncio.sleep(0)
        return seen

    assert asyncio.run(run()) == [PermissionState.PROMPT, PermissionState.DENIED]


def test_request_access_granted_releases_stream():
    async def run():
        provider = FakeProvider()
        monitor, seen = make_monitor(provider)
        outcome = await monitor.request_access()
        return provider, outcome, seen

    provider, outcome, seen = asyncio.run(run())
    assert outcome is PermissionState.GRANTED
    assert seen == [PermissionState.GRANTED]
    assert [s.released for s in provider.streams] == [1]


def test_request_access_denied_never_raises():
    async def run():
        monitor, _ = make_monitor(FakeProvider(grant=False))
        return await monitor.request_access(), monitor.query()

    outcome, cached = asyncio.run(run())
    assert outcome is PermissionState.DENIED
    assert cached is PermissionState.DENIED


def test_request_access_without_provider_is_denied():
    monitor, _ = make_monitor(None)
    assert asyncio.run(monitor.request_access()) is PermissionState.DENIED


def test_failing_handler_on_platform_change_is_logged(monkeypatch):
    logged: list[dict] = []
    monkeypatch.setattr("adapters.permission.monitor.log_event", logged.append)

    async def run():
        provider = FakeProvider(state=PermissionState.PROMPT)
        monitor = PermissionMonitor(provider=provider)

        async def broken(state: PermissionState) -> None:
            raise RuntimeError(f"cannot handle {state.value}")

        monitor.subscribe(broken)
        provider.watch(monitor._on_platform_change)  # pylint: disable=protected-access
        provider.callback(PermissionState.DENIED)
        for _ in range(5):
            await asyncio.sleep(0)
        return monitor

    monitor = asyncio.run(run())
    assert monitor.query() is PermissionState.DENIED
    errors = [e for e in logged if e["event_type"] == "permission_handler_error"]
    assert len(errors) == 1
    assert errors[0]["exception"] == "RuntimeError"
