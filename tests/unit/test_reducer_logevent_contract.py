# pylint: disable=missing-module-docstring,missing-function-docstring

from orchestrator.reducer import reduce
from orchestrator.state_dataclass import Session
from orchestrator.events import StartTalk, EventType
from orchestrator.commands import LogEvent
from orchestrator.enums.permission import PermissionState
from orchestrator.enums.state import State


def test_reducer_emits_logevent_with_required_fields():
    state = Session(mode=State.IDLE, permission_state=PermissionState.GRANTED)

    event = StartTalk(
        event_type=EventType.START_TALK,
        ts_ms=123,
    )

    _, commands = reduce(state, event)

    log_events = [c for c in commands if isinstance(c, LogEvent)]
    assert log_events, "Reducer must emit at least one LogEvent"

    for log in log_events:
        payload = log.event
        assert payload["ts_ms"] == 123
        assert payload["event_type"] == "START_TALK"
        assert "state" in payload
        assert "permission" in payload
        assert "decision" in payload
        assert set(payload["run_ids"]) == {"capture", "resolve", "playback"}
        assert isinstance(payload["details"], dict)


def test_state_change_log_is_emitted_last():
    state = Session(mode=State.IDLE, permission_state=PermissionState.GRANTED)
    event = StartTalk(event_type=EventType.START_TALK, ts_ms=1)

    _, commands = reduce(state, event)

    last = commands[-1]
    assert isinstance(last, LogEvent)
    assert last.event["decision"] == "state_changed"
    assert last.event["details"] == {
        "from_state": "IDLE",
        "to_state": "LISTENING",
        "source": "start_talk",
    }


def test_ignored_event_is_still_logged():
    state = Session(mode=State.SPEAKING)
    event = StartTalk(event_type=EventType.START_TALK, ts_ms=9)

    new_state, commands = reduce(state, event)

    assert new_state == state
    assert len(commands) == 1
    assert isinstance(commands[0], LogEvent)
    assert commands[0].event["decision"] == "ignore"
    assert commands[0].event["details"]["reason"] == "start_talk_disabled_while_speaking"
