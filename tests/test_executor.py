"""Tests for opflow.core.executor - ordering, timing, dispatch and failures.

Uses a recording sink and a recording sleep; no OS input is generated.
"""
import json
import random
from types import SimpleNamespace

import pytest

from conftest import RecordingSink, fixed_clock
from opflow.core.errors import (
    ConfigurationError, DataSourceError, DataSourceKind, ExecutionCancelled,
    ExecutionError, OperationNotImplementedError, UnsupportedOperationError,
    ValidationError,
)
from opflow.core.executor import ACTIONS, BatchState, OperationExecutor
from opflow.core.operation import OperationDescriptor as Op


@pytest.fixture
def executor(sink, record_sleep):
    return OperationExecutor(sink=sink, sleep_fn=record_sleep, clock=fixed_clock(2024, 1, 1))


def _slept(events):
    return sum(e[1] for e in events if e[0] == "sleep")


# ---------------------------------------------------------------------------
# execute_one - basics
# ---------------------------------------------------------------------------

class TestExecuteOne:
    def test_mouse_move(self, executor, sink):
        executor.execute_one(Op(type="mouse_move", int_values=(10, 20)))
        assert sink.events == [("move_cursor", 10, 20)]

    def test_type_case_insensitive(self, executor, sink):
        executor.execute_one(Op(type="MOUSE_LEFT_CLICK", int_values=(1, 2)))
        assert sink.events == [("click_left", 1, 2)]

    def test_right_click(self, executor, sink):
        executor.execute_one(Op(type="mouse_right_click", int_values=(3, 4, 99)))
        assert sink.events == [("click_right", 3, 4)]

    def test_keys(self, executor, sink):
        executor.execute_one(Op(type="key_press", int_values=(0x0D,)))
        executor.execute_one(Op(type="key_down", int_values=(0x10,)))
        executor.execute_one(Op(type="key_up", int_values=(0x10,)))
        assert sink.events == [("press_key", 0x0D), ("key_down", 0x10), ("key_up", 0x10)]

    def test_type_text_unicode(self, executor, sink):
        executor.execute_one(Op(type="type_text", string_values=("é🙂",)))
        assert sink.events == [
            ("char_down", "é"), ("char_up", "é"),
            ("char_down", "🙂"), ("char_up", "🙂"),
        ]

    def test_wait_suspends(self, executor, events):
        executor.execute_one(Op(type="wait", int_values=(120,)))
        assert all(e[0] == "sleep" for e in events)
        assert _slept(events) == pytest.approx(0.12)

    def test_sleep_is_chunked(self, executor, events):
        executor.execute_one(Op(type="wait", int_values=(200,)))
        assert len(events) == 4
        assert all(e[1] <= 0.05 + 1e-9 for e in events)


class TestScroll:
    def test_default_up(self, executor, sink):
        executor.execute_one(Op(type="scroll_up"))
        assert sink.events == [("scroll", 120)]

    def test_default_down(self, executor, sink):
        executor.execute_one(Op(type="scroll_down"))
        assert sink.events == [("scroll", -120)]

    def test_magnitude(self, executor, sink):
        executor.execute_one(Op(type="scroll_down", int_values=(360,)))
        assert sink.events == [("scroll", -360)]

    def test_default_from_settings(self, sink, record_sleep):
        settings = SimpleNamespace(default_scroll=240, data_dir=None)
        ex = OperationExecutor(settings, sink=sink, sleep_fn=record_sleep)
        ex.execute_one(Op(type="scroll_up"))
        assert sink.events == [("scroll", 240)]


# ---------------------------------------------------------------------------
# Disabled operations and delays
# ---------------------------------------------------------------------------

class TestDisabledAndDelays:
    def test_disabled_does_nothing(self, executor, events):
        executor.execute_one(Op(
            type="mouse_left_click", int_values=(1, 2), enabled=False,
            delay_before=500, delay_after=500,
        ))
        assert events == []

    def test_disabled_skips_resolution(self, executor, events):
        # would fail with ConfigurationError if resolved
        executor.execute_one(Op(type="type_text", enabled=False, value_source="date-json"))
        assert events == []

    def test_disabled_invalid_type_still_skipped(self, executor, events):
        executor.execute_one(Op(type="unknown_op", enabled=False))
        assert events == []

    def test_delay_before_and_after(self, executor, events):
        executor.execute_one(Op(type="mouse_move", int_values=(1, 1), delay_before=100, delay_after=50))
        move_at = events.index(("move_cursor", 1, 1))
        assert _slept(events[:move_at]) == pytest.approx(0.1)
        assert _slept(events[move_at:]) == pytest.approx(0.05)

    def test_zero_delays_do_not_sleep(self, executor, events):
        executor.execute_one(Op(type="mouse_move", int_values=(1, 1)))
        assert [e for e in events if e[0] == "sleep"] == []

    def test_no_delay_after_on_failure(self, executor, events):
        with pytest.raises(ExecutionError):
            executor.execute_one(Op(type="mouse_move", int_values=(1,), delay_after=100))
        assert events == []


# ---------------------------------------------------------------------------
# Validation and error wrapping
# ---------------------------------------------------------------------------

class TestErrors:
    def test_none_descriptor(self, executor):
        with pytest.raises(ValidationError):
            executor.execute_one(None)

    def test_empty_type(self, executor):
        with pytest.raises(ValidationError, match="type"):
            executor.execute_one(Op(type="  "))

    @pytest.mark.parametrize("op_type,ints,strs,needle", [
        ("mouse_left_click",  (1,), (), "x and y coordinates"),
        ("mouse_right_click", (),   (), "x and y coordinates"),
        ("mouse_move",        (5,), (), "x and y coordinates"),
        ("key_press",         (),   (), "key code"),
        ("key_down",          (),   (), "key code"),
        ("key_up",            (),   (), "key code"),
        ("type_text",         (),   (), "text to type"),
        ("wait",              (),   (), "milliseconds"),
    ])
    def test_insufficient_arguments(self, executor, sink, op_type, ints, strs, needle):
        with pytest.raises(ExecutionError) as ei:
            executor.execute_one(Op(type=op_type, int_values=ints, string_values=strs))
        assert isinstance(ei.value.cause, ValidationError)
        assert needle in str(ei.value)
        assert op_type in str(ei.value)
        assert sink.events == []

    def test_unknown_type(self, executor):
        with pytest.raises(ExecutionError) as ei:
            executor.execute_one(Op(type="unknown_op"))
        assert isinstance(ei.value.cause, UnsupportedOperationError)
        assert "unknown_op" in str(ei.value)
        assert ei.value.op_type == "unknown_op"
        assert ei.value.index is None

    def test_custom_code_not_implemented(self, executor, sink):
        with pytest.raises(ExecutionError) as ei:
            executor.execute_one(Op(type="custom_code", custom_code="print('hi')"))
        assert isinstance(ei.value.cause, OperationNotImplementedError)
        assert isinstance(ei.value.cause, NotImplementedError)
        assert sink.events == []

    def test_custom_code_requires_code(self, executor):
        with pytest.raises(ExecutionError) as ei:
            executor.execute_one(Op(type="custom_code"))
        assert isinstance(ei.value.cause, ValidationError)

    def test_sink_failure_wrapped(self, events, record_sleep):
        ex = OperationExecutor(sink=RecordingSink(events, fail_on="click_left"), sleep_fn=record_sleep)
        with pytest.raises(ExecutionError) as ei:
            ex.execute_one(Op(type="mouse_left_click", int_values=(1, 2)))
        assert isinstance(ei.value.__cause__, OSError)
        assert "click_left failed" in str(ei.value)

    def test_date_json_without_context(self, executor, tmp_path):
        op = Op(type="wait", value_source="date-json", date_json_file_path=str(tmp_path / "x.json"))
        with pytest.raises(ExecutionError) as ei:
            executor.execute_one(op)
        assert isinstance(ei.value.cause, ConfigurationError)

    def test_failure_is_logged(self, sink, record_sleep):
        logs = []
        ex = OperationExecutor(sink=sink, sleep_fn=record_sleep, log_callback=lambda l, m: logs.append((l, m)))
        with pytest.raises(ExecutionError):
            ex.execute_one(Op(type="unknown_op"))
        assert any(level == "ERROR" and "unknown_op" in msg for level, msg in logs)

    def test_unknown_value_source_warns(self, sink, record_sleep):
        logs = []
        ex = OperationExecutor(sink=sink, sleep_fn=record_sleep, log_callback=lambda l, m: logs.append((l, m)))
        ex.execute_one(Op(type="mouse_move", int_values=(1, 2), value_source="csv"))
        assert sink.events == [("move_cursor", 1, 2)]
        assert any(level == "WARNING" and "csv" in msg for level, msg in logs)


# ---------------------------------------------------------------------------
# Value resolution through the executor
# ---------------------------------------------------------------------------

class TestResolution:
    def test_date_json_values_used(self, executor, sink, tmp_path):
        path = tmp_path / "d.json"
        path.write_text(json.dumps([{"date": "2024-01-01", "A-1": {"IntValues": [7, 8]}}]))
        op = Op(type="mouse_move", int_values=(1, 2), value_source="date-json", date_json_file_path=str(path))
        executor.execute_one(op, "A-1")
        assert sink.events == [("move_cursor", 7, 8)]

    def test_date_json_relative_to_data_dir(self, sink, record_sleep, tmp_path):
        (tmp_path / "d.json").write_text(json.dumps([{"date": "2024-01-01", "A-1": {"StringValues": ["ok"]}}]))
        settings = SimpleNamespace(data_dir=tmp_path)
        ex = OperationExecutor(settings, sink=sink, sleep_fn=record_sleep, clock=fixed_clock(2024, 1, 1))
        ex.execute_one(Op(type="type_text", value_source="date-json", date_json_file_path="d.json"), "A-1")
        assert sink.events == [("char_down", "o"), ("char_up", "o"), ("char_down", "k"), ("char_up", "k")]


# ---------------------------------------------------------------------------
# execute_batch
# ---------------------------------------------------------------------------

class TestBatch:
    def test_empty_and_none(self, executor, events):
        executor.execute_batch([])
        executor.execute_batch(None)
        assert events == []
        assert executor.state is BatchState.IDLE

    def test_priority_order(self, executor, events):
        executor.execute_batch([
            Op(type="wait", int_values=(50,), priority=2),
            Op(type="mouse_move", int_values=(10, 20), priority=1),
        ])
        assert events[0] == ("move_cursor", 10, 20)
        assert _slept(events[1:]) == pytest.approx(0.05)
        assert executor.state is BatchState.COMPLETED

    @pytest.mark.parametrize("seed", range(10))
    def test_stable_sort(self, executor, sink, seed):
        rnd = random.Random(seed)
        ops = [Op(type="mouse_move", int_values=(n, 0), priority=rnd.randint(-3, 3)) for n in range(25)]
        executor.execute_batch(ops)
        expected = [n for _, n in sorted((op.priority, op.int_values[0]) for op in ops)]
        assert [e[1] for e in sink.events] == expected

    def test_batch_not_mutated(self, executor):
        ops = [Op(type="wait", int_values=(1,), priority=3), Op(type="wait", int_values=(1,), priority=1)]
        snapshot = list(ops)
        executor.execute_batch(ops)
        assert ops == snapshot

    def test_unknown_type_aborts(self, executor, sink):
        with pytest.raises(ExecutionError) as ei:
            executor.execute_batch([
                Op(type="mouse_move", int_values=(1, 1), priority=0),
                Op(type="unknown_op", priority=1),
                Op(type="mouse_move", int_values=(2, 2), priority=2),
            ])
        assert sink.events == [("move_cursor", 1, 1)]
        assert ei.value.index == 1
        assert ei.value.op_type == "unknown_op"
        assert executor.state is BatchState.ABORTED

    def test_index_is_input_position(self, executor):
        with pytest.raises(ExecutionError) as ei:
            executor.execute_batch([
                Op(type="unknown_op", priority=9),
                Op(type="mouse_move", int_values=(1, 1), priority=0),
            ])
        assert ei.value.index == 0

    def test_no_data_for_date_is_hard_stop(self, executor, sink, tmp_path):
        path = tmp_path / "d.json"
        path.write_text(json.dumps([{"date": "2023-12-31", "A-1": {"IntValues": [1, 1]}}]))
        with pytest.raises(ExecutionError) as ei:
            executor.execute_batch(
                [
                    Op(type="mouse_move", value_source="date-json", date_json_file_path=str(path)),
                    Op(type="mouse_move", int_values=(5, 5), priority=1),
                ],
                ["A-1", None],
            )
        assert isinstance(ei.value.cause, DataSourceError)
        assert ei.value.cause.kind is DataSourceKind.NO_DATA_FOR_DATE
        assert sink.events == []

    def test_validation_error_gets_index(self, executor, sink):
        with pytest.raises(ExecutionError) as ei:
            executor.execute_batch([Op(type="mouse_move", int_values=(1, 1)), Op(type="")])
        assert ei.value.index == 1
        assert isinstance(ei.value.cause, ValidationError)
        assert sink.events == [("move_cursor", 1, 1)]

    def test_disabled_in_batch_skipped(self, executor, sink):
        executor.execute_batch([
            Op(type="mouse_move", int_values=(1, 1), enabled=False),
            Op(type="mouse_move", int_values=(2, 2)),
        ])
        assert sink.events == [("move_cursor", 2, 2)]

    def test_context_keys_length_mismatch(self, executor):
        with pytest.raises(ValidationError):
            executor.execute_batch([Op(type="wait", int_values=(1,))], ["A-1", "B-2"])

    def test_stop_before_start(self, executor, events):
        executor.stop_event.set()
        with pytest.raises(ExecutionCancelled):
            executor.execute_batch([Op(type="mouse_move", int_values=(1, 1))])
        assert events == []
        assert executor.state is BatchState.ABORTED

    def test_stop_during_wait_ends_batch(self, sink, events):
        ex = None

        def _sleep(seconds):
            events.append(("sleep", seconds))
            ex.stop_event.set()

        ex = OperationExecutor(sink=sink, sleep_fn=_sleep)
        with pytest.raises(ExecutionCancelled):
            ex.execute_batch([
                Op(type="wait", int_values=(1000,)),
                Op(type="mouse_move", int_values=(1, 1), priority=1),
            ])
        assert sink.input_events == []
        assert len([e for e in events if e[0] == "sleep"]) == 1

    def test_stop_during_last_wait_is_not_completed(self, sink, events):
        ex = None

        def _sleep(seconds):
            events.append(("sleep", seconds))
            ex.stop_event.set()

        ex = OperationExecutor(sink=sink, sleep_fn=_sleep)
        with pytest.raises(ExecutionCancelled):
            ex.execute_batch([Op(type="wait", int_values=(1000,))])
        assert ex.state is BatchState.ABORTED

    def test_stop_during_last_delay_after_is_not_completed(self, sink, events):
        ex = None

        def _sleep(seconds):
            events.append(("sleep", seconds))
            ex.stop_event.set()

        ex = OperationExecutor(sink=sink, sleep_fn=_sleep)
        with pytest.raises(ExecutionCancelled):
            ex.execute_batch([Op(type="mouse_move", int_values=(1, 1), delay_after=500)])
        assert sink.input_events == [("move_cursor", 1, 1)]
        assert ex.state is BatchState.ABORTED


class TestActionTable:
    def test_all_operation_types_registered(self):
        assert set(ACTIONS) == {
            "mouse_left_click", "mouse_right_click", "mouse_move",
            "scroll_up", "scroll_down",
            "key_press", "key_down", "key_up",
            "type_text", "wait", "custom_code",
        }

    def test_arities(self):
        assert ACTIONS["mouse_move"].min_ints == 2
        assert ACTIONS["scroll_up"].min_ints == 0
        assert ACTIONS["type_text"].min_strings == 1
