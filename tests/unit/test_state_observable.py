"""Unit tests for StateObservable and Subscription."""

import logging

import pytest

from entistore import (
    BatchContext,
    ChangeEvent,
    CollectionState,
    SingletonState,
    StateObservable,
    create_entities_store,
    create_entity_store,
)
from tests.test_factories import create_subscription_tracker


@pytest.fixture
def state():
    return StateObservable(CollectionState(), key="test")


@pytest.mark.unit
@pytest.mark.observable
class TestStateAccess:
    def test_holds_initial_state(self, state):
        assert state.get_state() == CollectionState()
        assert state.key == "test"

    def test_requires_dataclass_snapshot(self):
        with pytest.raises(TypeError):
            StateObservable({"entities": []})

    def test_set_state_replaces_named_fields(self, state):
        before = state.get_state()

        after = state.set_state(loading=True, error="boom")

        assert after.loading is True
        assert after.error == "boom"
        assert after.entities == ()
        assert before.loading is False
        assert after is not before

    def test_update_state_publishes_reducer_result(self, state):
        state.update_state(lambda s: CollectionState(entities=s.entities + ({"id": 1},)))

        assert state.get_state().entities == ({"id": 1},)

    def test_update_state_none_keeps_state(self, state):
        before = state.get_state()

        assert state.update_state(lambda s: None) is before
        assert state.get_state() is before

    def test_reducer_exception_propagates_and_state_is_untouched(self, state):
        before = state.get_state()

        def explode(_):
            raise RuntimeError("bad reducer")

        with pytest.raises(RuntimeError, match="bad reducer"):
            state.update_state(explode)
        assert state.get_state() is before


@pytest.mark.unit
@pytest.mark.observable
class TestSubscriptions:
    def test_subscriber_receives_change_event(self, state):
        tracker = create_subscription_tracker()
        state.subscribe(tracker.record)

        state.set_state(loading=True)

        assert tracker.count == 1
        event = tracker.last
        assert isinstance(event, ChangeEvent)
        assert event.changed == frozenset({"loading"})
        assert event.old_state.loading is False
        assert event.new_state.loading is True

    def test_no_notification_when_nothing_changed(self, state):
        tracker = create_subscription_tracker()
        state.subscribe(tracker.record)

        state.set_state(loading=False, error=None)

        assert tracker.count == 0

    def test_keys_filter_notifications(self, state):
        tracker = create_subscription_tracker()
        state.subscribe(tracker.record, keys=["error"])

        state.set_state(loading=True)
        state.set_state(error="oops")

        assert tracker.count == 1
        assert tracker.last.changed == frozenset({"error"})

    def test_pause_and_resume(self, state):
        tracker = create_subscription_tracker()
        sub = state.subscribe(tracker.record)

        sub.pause()
        state.set_state(loading=True)
        sub.resume()
        state.set_state(loading=False)

        assert tracker.count == 1

    def test_unsubscribe(self, state):
        tracker = create_subscription_tracker()
        sub = state.subscribe(tracker.record)

        assert sub.unsubscribe() is True
        assert sub.unsubscribe() is False
        state.set_state(loading=True)

        assert tracker.count == 0
        assert state.subscriber_count == 0

    def test_unsubscribe_by_id(self, state):
        sub = state.subscribe(lambda event: None)

        assert state.unsubscribe(sub.id) is True
        assert state.unsubscribe(sub) is False

    def test_failing_subscriber_is_logged_and_others_still_run(self, state, caplog):
        tracker = create_subscription_tracker()

        def broken(event):
            raise ValueError("subscriber failure")

        state.subscribe(broken)
        state.subscribe(tracker.record)

        with caplog.at_level(logging.ERROR, logger="entistore.observable"):
            state.set_state(loading=True)

        assert tracker.count == 1
        assert state.get_state().loading is True
        assert "Error in subscription" in caplog.text

    def test_writes_from_subscribers_are_delivered_in_order(self, state):
        seen = []

        def echo_error(event):
            seen.append(("echo", sorted(event.changed)))
            if "loading" in event.changed:
                state.set_state(error="from subscriber")

        def record(event):
            seen.append(("record", sorted(event.changed)))

        state.subscribe(echo_error)
        state.subscribe(record)

        state.set_state(loading=True)

        assert seen == [
            ("echo", ["loading"]),
            ("record", ["loading"]),
            ("echo", ["error"]),
            ("record", ["error"]),
        ]

    def test_records_with_elementwise_equality_are_published(self):
        class Vector:
            """Compares elementwise, like an array type."""

            def __init__(self, *xs):
                self.xs = xs

            def __eq__(self, other):
                return self

            def __bool__(self):
                raise ValueError("truth value of a Vector is ambiguous")

        state = StateObservable(SingletonState(entity=Vector(1, 2), loaded=True))
        tracker = create_subscription_tracker()
        state.subscribe(tracker.record)
        replacement = Vector(3, 4)

        state.set_state(entity=replacement)

        assert state.get_state().entity is replacement
        assert tracker.count == 1
        assert tracker.last.changed == frozenset({"entity"})

    def test_aborted_delivery_leaves_no_stale_events(self, state):
        class Halt(BaseException):
            pass

        def halt(event):
            raise Halt()

        tracker = create_subscription_tracker()
        halting = state.subscribe(halt)
        state.subscribe(tracker.record)

        with pytest.raises(Halt):
            state.set_state(loading=True)
        halting.unsubscribe()
        state.set_state(error="next")

        assert tracker.count == 1
        assert tracker.last.changed == frozenset({"error"})


@pytest.mark.unit
@pytest.mark.observable
class TestBatch:
    def test_stores_hand_out_public_batch_context(self, state):
        assert isinstance(state.batch(), BatchContext)
        assert isinstance(create_entities_store().batch(), BatchContext)
        assert isinstance(create_entity_store().batch(), BatchContext)

    def test_batch_emits_single_notification(self, state):
        tracker = create_subscription_tracker()
        state.subscribe(tracker.record)

        with state.batch():
            state.set_state(loading=True)
            state.set_state(error="x")
            assert tracker.count == 0

        assert tracker.count == 1
        assert tracker.last.changed == frozenset({"loading", "error"})
        assert tracker.last.old_state == CollectionState()

    def test_nested_batches_collapse(self, state):
        tracker = create_subscription_tracker()
        state.subscribe(tracker.record)

        with state.batch():
            with state.batch():
                state.set_state(loading=True)
            assert tracker.count == 0
            state.set_state(loaded=True)

        assert tracker.count == 1
        assert tracker.last.changed == frozenset({"loading", "loaded"})

    def test_batch_reverting_changes_emits_nothing(self, state):
        tracker = create_subscription_tracker()
        state.subscribe(tracker.record)

        with state.batch():
            state.set_state(loading=True)
            state.set_state(loading=False)

        assert tracker.count == 0

    def test_batch_notifies_even_when_body_raises(self, state):
        tracker = create_subscription_tracker()
        state.subscribe(tracker.record)

        with pytest.raises(RuntimeError):
            with state.batch():
                state.set_state(loading=True)
                raise RuntimeError("abort")

        assert tracker.count == 1
        assert state.get_state().loading is True


@pytest.mark.unit
@pytest.mark.observable
def test_observables_are_isolated():
    first = StateObservable(SingletonState())
    second = StateObservable(SingletonState())
    tracker = create_subscription_tracker()
    second.subscribe(tracker.record)

    first.set_state(entity={"id": 1}, loaded=True)

    assert second.get_state().entity is None
    assert tracker.count == 0
