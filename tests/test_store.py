"""Unit tests for the observable state store."""

from dataclasses import replace

from spotify_export.core.store import StateStore
from spotify_export.models.state import ExportPhase, ExportState


class TestStateStore:
    """Tests for snapshot replacement and notification."""

    def test_starts_idle(self) -> None:
        assert StateStore().get().phase is ExportPhase.IDLE

    def test_update_installs_new_snapshot(self) -> None:
        store = StateStore()
        before = store.get()

        after = store.update(lambda s: replace(s, phase=ExportPhase.SELECTING))

        assert store.get() is after
        assert before.phase is ExportPhase.IDLE
        assert after.phase is ExportPhase.SELECTING

    def test_listeners_receive_every_snapshot_in_order(self) -> None:
        store = StateStore()
        seen: list[tuple[str, ExportPhase]] = []
        store.subscribe(lambda s: seen.append(("first", s.phase)))
        store.subscribe(lambda s: seen.append(("second", s.phase)))

        store.set(ExportState(phase=ExportPhase.EXPORTING))

        assert seen == [
            ("first", ExportPhase.EXPORTING),
            ("second", ExportPhase.EXPORTING),
        ]

    def test_unsubscribe_stops_notifications(self) -> None:
        store = StateStore()
        seen = []
        unsubscribe = store.subscribe(seen.append)

        store.set(ExportState())
        unsubscribe()
        unsubscribe()
        store.set(ExportState())

        assert len(seen) == 1

    def test_failing_listener_does_not_block_others(self) -> None:
        store = StateStore()
        seen = []

        def broken(state: ExportState) -> None:
            raise RuntimeError("render failed")

        store.subscribe(broken)
        store.subscribe(seen.append)

        store.set(ExportState(phase=ExportPhase.COMPLETE))

        assert store.get().phase is ExportPhase.COMPLETE
        assert len(seen) == 1
