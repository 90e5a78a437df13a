"""Randomised operation sequences against the navigation engine."""

import asyncio

from hypothesis import settings
from hypothesis import strategies as st
from hypothesis.stateful import RuleBasedStateMachine, invariant, precondition, rule

from shared.models.clip import to_clip_key
from shared.queue_ops import (
    ClipNotInHistoryError,
    QueueState,
    advance,
    clear_history,
    clear_queue,
    jump_to_history_entry,
    play_specific,
    retreat,
)

from tests.fakes import FakePersistence, make_clip

POOL = [make_clip(f"c{i}") for i in range(5)]


class QueueMachine(RuleBasedStateMachine):
    def __init__(self) -> None:
        super().__init__()
        self.state = QueueState()
        self.db = FakePersistence()
        self.logged: list = []

    def _run(self, coro) -> None:
        asyncio.run(coro)

    def _queued_or_current(self, clip) -> bool:
        key = to_clip_key(clip)
        current = self.state.current
        return self.state.queue.find(key, to_clip_key) is not None or (
            current is not None and to_clip_key(current) == key
        )

    @rule(clip=st.sampled_from(POOL))
    def submit(self, clip):
        if not self._queued_or_current(clip):
            self.state.queue.add(clip)

    @rule()
    def advance(self):
        self._run(advance(self.state, self.db, to_clip_key))

    @rule()
    def retreat(self):
        retreat(self.state)

    @precondition(lambda self: len(self.state.queue) > 0)
    @rule(data=st.data())
    def play(self, data):
        clip = data.draw(st.sampled_from(self.state.queue.to_list()))
        self._run(play_specific(self.state, self.db, clip, to_clip_key))

    @precondition(lambda self: len(self.state.history) > 0)
    @rule(data=st.data())
    def jump(self, data):
        entry = data.draw(st.sampled_from(self.state.history.get_all()))
        jump_to_history_entry(self.state, entry.clip, to_clip_key)

    @rule(clip=st.sampled_from(POOL))
    def jump_to_anything(self, clip):
        before = self.state.snapshot()
        try:
            jump_to_history_entry(self.state, clip, to_clip_key)
        except ClipNotInHistoryError:
            assert self.state.snapshot() == before

    @rule()
    def clear_queue(self):
        self._run(clear_queue(self.state, self.db, to_clip_key))
        assert len(self.state.queue) == 0

    @rule()
    def clear_history(self):
        self._run(clear_history(self.state, self.db, to_clip_key))
        assert len(self.state.history) == 0
        self.logged = []

    @rule()
    def failing_advance(self):
        before = self.state.snapshot()
        self.db.fail_next("append_history_record")
        try:
            self._run(advance(self.state, self.db, to_clip_key))
        except RuntimeError:
            assert self.state.snapshot() == before
        else:
            # nothing to archive, so the store was never reached
            self.db.reset_failures()

    @precondition(lambda self: len(self.state.queue) > 0)
    @rule(data=st.data())
    def failing_play(self, data):
        clip = data.draw(st.sampled_from(self.state.queue.to_list()))
        before = self.state.snapshot()
        self.db.fail_next("append_history_record")
        try:
            self._run(play_specific(self.state, self.db, clip, to_clip_key))
        except RuntimeError:
            assert self.state.snapshot() == before
        else:
            self.db.reset_failures()

    @invariant()
    def consistent(self):
        assert self.state.violations(to_clip_key) == []

    @invariant()
    def history_only_grows_between_clears(self):
        entries = self.state.history.get_all()
        assert entries[: len(self.logged)] == self.logged
        self.logged = entries

    @invariant()
    def history_ids_are_unique(self):
        ids = [e.id for e in self.state.history.get_all()]
        assert len(ids) == len(set(ids))

    @invariant()
    def queue_has_no_duplicate_keys(self):
        keys = [to_clip_key(c) for c in self.state.queue]
        assert len(keys) == len(set(keys))


QueueMachine.TestCase.settings = settings(max_examples=100, stateful_step_count=30, deadline=None)
TestQueueMachine = QueueMachine.TestCase
