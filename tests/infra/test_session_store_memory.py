"""Testes do SessionStore em memória."""

from __future__ import annotations

import threading
from datetime import UTC, datetime, timedelta

import pytest

from onboarding_agent.domain.errors import SessionNotFoundError, StoreCorruptionError
from onboarding_agent.domain.session import MessageRole, UserIdentity
from onboarding_agent.domain.stages import Stage
from onboarding_agent.infra.session_store import create_session_store
from onboarding_agent.infra.session_store_memory import InMemorySessionStore


class FakeClock:
    def __init__(self) -> None:
        self.now = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def _identity(user_id: str = "u1") -> UserIdentity:
    return UserIdentity(user_id=user_id, username="Jane", email="jane@example.com")


def _advance_to(stage: Stage):
    def mutate(session):
        session.current_stage = stage

    return mutate


class TestCreateAndGet:
    def test_create_returns_fresh_session(self):
        store = InMemorySessionStore()

        session = store.create(_identity())

        assert session.session_id.startswith("onb-u1-")
        assert session.current_stage is Stage.WELCOME
        assert store.get(session.session_id) == session
        assert store.count() == 1

    def test_same_user_same_instant_gets_distinct_ids(self):
        """Colisão de id deve gerar sufixo distinto em vez de sobrescrever."""
        store = InMemorySessionStore(clock=FakeClock())

        first = store.create(_identity())
        second = store.create(_identity())

        assert first.session_id != second.session_id
        assert store.count() == 2

    def test_get_unknown_raises_not_found(self):
        store = InMemorySessionStore()

        with pytest.raises(SessionNotFoundError):
            store.get("missing")

    def test_get_returns_copy(self):
        """Alterar a cópia retornada não deve afetar o estado armazenado."""
        store = InMemorySessionStore()
        session = store.create(_identity())

        copy = store.get(session.session_id)
        copy.current_stage = Stage.COMPLETION

        assert store.get(session.session_id).current_stage is Stage.WELCOME

    def test_factory_rejects_unknown_backend(self):
        with pytest.raises(ValueError):
            create_session_store("redis")


class TestUpdate:
    def test_update_applies_mutator(self):
        store = InMemorySessionStore()
        session = store.create(_identity())

        updated = store.update(session.session_id, _advance_to(Stage.ENVIRONMENT_SETUP))

        assert updated.current_stage is Stage.ENVIRONMENT_SETUP
        assert store.get(session.session_id).current_stage is Stage.ENVIRONMENT_SETUP

    def test_update_unknown_raises_not_found(self):
        store = InMemorySessionStore()

        with pytest.raises(SessionNotFoundError):
            store.update("missing", _advance_to(Stage.COMPLETION))

    def test_stage_regression_is_rejected(self):
        """Regressão de estágio deve ser rejeitada sem alterar o estado."""
        store = InMemorySessionStore()
        session = store.create(_identity())
        store.update(session.session_id, _advance_to(Stage.TEAM_INTRODUCTION))

        with pytest.raises(StoreCorruptionError):
            store.update(session.session_id, _advance_to(Stage.WELCOME))

        assert store.get(session.session_id).current_stage is Stage.TEAM_INTRODUCTION

    def test_ticket_id_cannot_be_replaced(self):
        store = InMemorySessionStore()
        session = store.create(_identity())

        def set_ticket(ticket_id):
            def mutate(target):
                target.ticket.ticket_id = ticket_id

            return mutate

        store.update(session.session_id, set_ticket("T-1"))

        with pytest.raises(StoreCorruptionError):
            store.update(session.session_id, set_ticket("T-2"))
        assert store.get(session.session_id).ticket.ticket_id == "T-1"

    def test_completion_flag_reset_is_rejected(self):
        store = InMemorySessionStore()
        session = store.create(_identity())

        def complete(target):
            target.current_stage = Stage.COMPLETION
            target.completed = True

        def reopen(target):
            target.completed = False

        store.update(session.session_id, complete)

        with pytest.raises(StoreCorruptionError) as exc_info:
            store.update(session.session_id, reopen)

        assert exc_info.value.reason == "completion flag reset"
        assert store.get(session.session_id).completed is True

    def test_history_truncation_is_rejected(self):
        """Histórico é append-only: remover mensagens deve falhar."""
        store = InMemorySessionStore()
        session = store.create(_identity())

        def append(target):
            target.append_message(MessageRole.USER, "hello")
            target.append_message(MessageRole.AGENT, "hi")

        def truncate(target):
            del target.history[-1]

        store.update(session.session_id, append)

        with pytest.raises(StoreCorruptionError) as exc_info:
            store.update(session.session_id, truncate)

        assert exc_info.value.reason == "history truncated"
        assert [m.text for m in store.get(session.session_id).history] == ["hello", "hi"]

    def test_mutator_exception_leaves_state_untouched(self):
        store = InMemorySessionStore()
        session = store.create(_identity())

        def explode(target):
            target.current_stage = Stage.COMPLETION
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            store.update(session.session_id, explode)

        assert store.get(session.session_id).current_stage is Stage.WELCOME

    def test_concurrent_updates_on_distinct_sessions_are_isolated(self):
        """Threads atualizando sessões diferentes não interferem entre si."""
        store = InMemorySessionStore()
        first = store.create(_identity("u1"))
        second = store.create(_identity("u2"))

        def append(text):
            def mutate(target):
                target.append_message(MessageRole.USER, text)

            return mutate

        def worker(session_id, text):
            for _ in range(50):
                store.update(session_id, append(text))

        threads = [
            threading.Thread(target=worker, args=(first.session_id, "a")),
            threading.Thread(target=worker, args=(second.session_id, "b")),
            threading.Thread(target=worker, args=(first.session_id, "a")),
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        first_history = store.get(first.session_id).history
        second_history = store.get(second.session_id).history
        assert len(first_history) == 100
        assert len(second_history) == 50
        assert {m.text for m in first_history} == {"a"}
        assert {m.text for m in second_history} == {"b"}


class TestListAndSweep:
    def test_list_returns_summaries(self):
        store = InMemorySessionStore()
        store.create(_identity("u1"))
        store.create(_identity("u2"))

        summaries = store.list()

        assert sorted(s.user_id for s in summaries) == ["u1", "u2"]

    def test_sweep_evicts_idle_sessions(self):
        clock = FakeClock()
        store = InMemorySessionStore(clock=clock)
        idle = store.create(_identity("u1"))
        clock.advance(hours=2)
        active = store.create(_identity("u2"))
        evicted: list[str] = []

        removed = store.sweep(timedelta(hours=1), on_evict=evicted.append)

        assert removed == 1
        assert evicted == [idle.session_id]
        with pytest.raises(SessionNotFoundError):
            store.get(idle.session_id)
        assert store.get(active.session_id)

    def test_sweep_preserves_incomplete_when_configured(self):
        clock = FakeClock()
        store = InMemorySessionStore(clock=clock)
        incomplete = store.create(_identity("u1"))
        done = store.create(_identity("u2"))

        def complete(target):
            target.current_stage = Stage.COMPLETION
            target.completed = True

        store.update(done.session_id, complete)
        clock.advance(days=2)

        removed = store.sweep(timedelta(hours=24), preserve_incomplete=True)

        assert removed == 1
        assert store.get(incomplete.session_id)
        with pytest.raises(SessionNotFoundError):
            store.get(done.session_id)

    def test_update_after_sweep_raises_not_found(self):
        clock = FakeClock()
        store = InMemorySessionStore(clock=clock)
        session = store.create(_identity())
        clock.advance(days=2)
        store.sweep(timedelta(hours=1))

        with pytest.raises(SessionNotFoundError):
            store.update(session.session_id, _advance_to(Stage.ENVIRONMENT_SETUP))
