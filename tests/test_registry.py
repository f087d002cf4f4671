from models import SessionStatus
from crawler.registry import SessionRegistry
from storage.memory_store import MemoryStore


async def test_register_stop_and_remove():
    registry = SessionRegistry()
    await registry.register("s1", current_url="https://example.com/")

    assert "s1" in registry
    assert not await registry.should_stop("s1")

    assert await registry.request_stop("s1")
    assert await registry.should_stop("s1")

    await registry.remove("s1")
    assert "s1" not in registry
    assert not await registry.request_stop("s1")


async def test_get_returns_a_copy():
    registry = SessionRegistry()
    await registry.register("s1")
    await registry.set_current_url("s1", "https://example.com/a")

    snapshot = await registry.get("s1")
    snapshot.should_stop = True

    assert snapshot.current_url == "https://example.com/a"
    assert not await registry.should_stop("s1")


async def test_transition_is_forward_only():
    storage = MemoryStore()
    registry = SessionRegistry()
    session = await storage.create_session("https://example.com/", 10, 2)

    running = await registry.transition(storage, session.id, SessionStatus.RUNNING)
    assert running.status == SessionStatus.RUNNING

    done = await registry.transition(storage, session.id, SessionStatus.COMPLETED)
    assert done.status == SessionStatus.COMPLETED

    again = await registry.transition(storage, session.id, SessionStatus.RUNNING)
    assert again.status == SessionStatus.COMPLETED

    stopped = await registry.transition(storage, session.id, SessionStatus.STOPPED)
    assert stopped.status == SessionStatus.COMPLETED


async def test_transition_unknown_session():
    assert await SessionRegistry().transition(MemoryStore(), "nope", SessionStatus.STOPPED) is None


def test_status_rules():
    assert SessionStatus.PENDING.can_become(SessionStatus.STOPPED)
    assert not SessionStatus.PENDING.can_become(SessionStatus.COMPLETED)
    assert SessionStatus.RUNNING.can_become(SessionStatus.ERROR)
    assert not SessionStatus.RUNNING.can_become(SessionStatus.PENDING)
    assert SessionStatus.STOPPED.can_become(SessionStatus.STOPPED)
    assert not SessionStatus.ERROR.can_become(SessionStatus.COMPLETED)
