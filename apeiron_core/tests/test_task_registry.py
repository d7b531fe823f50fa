from apeiron_core.session.task_registry import TaskRegistry


def test_register_cancel_and_discard():
    registry = TaskRegistry()
    a = registry.register("a")
    b = registry.register("b")
    assert registry.active_ids == ["a", "b"]

    assert registry.cancel("a")
    assert a.cancelled and not b.cancelled
    assert not registry.cancel("missing")

    registry.discard("a")
    assert "a" not in registry
    assert len(registry) == 1


def test_cancel_all_clears_registry():
    registry = TaskRegistry()
    handles = [registry.register(str(i)) for i in range(3)]
    assert registry.cancel_all() == 3
    assert all(h.cancelled for h in handles)
    assert len(registry) == 0
