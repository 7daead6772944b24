import pytest

from enginekit.context import (
    ContextBuilder,
    ContextObject,
    ControlFlow,
    dependencies_from,
)
from enginekit.errors import ContextError, SystemFailure
from enginekit.system import System


class _Recorder(System):
    requires = list

    def __init__(self, log):
        self.log = log

    @staticmethod
    def _log_of(deps):
        return deps if isinstance(deps, list) else deps.log

    @classmethod
    def create(cls, deps):
        log = cls._log_of(deps)
        log.append(("create", cls.debug_name))
        return cls(log)

    def setup(self, deps):
        self.log.append(("setup", self.debug_name))

    def update(self, deps):
        self.log.append(("update", self.debug_name))

    def teardown(self, deps):
        self.log.append(("teardown", self.debug_name))

    def destroy(self, deps):
        self.log.append(("destroy", self.debug_name))


class First(_Recorder):
    pass


class Second(_Recorder):
    requires = {"log": list, "first": First}

    def __init__(self, log, first=None):
        super().__init__(log)
        self.first = first

    @classmethod
    def create(cls, deps):
        deps.log.append(("create", cls.debug_name))
        return cls(deps.log, deps.first)


class Quitter(System):
    requires = ControlFlow

    def __init__(self):
        self.updates = 0

    def update(self, deps):
        self.updates += 1
        if self.updates == 3:
            deps.quit_requested = True


class FailsOnUpdate(System):
    def update(self, deps):
        raise ValueError("boom")


class FailsOnCreate(System):
    @classmethod
    def create(cls, deps):
        raise ValueError("nope")


def _build(log):
    return ContextBuilder().inject_mut(log).system(First).system(Second).build()


def test_lifecycle_order():
    log = []
    context = _build(log)
    context.step()
    context.destroy()
    assert log == [
        ("create", "first"),
        ("create", "second"),
        ("setup", "first"),
        ("setup", "second"),
        ("update", "first"),
        ("update", "second"),
        ("teardown", "second"),
        ("teardown", "first"),
        ("destroy", "second"),
        ("destroy", "first"),
    ]


def test_dependencies_are_wired():
    log = []
    context = _build(log)
    second = context.lookup(Second)
    assert second.first is context.lookup(First)
    assert context.lookup(list) is log


def test_run_until_quit():
    context = ContextBuilder().system(Quitter).build()
    assert context.quit_requested() is False
    context.run()
    assert context.quit_requested() is True
    assert context.lookup(Quitter).updates == 3


def test_update_failure_is_chained():
    context = ContextBuilder().system(FailsOnUpdate).build()
    with pytest.raises(ContextError) as info:
        context.step()
    assert info.value.stage == "update"
    cause = info.value.__cause__
    assert isinstance(cause, SystemFailure)
    assert cause.stage == "update"
    assert cause.system_name == "fails_on_update"
    assert isinstance(cause.__cause__, ValueError)


def test_creation_failure():
    with pytest.raises(SystemFailure) as info:
        ContextBuilder().system(FailsOnCreate)
    assert info.value.stage == "creation"
    assert info.value.system_name == "fails_on_create"


def test_system_sees_only_earlier_entries():
    with pytest.raises(LookupError):
        ContextBuilder().inject_mut([]).system(Second)


def test_destroy_twice_is_noop_and_lookup_fails_after():
    log = []
    context = _build(log)
    context.destroy()
    count = len(log)
    context.destroy()
    assert len(log) == count
    with pytest.raises(RuntimeError):
        context.lookup(First)


def test_context_manager_destroys():
    log = []
    with _build(log) as context:
        assert isinstance(context, ContextObject)
    assert log[-1] == ("destroy", "first")


def test_builder_cannot_be_reused():
    builder = ContextBuilder()
    builder.build()
    with pytest.raises(RuntimeError):
        builder.inject(1)


def test_dependencies_from_variants():
    flow = ControlFlow()
    assert dependencies_from([flow, "text"], None) is None
    assert dependencies_from([flow, "text"], str) == "text"
    ns = dependencies_from([flow, "text"], {"flow": ControlFlow, "name": str})
    assert ns.flow is flow
    assert ns.name == "text"


def test_dependencies_from_errors():
    with pytest.raises(LookupError):
        dependencies_from(["a", "b"], str)
    with pytest.raises(LookupError):
        dependencies_from([1], str)
    with pytest.raises(LookupError):
        dependencies_from(["a"], {"x": str, "y": str})