import asyncio
from typing import List

import pytest

from specrun import HookResolutionError, Spec
from specrun.domain.resolver import Conventions, class_hierarchy, get_methods_from_hierarchy, resolve

CALLS: List[str] = []


class Base(Spec):
    def before_each(self):
        CALLS.append("base")

    async def after_all(self):
        await asyncio.sleep(0)
        CALLS.append("base")


class Middle(Base):
    pass


class Derived(Middle):
    def before_each(self):
        CALLS.append("derived")

    async def after_all(self):
        CALLS.append("derived")


# --- Fixtures ---


@pytest.fixture(autouse=True)
def clear_calls():
    CALLS.clear()
    yield
    CALLS.clear()


# --- TESTS ---


class TestClassHierarchy:
    def test_outermost_base_first(self):
        assert class_hierarchy(Derived, Spec) == [Base, Middle, Derived]

    def test_without_base_includes_everything_but_object(self):
        assert class_hierarchy(Derived) == [Spec, Base, Middle, Derived]


class TestConventions:
    def test_selectors_pick_own_methods_by_kind(self):
        select_sync, select_async = Conventions().selectors("before_each")

        assert select_sync(Derived) is vars(Derived)["before_each"]
        assert select_sync(Middle) is None, "Inherited methods belong to the level that defines them."
        assert select_async(Derived) is None

    def test_custom_method_names(self):
        class Custom:
            def setup(self):
                CALLS.append("setup")

        conventions = Conventions(before_each="setup")
        select_sync, _ = conventions.selectors("before_each")

        assert select_sync(Custom) is vars(Custom)["setup"]
        assert conventions.is_hook_name("setup")

    def test_unknown_category(self):
        with pytest.raises(HookResolutionError):
            Conventions().selectors("around_each")


class TestResolve:
    def test_sync_methods_in_hierarchy_order(self):
        select_sync, select_async = Conventions().selectors("before_each")

        resolved = resolve(class_hierarchy(Derived, Spec), select_sync, select_async)
        resolved.sync(Derived())

        assert resolved.async_ is None
        assert CALLS == ["base", "derived"]

    def test_reversed_runs_most_derived_first(self):
        select_sync, select_async = Conventions().selectors("after_all")

        resolved = resolve(class_hierarchy(Derived, Spec), select_sync, select_async, reversed=True)
        asyncio.run(resolved.async_(Derived()))

        assert resolved.sync is None
        assert CALLS == ["derived", "base"]

    def test_no_methods_resolves_to_nothing(self):
        select_sync, select_async = Conventions().selectors("act_each")

        assert resolve(class_hierarchy(Derived, Spec), select_sync, select_async) == (None, None)

    def test_ambiguous_level_is_a_resolution_error(self):
        def select_anything(cls):
            return lambda instance: None

        with pytest.raises(HookResolutionError):
            resolve([Base], select_anything, select_anything)

    def test_get_methods_drops_absent_levels(self):
        select_sync, _ = Conventions().selectors("before_each")

        methods = get_methods_from_hierarchy([Base, Middle, Derived], select_sync)

        assert methods == [vars(Base)["before_each"], vars(Derived)["before_each"]]
