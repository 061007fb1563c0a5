from __future__ import annotations

import pytest

from seedflow.domain.errors import (
    DependencyCycleError,
    DuplicateSeederError,
    UnknownDependencyError,
)
from seedflow.seeding.resolver import resolve_order, transitive_dependents


def _names(seeders) -> list[str]:
    return [s.name for s in seeders]


def test_dependencies_precede_dependents(make_seeder) -> None:
    catalog = [
        make_seeder("orders", dependencies=["users", "products"]),
        make_seeder("users", dependencies=["roles"]),
        make_seeder("products"),
        make_seeder("roles"),
    ]

    order = _names(resolve_order(catalog))

    for seeder in catalog:
        for dependency in seeder.dependencies:
            assert order.index(dependency) < order.index(seeder.name)


def test_independent_seeders_keep_registration_order(make_seeder) -> None:
    catalog = [make_seeder("c"), make_seeder("a"), make_seeder("b")]

    assert _names(resolve_order(catalog)) == ["c", "a", "b"]


def test_tie_break_is_registration_order_once_ready(make_seeder) -> None:
    catalog = [
        make_seeder("late", dependencies=["base"]),
        make_seeder("free"),
        make_seeder("base"),
    ]

    # "free" and "base" are ready first; "late" becomes ready after "base"
    assert _names(resolve_order(catalog)) == ["free", "base", "late"]


def test_same_catalog_always_yields_same_order(make_seeder) -> None:
    def catalog():
        return [
            make_seeder("x", dependencies=["z"]),
            make_seeder("y"),
            make_seeder("z"),
            make_seeder("w", dependencies=["y"]),
        ]

    first = _names(resolve_order(catalog()))
    for _ in range(5):
        assert _names(resolve_order(catalog())) == first


def test_unknown_dependency_names_both_sides(make_seeder) -> None:
    catalog = [make_seeder("users", dependencies=["roles"])]

    with pytest.raises(UnknownDependencyError) as excinfo:
        resolve_order(catalog)

    assert excinfo.value.seeder_name == "users"
    assert excinfo.value.missing_name == "roles"


def test_two_node_cycle_is_reported(make_seeder) -> None:
    catalog = [make_seeder("a", dependencies=["b"]), make_seeder("b", dependencies=["a"])]

    with pytest.raises(DependencyCycleError) as excinfo:
        resolve_order(catalog)

    assert excinfo.value.involved_names == ("a", "b", "a")
    assert "a -> b -> a" in str(excinfo.value)


def test_cycle_reported_even_behind_valid_prefix(make_seeder) -> None:
    catalog = [
        make_seeder("root"),
        make_seeder("p", dependencies=["root", "r"]),
        make_seeder("q", dependencies=["p"]),
        make_seeder("r", dependencies=["q"]),
    ]

    with pytest.raises(DependencyCycleError) as excinfo:
        resolve_order(catalog)

    involved = set(excinfo.value.involved_names)
    assert involved == {"p", "q", "r"}
    assert excinfo.value.involved_names[0] == excinfo.value.involved_names[-1]


def test_self_dependency_is_a_cycle(make_seeder) -> None:
    with pytest.raises(DependencyCycleError) as excinfo:
        resolve_order([make_seeder("loop", dependencies=["loop"])])

    assert excinfo.value.involved_names == ("loop", "loop")


def test_duplicate_names_are_rejected(make_seeder) -> None:
    with pytest.raises(DuplicateSeederError):
        resolve_order([make_seeder("users"), make_seeder("users")])


def test_repeated_dependency_entries_count_once(make_seeder) -> None:
    catalog = [make_seeder("b", dependencies=["a", "a"]), make_seeder("a")]

    assert _names(resolve_order(catalog)) == ["a", "b"]


def test_transitive_dependents(make_seeder) -> None:
    catalog = [
        make_seeder("a"),
        make_seeder("b", dependencies=["a"]),
        make_seeder("c", dependencies=["b"]),
        make_seeder("d"),
    ]

    assert transitive_dependents(catalog, "a") == {"b", "c"}
    assert transitive_dependents(catalog, "c") == set()
