from __future__ import annotations

import logging

import pytest
from conftest import Item, ItemModel

from seedflow.domain.errors import DuplicateBusinessKeyError
from seedflow.seeding.reconcile import (
    OperationKind,
    check_desired_keys,
    reconcile,
    same_business_key,
)


def test_diff_updates_matches_inserts_new_and_leaves_extras(make_seeder) -> None:
    seeder = make_seeder("items")
    key2_entity = Item(key="key2", value="B", id=2)
    existing = [Item(key="key1", value="A", id=1), key2_entity]
    desired = [ItemModel(key="key1", value="A-prime"), ItemModel(key="key3", value="C")]

    plan = reconcile(seeder, desired, existing)

    assert [(op.kind, op.key) for op in plan.operations] == [
        (OperationKind.UPDATE, "key1"),
        (OperationKind.INSERT, "key3"),
    ]
    assert plan.operations[0].entity.id == 1
    assert plan.operations[0].entity.value == "A-prime"
    assert plan.operations[1].entity == Item(key="key3", value="C")
    assert key2_entity == Item(key="key2", value="B", id=2)
    assert (plan.inserted, plan.updated, plan.unchanged) == (1, 1, 0)


def test_matching_records_are_unchanged_no_ops(make_seeder) -> None:
    seeder = make_seeder("items")
    existing = [Item(key="a", value="1", id=1), Item(key="b", value="2", id=2)]
    desired = [ItemModel(key="a", value="1"), ItemModel(key="b", value="2")]

    plan = reconcile(seeder, desired, existing)

    assert plan.is_empty
    assert len(plan) == 0
    assert plan.unchanged == 2


def test_operations_follow_desired_order(make_seeder) -> None:
    seeder = make_seeder("items")
    desired = [ItemModel(key=k, value="v") for k in ("z", "a", "m")]

    plan = reconcile(seeder, desired, [])

    assert [op.key for op in plan.operations] == ["z", "a", "m"]


def test_duplicate_desired_key_is_a_configuration_error(make_seeder) -> None:
    seeder = make_seeder("items")
    desired = [ItemModel(key="a", value="1"), ItemModel(key="b", value="2"), ItemModel(key="a", value="3")]

    with pytest.raises(DuplicateBusinessKeyError) as excinfo:
        reconcile(seeder, desired, [])

    assert excinfo.value.seeder_name == "items"
    assert excinfo.value.key == "a"
    assert excinfo.value.index == 2


def test_check_desired_keys_counts_and_rejects_duplicates(make_seeder) -> None:
    seeder = make_seeder("items")

    assert check_desired_keys(seeder, [ItemModel(key=str(i), value="v") for i in range(5)]) == 5
    with pytest.raises(DuplicateBusinessKeyError):
        check_desired_keys(seeder, [ItemModel(key="x", value="1"), ItemModel(key="x", value="1")])


def test_duplicate_existing_keys_warn_and_first_loaded_wins(make_seeder, caplog) -> None:
    seeder = make_seeder("items")
    existing = [Item(key="a", value="old", id=7), Item(key="a", value="older", id=9)]

    with caplog.at_level(logging.WARNING, logger="seedflow.seeding.reconcile"):
        plan = reconcile(seeder, [ItemModel(key="a", value="new")], existing)

    assert len(plan.integrity_warnings) == 1
    assert plan.operations[0].entity.id == 7
    assert existing[1].value == "older"
    assert any("[INTEGRITY]" in message for message in caplog.messages)


def test_same_business_key_ignores_storage_identity(make_seeder) -> None:
    seeder = make_seeder("items")

    assert same_business_key(seeder, ItemModel(key="a", value="x"), Item(key="a", value="y", id=99))
    assert not same_business_key(seeder, ItemModel(key="a", value="x"), Item(key="b", value="x"))
