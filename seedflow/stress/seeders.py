"""
Entities, seed models and seeders used by the stress harness.

`related-test-entities` seeds a small lookup table; `test-entities` seeds the
main table and references related rows by business key, so it depends on the
related seeder.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Hashable, Iterable, List, Optional

from pydantic import BaseModel, Field

from seedflow.seeding.abstract import AbstractSeeder, SeedDataProvider

RELATED_SEEDER = "related-test-entities"
TEST_SEEDER = "test-entities"


@dataclass
class RelatedTestEntity:
    business_key: str
    name: str
    category: str
    priority: int
    id: Optional[int] = None


@dataclass
class TestEntity:
    business_key: str
    name: str
    description: str
    value: Decimal
    created_date: datetime
    related_key: Optional[str] = None
    id: Optional[int] = None


class RelatedTestEntityModel(BaseModel):
    business_key: str = Field(..., min_length=1)
    name: str
    category: str
    priority: int = Field(..., ge=1)

    model_config = {"frozen": True}


class TestEntityModel(BaseModel):
    business_key: str = Field(..., min_length=1)
    name: str
    description: str
    value: Decimal = Field(..., decimal_places=2)
    created_date: datetime
    related_key: Optional[str] = None

    model_config = {"frozen": True}


class RelatedTestEntitySeeder(AbstractSeeder):
    name = RELATED_SEEDER
    table = "related_test_entities"
    entity_type = RelatedTestEntity
    model_type = RelatedTestEntityModel

    def model_key(self, model: RelatedTestEntityModel) -> Hashable:
        return model.business_key

    def entity_key(self, entity: RelatedTestEntity) -> Hashable:
        return entity.business_key

    def map_to_entity(self, model: RelatedTestEntityModel) -> RelatedTestEntity:
        return RelatedTestEntity(
            business_key=model.business_key,
            name=model.name,
            category=model.category,
            priority=model.priority,
        )

    def update_entity(self, entity: RelatedTestEntity, model: RelatedTestEntityModel) -> bool:
        return self._assign(entity, name=model.name, category=model.category, priority=model.priority)


class TestEntitySeeder(AbstractSeeder):
    name = TEST_SEEDER
    table = "test_entities"
    entity_type = TestEntity
    model_type = TestEntityModel
    dependencies = (RELATED_SEEDER,)

    def model_key(self, model: TestEntityModel) -> Hashable:
        return model.business_key

    def entity_key(self, entity: TestEntity) -> Hashable:
        return entity.business_key

    def map_to_entity(self, model: TestEntityModel) -> TestEntity:
        return TestEntity(
            business_key=model.business_key,
            name=model.name,
            description=model.description,
            value=model.value,
            created_date=model.created_date,
            related_key=model.related_key,
        )

    def update_entity(self, entity: TestEntity, model: TestEntityModel) -> bool:
        return self._assign(
            entity,
            name=model.name,
            description=model.description,
            value=model.value,
            created_date=model.created_date,
            related_key=model.related_key,
        )


def build_stress_catalog(
    related_models: Optional[Callable[[], Iterable[Any]]] = None,
    test_models: Optional[Callable[[], Iterable[Any]]] = None,
    provider: Optional[SeedDataProvider] = None,
) -> List[AbstractSeeder]:
    """
    Both stress seeders, registered dependent-first.

    Model factories take precedence; without them the seeders read from
    `provider`.
    """
    return [
        TestEntitySeeder(models=test_models, provider=provider),
        RelatedTestEntitySeeder(models=related_models, provider=provider),
    ]


__all__ = [
    "RELATED_SEEDER",
    "RelatedTestEntity",
    "RelatedTestEntityModel",
    "RelatedTestEntitySeeder",
    "TEST_SEEDER",
    "TestEntity",
    "TestEntityModel",
    "TestEntitySeeder",
    "build_stress_catalog",
]
