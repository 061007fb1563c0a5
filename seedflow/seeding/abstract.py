"""
Seeder interfaces and seed data sources for Seedflow.

A seeder describes how one entity type is seeded from one seed model type:
how to extract a business key from either side, how to build a new entity from
a model, and how to bring an existing entity in line with a model. Concrete
seeders implement the `Seeder` protocol, usually by subclassing
`AbstractSeeder`, and are registered in a catalog handed to the orchestrator.
"""

from __future__ import annotations

import abc
import base64
import hashlib
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import (
    Any,
    Callable,
    ClassVar,
    Dict,
    FrozenSet,
    Hashable,
    Iterable,
    Iterator,
    List,
    Optional,
    Protocol,
    Tuple,
    Union,
    runtime_checkable,
)

from pydantic import BaseModel, ValidationError

from seedflow.domain.errors import SeedDataError
from seedflow.utils.logging import get_logger

log = get_logger(__name__)


@dataclass(frozen=True)
class EnvironmentPolicy:
    """
    Static environment compatibility attached to a seeder.

    Attributes
    ----------
    production_safe : bool
        Whether the seeder may run in the production environment.
    allowed_environments : frozenset[str]
        Explicit allow-list. Empty means every environment is allowed.
    """

    production_safe: bool = False
    allowed_environments: FrozenSet[str] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        object.__setattr__(self, "allowed_environments", frozenset(self.allowed_environments))


@dataclass(frozen=True)
class SeedData:
    records: List[Dict[str, Any]]
    content_hash: str
    source: str


@runtime_checkable
class SeedDataProvider(Protocol):
    def load(self, seeder_name: str, environment: str) -> Optional[SeedData]:
        """Return raw records for a seeder, or None when no data exists."""
        ...


def content_hash(content: Union[str, bytes]) -> str:
    """Base64-encoded SHA-256 of seed content."""
    if isinstance(content, str):
        content = content.encode("utf-8")
    return base64.b64encode(hashlib.sha256(content).digest()).decode("ascii")


class JsonFileSeedDataProvider:
    """
    Reads `<seeder>.<environment>.json`, falling back to `<seeder>.json`.

    Each file holds a JSON array of objects. Parsed files are cached per
    provider instance, so repeated loads during one run read the disk once.
    """

    def __init__(self, directory: Union[str, Path]) -> None:
        self.directory = Path(directory)
        self._cache: Dict[Path, SeedData] = {}

    def _candidates(self, seeder_name: str, environment: str) -> Iterator[Path]:
        if environment:
            yield self.directory / f"{seeder_name}.{environment}.json"
        yield self.directory / f"{seeder_name}.json"

    def load(self, seeder_name: str, environment: str) -> Optional[SeedData]:
        for path in self._candidates(seeder_name, environment):
            if path in self._cache:
                return self._cache[path]
            if not path.exists():
                continue
            content = path.read_text(encoding="utf-8")
            try:
                records = json.loads(content)
            except json.JSONDecodeError as exc:
                raise SeedDataError(seeder_name, str(path), f"not valid JSON ({exc})") from exc
            if not isinstance(records, list):
                raise SeedDataError(seeder_name, str(path), "expected a JSON array of objects")
            data = SeedData(records=records, content_hash=content_hash(content), source=str(path))
            self._cache[path] = data
            return data
        return None


@runtime_checkable
class Seeder(Protocol):
    """
    Common interface all seeders must implement.

    Attributes
    ----------
    name : str
        Unique identifier within a catalog.
    table : str
        Storage location of the seeded entities.
    entity_type : type
        Class of the persisted entity; the store builds instances of it on load.
    dependencies : tuple[str, ...]
        Names of seeders that must be applied first.
    policy : EnvironmentPolicy
        Environment compatibility.
    """

    name: str
    table: str
    entity_type: type
    dependencies: Tuple[str, ...]
    policy: EnvironmentPolicy

    def load_models(self, environment: str) -> Iterable[Any]:
        """Desired seed models. Must be repeatable: each call yields the full set."""
        ...

    def content_hash(self, environment: str) -> Optional[str]:
        ...

    def model_key(self, model: Any) -> Hashable:
        ...

    def entity_key(self, entity: Any) -> Hashable:
        ...

    def map_to_entity(self, model: Any) -> Any:
        ...

    def update_entity(self, entity: Any, model: Any) -> bool:
        """Mutate `entity` to match `model`; return True if any field changed."""
        ...


ModelSource = Union[Iterable[Any], Callable[[], Iterable[Any]]]


class AbstractSeeder(abc.ABC):
    """
    ABC helper for class-based seeders.

    Subclasses set `name`, `table`, `entity_type` and `model_type` (and
    optionally `dependencies` and `policy`) and implement the key and mapping
    hooks. Desired models come from `models` (a sequence, or a zero-argument
    callable returning a fresh iterable) or, failing that, from `provider`.
    """

    name: ClassVar[str]
    table: ClassVar[str]
    entity_type: ClassVar[type]
    model_type: ClassVar[type[BaseModel]]
    dependencies: ClassVar[Tuple[str, ...]] = ()
    policy: ClassVar[EnvironmentPolicy] = EnvironmentPolicy()

    def __init__(
        self,
        models: Optional[ModelSource] = None,
        provider: Optional[SeedDataProvider] = None,
    ) -> None:
        if isinstance(models, Iterator):
            raise TypeError("models must be re-iterable; pass a sequence or a factory callable")
        self._models = models
        self._provider = provider

    def load_models(self, environment: str) -> Iterable[Any]:
        if self._models is not None:
            return self._models() if callable(self._models) else iter(self._models)
        if self._provider is None:
            return iter(())
        data = self._provider.load(self.name, environment)
        if data is None:
            log.warning(
                f"No seed data found for seeder '{self.name}'",
                extra={"seeder": self.name, "environment": environment},
            )
            return iter(())
        return self._validated(data)

    def _validated(self, data: SeedData) -> Iterator[Any]:
        for index, record in enumerate(data.records):
            try:
                yield self.model_type.model_validate(record)
            except ValidationError as exc:
                raise SeedDataError(self.name, data.source, str(exc), index=index) from exc

    def content_hash(self, environment: str) -> Optional[str]:
        if self._models is not None or self._provider is None:
            return None
        data = self._provider.load(self.name, environment)
        return data.content_hash if data else None

    @staticmethod
    def _assign(entity: Any, **values: Any) -> bool:
        """Set attributes on `entity`, reporting whether any value differed."""
        changed = False
        for attr, value in values.items():
            if getattr(entity, attr) != value:
                setattr(entity, attr, value)
                changed = True
        return changed

    @abc.abstractmethod
    def model_key(self, model: Any) -> Hashable:  # pragma: no cover - interface only
        raise NotImplementedError

    @abc.abstractmethod
    def entity_key(self, entity: Any) -> Hashable:  # pragma: no cover - interface only
        raise NotImplementedError

    @abc.abstractmethod
    def map_to_entity(self, model: Any) -> Any:  # pragma: no cover - interface only
        raise NotImplementedError

    @abc.abstractmethod
    def update_entity(self, entity: Any, model: Any) -> bool:  # pragma: no cover - interface only
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"<{type(self).__name__} name={self.name!r}>"


__all__ = [
    "AbstractSeeder",
    "EnvironmentPolicy",
    "JsonFileSeedDataProvider",
    "SeedData",
    "SeedDataProvider",
    "Seeder",
    "content_hash",
]
