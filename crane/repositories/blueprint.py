import uuid
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from sqlalchemy.engine import Engine
from sqlmodel import Session, col, select

from ..domain.models import Blueprint, utc_now
from ..infrastructure.database.connection import get_engine
from ..infrastructure.database.tables import BlueprintDBModel
from ..services.exceptions import NotFoundError, ValidationError

DEFAULT_LIST_LIMIT = 50

# Fields a caller may change through update()
UPDATABLE_FIELDS = ("name", "description", "tiles", "metadata")


# The Interface
class BlueprintRepository(ABC):
    """
    Defines how the application accesses Blueprint definitions.
    This allows us change how data is accessed (Memory -> SQL -> API) later
    without changing the execution code.
    """

    @abstractmethod
    def get(self, blueprint_id: str) -> Optional[Blueprint]:
        """Retrieves a blueprint by ID, or None."""
        pass

    @abstractmethod
    def list(
        self,
        organization_id: str,
        tags: Optional[List[str]] = None,
        limit: Optional[int] = None,
    ) -> List[Blueprint]:
        """
        Blueprints of an organization, newest first. With `tags`, only
        blueprints carrying all of them are returned.
        """
        pass

    @abstractmethod
    def create(self, blueprint: Blueprint) -> Blueprint:
        """
        Stores a new blueprint and returns it with its assigned ID and timestamps.
        Raises ValidationError if it has no organization.
        """
        pass

    @abstractmethod
    def update(self, blueprint_id: str, **changes: Any) -> Blueprint:
        """
        Applies `changes` (name, description, tiles, metadata). None values are ignored.
        Raises NotFoundError if the blueprint does not exist.
        """
        pass

    @abstractmethod
    def remove(self, blueprint_id: str):
        """Raises NotFoundError if the blueprint does not exist."""
        pass


def _new_blueprint(blueprint: Blueprint) -> Blueprint:
    if not blueprint.organization_id:
        raise ValidationError("Blueprint requires an organization_id")
    now = utc_now()
    return blueprint.model_copy(
        update={"id": blueprint.id or str(uuid.uuid4()), "created_at": now, "updated_at": now}
    )


def _apply_changes(blueprint: Blueprint, changes: Dict[str, Any]) -> Blueprint:
    unknown = set(changes) - set(UPDATABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Cannot update blueprint field(s): {', '.join(sorted(unknown))}")

    data = blueprint.model_dump()
    data.update({key: value for key, value in changes.items() if value is not None})
    data["updated_at"] = utc_now()
    # Re-validate so tiles/metadata given as dicts become models.
    return Blueprint.model_validate(data)


def _has_tags(blueprint: Blueprint, tags: Optional[List[str]]) -> bool:
    if not tags:
        return True
    return set(tags).issubset(blueprint.metadata.tags or [])


class InMemoryBlueprintRepository(BlueprintRepository):
    """
    Keeps blueprints in a dictionary for testing/dev purposes.
    """

    def __init__(self, blueprints: Optional[List[Blueprint]] = None):
        self._store: Dict[str, Blueprint] = {}
        for blueprint in blueprints or []:
            self.create(blueprint)

    def get(self, blueprint_id: str) -> Optional[Blueprint]:
        return self._store.get(blueprint_id)

    def list(self, organization_id, tags=None, limit=None) -> List[Blueprint]:
        matches = [
            bp
            for bp in self._store.values()
            if bp.organization_id == organization_id and _has_tags(bp, tags)
        ]
        matches.sort(key=lambda bp: bp.created_at, reverse=True)
        return matches[: limit or DEFAULT_LIST_LIMIT]

    def create(self, blueprint: Blueprint) -> Blueprint:
        stored = _new_blueprint(blueprint)
        self._store[stored.id] = stored
        return stored

    def update(self, blueprint_id: str, **changes: Any) -> Blueprint:
        existing = self._store.get(blueprint_id)
        if existing is None:
            raise NotFoundError("Blueprint", blueprint_id)
        updated = _apply_changes(existing, changes)
        self._store[blueprint_id] = updated
        return updated

    def remove(self, blueprint_id: str):
        if self._store.pop(blueprint_id, None) is None:
            raise NotFoundError("Blueprint", blueprint_id)


class PostgresBlueprintRepository(BlueprintRepository):
    """
    Reads and writes the 'blueprints' table (JSONB document per blueprint).
    Any SQLAlchemy engine works; tests use SQLite.
    """

    def __init__(self, engine: Optional[Engine] = None):
        self.engine = engine or get_engine()

    def get(self, blueprint_id: str) -> Optional[Blueprint]:
        with Session(self.engine) as db:
            result = db.get(BlueprintDBModel, blueprint_id)
            if not result:
                return None
            # Deserialize JSONB -> Pydantic
            return Blueprint.model_validate(result.blueprint_data)

    def list(self, organization_id, tags=None, limit=None) -> List[Blueprint]:
        with Session(self.engine) as db:
            statement = (
                select(BlueprintDBModel)
                .where(BlueprintDBModel.organization_id == organization_id)
                .order_by(col(BlueprintDBModel.created_at).desc())
            )
            rows = db.exec(statement).all()

        # Tag filtering happens on the documents; tags live inside the JSON.
        blueprints = [Blueprint.model_validate(row.blueprint_data) for row in rows]
        matches = [bp for bp in blueprints if _has_tags(bp, tags)]
        return matches[: limit or DEFAULT_LIST_LIMIT]

    def create(self, blueprint: Blueprint) -> Blueprint:
        stored = _new_blueprint(blueprint)
        db_model = BlueprintDBModel(
            blueprint_id=stored.id,
            organization_id=stored.organization_id,
            name=stored.name,
            blueprint_data=stored.model_dump(mode="json"),
            created_at=stored.created_at,
            updated_at=stored.updated_at,
        )
        with Session(self.engine) as db:
            db.add(db_model)
            db.commit()
        return stored

    def update(self, blueprint_id: str, **changes: Any) -> Blueprint:
        with Session(self.engine) as db:
            result = db.get(BlueprintDBModel, blueprint_id)
            if not result:
                raise NotFoundError("Blueprint", blueprint_id)

            updated = _apply_changes(Blueprint.model_validate(result.blueprint_data), changes)

            # Update the JSON blob and the indexed columns
            result.blueprint_data = updated.model_dump(mode="json")
            result.name = updated.name
            result.updated_at = updated.updated_at
            db.add(result)
            db.commit()
            return updated

    def remove(self, blueprint_id: str):
        with Session(self.engine) as db:
            result = db.get(BlueprintDBModel, blueprint_id)
            if not result:
                raise NotFoundError("Blueprint", blueprint_id)
            db.delete(result)
            db.commit()
