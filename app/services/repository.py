"""
Soft-delete aware data access shared by the entity services.

Every read goes through ``live()``, which carries the ``deleted_at IS NULL``
predicate, so no lookup can return a soft-deleted row by accident.
"""
import re
from datetime import datetime
from typing import Any, Dict, Generic, Iterable, List, Optional, Sequence, Type, TypeVar

from pydantic import TypeAdapter, ValidationError
from sqlalchemy import func
from sqlmodel import Session, SQLModel, select

from app.core.errors import AppError, ErrorCode
from app.transforms.codecs import dumps, load_object

ModelT = TypeVar("ModelT", bound=SQLModel)

NUMERIC_ID = re.compile(r"^\d+$")

# Never writable through an API payload
PROTECTED_COLUMNS = frozenset({"id", "created_at", "updated_at", "deleted_at"})

_adapters: Dict[Any, TypeAdapter] = {}


def to_snake(key: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", key).lower()


def to_camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def is_numeric_id(value: Any) -> bool:
    return bool(NUMERIC_ID.match(str(value)))


def _adapter(annotation) -> TypeAdapter:
    adapter = _adapters.get(annotation)
    if adapter is None:
        adapter = _adapters[annotation] = TypeAdapter(annotation)
    return adapter


class SoftDeleteRepository(Generic[ModelT]):
    def __init__(self, session: Session, model: Type[ModelT]):
        self.session = session
        self.model = model

    # Queries

    def live(self):
        return select(self.model).where(self.model.deleted_at.is_(None))

    def get(self, id: int) -> Optional[ModelT]:
        return self.session.exec(self.live().where(self.model.id == id)).first()

    def get_by_slug(self, slug: str) -> Optional[ModelT]:
        return self.session.exec(self.live().where(self.model.slug == slug)).first()

    def get_by_slug_or_id(self, slug_or_id: str) -> Optional[ModelT]:
        if is_numeric_id(slug_or_id):
            return self.get(int(slug_or_id))
        return self.get_by_slug(slug_or_id)

    def list(
        self,
        *criteria,
        order_by: Sequence = (),
        offset: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> List[ModelT]:
        statement = self.live().where(*criteria).order_by(*order_by)
        if offset:
            statement = statement.offset(offset)
        if limit is not None:
            statement = statement.limit(limit)
        return list(self.session.exec(statement).all())

    def count(self, *criteria) -> int:
        statement = (
            select(func.count())
            .select_from(self.model)
            .where(self.model.deleted_at.is_(None), *criteria)
        )
        return self.session.exec(statement).one()

    def slug_taken(self, slug: str, exclude_id: Optional[int] = None) -> bool:
        # The unique index covers soft-deleted rows too
        statement = select(self.model.id).where(self.model.slug == slug)
        if exclude_id is not None:
            statement = statement.where(self.model.id != exclude_id)
        return self.session.exec(statement).first() is not None

    # Payload conversion

    def writable_columns(self) -> List[str]:
        return [name for name in self.model.model_fields if name not in PROTECTED_COLUMNS]

    def to_columns(self, payload: Dict[str, Any], exclude: Iterable[str] = ()) -> Dict[str, Any]:
        """camelCase API payload -> validated snake_case column values; unknown keys dropped."""
        writable = set(self.writable_columns()) - set(exclude)
        columns: Dict[str, Any] = {}
        invalid: List[str] = []

        for key, value in payload.items():
            column = to_snake(key)
            if column not in writable:
                continue
            annotation = self.model.model_fields[column].annotation
            try:
                columns[column] = _adapter(annotation).validate_python(value)
            except ValidationError:
                invalid.append(key)

        if invalid:
            raise AppError(
                ErrorCode.VALIDATION_ERROR,
                f"Invalid values for fields: {', '.join(invalid)}",
                details={"invalid": invalid},
            )
        return columns

    def merge_json_columns(self, obj: Optional[ModelT], columns: Dict[str, Any], names: Iterable[str]) -> None:
        """
        Apply incoming JSON object columns as merge patches over the stored ones.

        Keys patched to None are removed; keys the patch does not mention are kept.
        With no ``obj`` (an insert) the patch applies to an empty object.
        """
        for name in names:
            if name in columns and columns[name] is not None:
                stored = load_object(getattr(obj, name)) if obj is not None else {}
                merged = {**stored, **load_object(columns[name])}
                columns[name] = dumps({key: value for key, value in merged.items() if value is not None})

    def to_api(self, obj: Optional[ModelT]) -> Optional[Dict[str, Any]]:
        if obj is None:
            return None
        return {to_camel(name): value for name, value in obj.model_dump().items()}

    # Writes

    def save(self, obj: ModelT) -> ModelT:
        self.session.add(obj)
        self.session.commit()
        self.session.refresh(obj)
        return obj

    def insert(self, columns: Dict[str, Any]) -> ModelT:
        now = datetime.utcnow()
        obj = self.model(**columns, created_at=now, updated_at=now)
        return self.save(obj)

    def update(self, obj: ModelT, columns: Dict[str, Any]) -> ModelT:
        for name, value in columns.items():
            setattr(obj, name, value)
        obj.updated_at = datetime.utcnow()
        return self.save(obj)

    def soft_delete(self, obj: Optional[ModelT]) -> bool:
        if obj is None or obj.deleted_at is not None:
            return False
        obj.deleted_at = datetime.utcnow()
        obj.updated_at = obj.deleted_at
        self.save(obj)
        return True
