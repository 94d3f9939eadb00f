# chatroom/infrastructure/uow.py
from typing import Any


def _unwrap(model: Any) -> Any:
    return model._model if isinstance(model, UoWModel) else model


class UoWModel:
    """Proxy for an ORM row; attribute writes stage the row as dirty.

    Rows staged as new are inserted whole, so writes to them are not tracked
    separately.
    """

    def __init__(self, model: Any, uow: "UnitOfWork"):
        self.__dict__["_model"] = model
        self.__dict__["_uow"] = uow

    def __getattr__(self, key):
        return getattr(self._model, key)

    def __setattr__(self, key, value):
        setattr(self._model, key, value)
        if id(self._model) not in self._uow.new:
            self._uow.register_dirty(self._model)

    def __repr__(self) -> str:
        return f"UoWModel({self._model!r})"


class UnitOfWork:
    """Stages row inserts, updates and deletes and hands them to the data
    mapper registered for each model class, in that order, on ``commit``.
    """

    def __init__(self) -> None:
        self.new: dict[int, Any] = {}
        self.dirty: dict[int, Any] = {}
        self.deleted: dict[int, Any] = {}
        self.mappers: dict[type, Any] = {}

    @property
    def has_pending(self) -> bool:
        return bool(self.new or self.dirty or self.deleted)

    def register_new(self, model: Any) -> UoWModel:
        model = _unwrap(model)
        self.new[id(model)] = model
        return UoWModel(model, self)

    def register_dirty(self, model: Any) -> None:
        model = _unwrap(model)
        if id(model) not in self.new:
            self.dirty[id(model)] = model

    def register_deleted(self, model: Any) -> None:
        model = _unwrap(model)
        key = id(model)
        # never inserted, nothing to delete
        if self.new.pop(key, None) is not None:
            return
        self.dirty.pop(key, None)
        self.deleted[key] = model

    def mapper_for(self, model: Any):
        try:
            return self.mappers[type(model)]
        except KeyError:
            raise LookupError(
                f"No data mapper registered for {type(model).__name__}"
            ) from None

    async def commit(self) -> None:
        for model in self.new.values():
            await self.mapper_for(model).insert(model)
        for model in self.dirty.values():
            await self.mapper_for(model).update(model)
        for model in self.deleted.values():
            await self.mapper_for(model).delete(model)
        self.clear()

    def rollback(self) -> None:
        """Forget pending registrations after a failed commit."""
        self.clear()

    def clear(self) -> None:
        self.new.clear()
        self.dirty.clear()
        self.deleted.clear()
