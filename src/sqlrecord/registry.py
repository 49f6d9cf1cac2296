"""Model registry: resolves association targets by model name."""

from typing import TYPE_CHECKING

from sqlrecord.errors import ConfigurationError

if TYPE_CHECKING:
    from sqlrecord.record import Record


class ModelRegistry:
    """Name -> model class mapping, populated by ``Database.register``.

    Associations name their target as a string so models can refer to each
    other regardless of definition order; the registry resolves the name
    at first use.
    """

    def __init__(self) -> None:
        self._models: dict[str, type["Record"]] = {}

    def register(self, model: type["Record"]) -> None:
        self._models[model.__name__] = model

    def resolve(self, target: "str | type[Record]") -> type["Record"]:
        """Return the model class for *target* (a class or a class name).

        Raises:
            ConfigurationError: If the name was never registered.
        """
        if isinstance(target, type):
            return target
        try:
            return self._models[target]
        except KeyError:
            raise ConfigurationError(
                f"Model '{target}' is not registered; "
                f"call db.register({target}) before use"
            ) from None

    def __contains__(self, name: str) -> bool:
        return name in self._models

    def __iter__(self):
        return iter(self._models.values())
