"""Record validation: an error collection and declarative field checks.

Models override ``validate()`` and call the ``validates_*_of`` helpers (or
``add_error`` directly).  ``Record.save()`` runs ``validate()`` first and
returns ``False`` without touching the database when any error was added.

Usage:
    class Article(Record):
        table = articles

        def validate(self) -> None:
            self.validates_presence_of("title")
            self.validates_length_of("title", maximum=120)

    article = Article(title="")
    await article.save()            # False
    article.errors["title"]         # ["can't be blank"]
"""

import re
from collections.abc import Collection, Iterator
from typing import Any

from pydantic import BaseModel


class FieldError(BaseModel):
    """One validation failure on one attribute."""

    attribute: str
    message: str

    @property
    def full_message(self) -> str:
        return f"{self.attribute} {self.message}"


class Errors:
    """Validation errors for one record, in the order they were added.

    Iterating yields ``FieldError`` items; indexing by attribute name
    returns that attribute's messages (empty list when it has none).

    Example:
        >>> errors = Errors()
        >>> errors.add("title", "can't be blank")
        >>> errors["title"], errors["body"], len(errors)
        (["can't be blank"], [], 1)
    """

    def __init__(self) -> None:
        self._items: list[FieldError] = []

    def add(self, attribute: str, message: str) -> None:
        self._items.append(FieldError(attribute=attribute, message=message))

    def clear(self) -> None:
        self._items.clear()

    def __getitem__(self, attribute: str) -> list[str]:
        return [e.message for e in self._items if e.attribute == attribute]

    def __iter__(self) -> Iterator[FieldError]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)

    def __repr__(self) -> str:
        return f"<Errors {self.full_messages!r}>"

    @property
    def full_messages(self) -> list[str]:
        return [e.full_message for e in self._items]

    def to_dict(self) -> dict[str, list[str]]:
        result: dict[str, list[str]] = {}
        for error in self._items:
            result.setdefault(error.attribute, []).append(error.message)
        return result


def _number(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


class Validations:
    """Validation hooks mixed into ``Record``.

    Helpers read the raw attribute value (``None`` for unset columns).
    """

    _attributes: dict[str, Any]

    @property
    def errors(self) -> Errors:
        """Errors from the most recent ``valid()`` call."""
        errors = self.__dict__.get("_errors")
        if errors is None:
            errors = Errors()
            object.__setattr__(self, "_errors", errors)
        return errors

    def validate(self) -> None:
        """Override to add errors; the default accepts everything."""

    def valid(self) -> bool:
        """Clear previous errors, run ``validate()``, report success."""
        self.errors.clear()
        self.validate()
        return not self.errors

    def add_error(self, attribute: str, message: str) -> None:
        self.errors.add(attribute, message)

    # ------------------------------------------------------------------
    # Declarative helpers
    # ------------------------------------------------------------------

    def validates_presence_of(self, attribute: str) -> None:
        value = self._attributes.get(attribute)
        if value is None or not str(value).strip():
            self.add_error(attribute, "can't be blank")

    def validates_length_of(
        self,
        attribute: str,
        *,
        minimum: int | None = None,
        maximum: int | None = None,
    ) -> None:
        value = self._attributes.get(attribute)
        length = len(str(value)) if value is not None else 0
        if minimum is not None and length < minimum:
            self.add_error(attribute, f"is too short (minimum is {minimum} characters)")
        if maximum is not None and length > maximum:
            self.add_error(attribute, f"is too long (maximum is {maximum} characters)")

    def validates_format_of(
        self,
        attribute: str,
        *,
        pattern: str | re.Pattern[str],
        message: str = "is invalid",
    ) -> None:
        value = self._attributes.get(attribute)
        text = str(value) if value is not None else ""
        if not re.search(pattern, text):
            self.add_error(attribute, message)

    def validates_inclusion_of(
        self,
        attribute: str,
        *,
        in_: Collection[Any],
        message: str = "is not included in the list",
    ) -> None:
        if self._attributes.get(attribute) not in in_:
            self.add_error(attribute, message)

    def validates_exclusion_of(
        self,
        attribute: str,
        *,
        in_: Collection[Any],
        message: str = "is reserved",
    ) -> None:
        if self._attributes.get(attribute) in in_:
            self.add_error(attribute, message)

    def validates_numericality_of(
        self,
        attribute: str,
        *,
        only_integer: bool = False,
        greater_than: float | None = None,
        greater_than_or_equal_to: float | None = None,
        less_than: float | None = None,
        less_than_or_equal_to: float | None = None,
    ) -> None:
        number = _number(self._attributes.get(attribute))
        if number is None:
            self.add_error(attribute, "is not a number")
            return

        if only_integer and not number.is_integer():
            self.add_error(attribute, "must be an integer")
        if greater_than is not None and not number > greater_than:
            self.add_error(attribute, f"must be greater than {greater_than}")
        if greater_than_or_equal_to is not None and not number >= greater_than_or_equal_to:
            self.add_error(
                attribute, f"must be greater than or equal to {greater_than_or_equal_to}"
            )
        if less_than is not None and not number < less_than:
            self.add_error(attribute, f"must be less than {less_than}")
        if less_than_or_equal_to is not None and not number <= less_than_or_equal_to:
            self.add_error(
                attribute, f"must be less than or equal to {less_than_or_equal_to}"
            )
