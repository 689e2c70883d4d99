"""Mutable field map shared by the extraction tiers."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any

LIST_FIELDS = ("ingredients", "instructions", "categories")


@dataclass(slots=True)
class RecipeFields:
    """Partial recipe data produced by one extraction tier.

    Empty string / empty list means "this tier found nothing".
    """

    title: str = ""
    name: str = ""
    description: str = ""
    image: str = ""
    prep_time: str = ""
    cook_time: str = ""
    total_time: str = ""
    calories: str = ""
    servings: str = ""
    ingredients: list[str] = field(default_factory=list)
    instructions: list[str] = field(default_factory=list)
    categories: list[str] = field(default_factory=list)

    def missing(self) -> list[str]:
        return [item.name for item in fields(self) if not getattr(self, item.name)]

    def fill_from(self, other: "RecipeFields") -> list[str]:
        """Copy `other`'s values into fields that are still empty here.

        Returns the names of the fields that were filled.
        """

        filled: list[str] = []
        for name in self.missing():
            value = getattr(other, name)
            if value:
                setattr(self, name, list(value) if name in LIST_FIELDS else value)
                filled.append(name)
        return filled

    def as_dict(self) -> dict[str, Any]:
        return {item.name: getattr(self, item.name) for item in fields(self)}


__all__ = [
    "LIST_FIELDS",
    "RecipeFields",
]
