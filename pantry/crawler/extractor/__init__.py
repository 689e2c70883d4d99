"""Recipe extraction tiers and the extractor that combines them."""

from .duration import convert_duration
from .fields import RecipeFields
from .narrative import extract_narrative
from .recipe_extractor import RecipeExtractor
from .selectors import extract_with_selectors
from .structured import extract_structured, find_recipe_node

__all__ = [
    "RecipeExtractor",
    "RecipeFields",
    "convert_duration",
    "extract_narrative",
    "extract_structured",
    "extract_with_selectors",
    "find_recipe_node",
]
