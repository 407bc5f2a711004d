"""Allergy safety filter.

A recipe is unsafe for a user when any allergen id the user avoids appears
either as a direct tag on the recipe or on any ingredient the recipe uses.

Missing data is permissive: a recipe without an ingredient list, a usage
without an ingredient, or an ingredient without allergen tags contributes no
allergens from that source. Malformed entries are skipped and never raise, so
one bad recipe cannot abort filtering of the rest. A recipe whose inspection
fails outright is rejected by `filter_safe`.

Matching is by allergen id only. Tags are read from `allergen_ids` (snapshots)
or from an `allergens` relationship of allergen objects (ORM rows).
"""

import logging
from typing import Iterable, Optional

logger = logging.getLogger("platepick.safety")


def _ids(values) -> set:
    """Collect allergen ids from plain ids or allergen objects, skipping None."""
    if not values:
        return set()
    try:
        items = iter(values)
    except TypeError:
        return set()
    out = set()
    for v in items:
        allergen_id = getattr(v, "id", v)
        if allergen_id is None:
            continue
        try:
            out.add(allergen_id)
        except TypeError:
            continue
    return out


def _tagged_ids(obj) -> set:
    # Snapshots carry `allergen_ids`, ORM rows an `allergens` relationship
    return _ids(getattr(obj, "allergen_ids", None)) | _ids(getattr(obj, "allergens", None))


def direct_allergen_ids(recipe) -> set:
    return _tagged_ids(recipe)


def ingredient_allergen_ids(recipe) -> dict[str, set]:
    """Map ingredient name -> allergen ids, over all usages of the recipe."""
    found: dict[str, set] = {}
    usages = getattr(recipe, "ingredients", None) or []
    try:
        usages = list(usages)
    except TypeError:
        logger.debug("Recipe %s has a non-iterable ingredient list; skipped", getattr(recipe, "id", None))
        return found

    for usage in usages:
        ingredient = getattr(usage, "ingredient", None)
        if ingredient is None:
            logger.debug("Recipe %s has a usage without an ingredient; skipped", getattr(recipe, "id", None))
            continue
        ids = _tagged_ids(ingredient)
        if not ids:
            continue
        name = getattr(ingredient, "name", None) or f"ingredient#{getattr(ingredient, 'id', '?')}"
        found.setdefault(name, set()).update(ids)
    return found


def is_safe(recipe, user_allergen_ids: Optional[Iterable[int]]) -> bool:
    """True when the recipe contains none of the user's allergens."""
    avoid = _ids(user_allergen_ids)
    if not avoid:
        return True

    recipe_id = getattr(recipe, "id", None)

    direct_hits = direct_allergen_ids(recipe) & avoid
    if direct_hits:
        logger.info(
            f"Recipe {recipe_id} rejected: direct tag contains allergens {sorted(direct_hits)}"
        )
        return False

    for ingredient_name, ids in ingredient_allergen_ids(recipe).items():
        hits = ids & avoid
        if hits:
            logger.info(
                f"Recipe {recipe_id} rejected: ingredient '{ingredient_name}' contains allergens {sorted(hits)}"
            )
            return False

    return True


def filter_safe(recipes: Iterable, user_allergen_ids: Optional[Iterable[int]]) -> list:
    """Keep only safe recipes, preserving input order."""
    avoid = _ids(user_allergen_ids)
    safe = []
    for recipe in recipes:
        if recipe is None:
            continue
        try:
            ok = is_safe(recipe, avoid)
        except Exception as e:
            # Could not be inspected; never let it through
            logger.error(f"Recipe {getattr(recipe, 'id', None)} rejected: allergen check failed: {e}")
            ok = False
        if ok:
            safe.append(recipe)
    return safe
