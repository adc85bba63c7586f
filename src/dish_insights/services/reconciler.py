"""Reconcile analysis payloads into a single dish view model.

Each output field has a precedence chain: an ordered table of named
accessors tried in turn, first non-empty result wins. Nothing here performs
I/O or raises; missing data degrades to ``None``, empty lists or neutral
classifications.
"""

import math
import re
from collections.abc import Callable, Mapping, Sequence
from typing import TypeVar

from dish_insights.domain.analysis import (
    AllergenFlag,
    DishAnalysis,
    FodmapFlag,
    LactoseFlag,
    NutritionSummary,
    OrganSummaryEntry,
    SelectionNutritionRow,
    SelectionResult,
)
from dish_insights.domain.view_model import (
    AllergenPill,
    DishViewModel,
    NutritionMacros,
    OrganLine,
    OrganSeverity,
    PlateComponentView,
    PortionSummary,
)

T = TypeVar("T")
E = TypeVar("E", bound=OrganSummaryEntry)
Accessor = Callable[[DishAnalysis], T | None]

CANONICAL_ORGANS: tuple[tuple[str, str], ...] = (
    ("gut", "Gut"),
    ("liver", "Liver"),
    ("heart", "Heart"),
    ("metabolic", "Metabolic"),
    ("immune", "Immune"),
    ("brain", "Brain"),
    ("kidney", "Kidney"),
)
EXTENDED_ORGANS: tuple[tuple[str, str], ...] = (
    ("eyes", "Eyes"),
    ("skin", "Skin"),
    ("bones", "Bones"),
    ("thyroid", "Thyroid"),
)

ALLERGEN_SYNONYMS: tuple[tuple[str, str], ...] = (
    ("milk", "dairy"),
    ("peanut", "peanuts"),
    ("tree nut", "tree nuts"),
    ("gluten", "wheat"),
)
SHOWN_PRESENCE = ("yes", "maybe")
HIGH_LACTOSE_PILL = "High lactose"

NUTRITION_SOURCE_LABELS: dict[str, str] = {
    "restaurant_label": "Nutrition from the restaurant's published information.",
    "restaurant_label_plus_recipe": (
        "Restaurant calories combined with a recipe-based estimate."
    ),
    "recipe_estimate": "Estimated from a closely matching published recipe.",
    "edamam": "Estimated from a closely matching published recipe.",
    "spoonacular": "Estimated from a closely matching published recipe.",
    "database_estimate": "Estimated from a nutrition database match.",
    "fatsecret": "Estimated from a nutrition database match.",
    "fatsecret_image": "Estimated from a nutrition database match.",
    "ingredient_estimate": "Estimated from the individual recipe ingredients.",
    "usda_estimate": "Estimated from USDA FoodData Central.",
    "usda": "Estimated from USDA FoodData Central.",
}
GENERIC_NUTRITION_SOURCE_LABEL = "Nutrition values are estimated."

LIFESTYLE_TAG_LABELS: dict[str, str] = {
    "red_meat": "Red meat",
    "contains_red_meat": "Red meat",
    "processed_meat": "Processed meat",
    "comfort_food": "Comfort food",
    "high_sugar_dessert": "High-sugar dessert",
    "plant_forward": "Plant-forward",
    "poultry": "Poultry",
    "pork": "Pork",
    "fish": "Fish",
    "shellfish": "Shellfish",
    "vegetarian": "Vegetarian",
    "vegan": "Vegan",
    "red_meat_free": "Red meat free",
}
DIET_TAG_PRIORITY: tuple[str, ...] = (
    "Red meat",
    "Processed meat",
    "Comfort food",
    "High-sugar dessert",
    "Plant-forward",
    "Poultry",
    "Pork",
    "Fish",
    "Shellfish",
)
_RED_MEAT_CONFLICTS = {"vegetarian", "vegan", "red meat free"}
_TAG_SEPARATORS = re.compile(r"[\s_-]+")


def _combined_allergens(analysis: DishAnalysis) -> list[AllergenFlag] | None:
    selection = analysis.selection_default
    return selection.combined_allergens if selection else None


def _flat_allergens(analysis: DishAnalysis) -> list[AllergenFlag] | None:
    return analysis.allergen_flags


def _legacy_allergens(analysis: DishAnalysis) -> list[AllergenFlag] | None:
    key_flags = analysis.summary.key_flags if analysis.summary else None
    names = key_flags.allergens if key_flags else None
    if not names:
        return None
    message = " ".join(_legacy_allergen_messages(analysis))
    return [
        AllergenFlag(kind=name, present="yes", message=message, source="legacy")
        for name in names
    ]


def _combined_fodmap(analysis: DishAnalysis) -> FodmapFlag | None:
    selection = analysis.selection_default
    return selection.combined_fodmap if selection else None


def _flat_fodmap(analysis: DishAnalysis) -> FodmapFlag | None:
    return analysis.fodmap_flags


def _organ_flags_fodmap(analysis: DishAnalysis) -> FodmapFlag | None:
    flags = analysis.organs.flags if analysis.organs else None
    return flags.fodmap if flags else None


def _legacy_fodmap(analysis: DishAnalysis) -> FodmapFlag | None:
    key_flags = analysis.summary.key_flags if analysis.summary else None
    if not key_flags or not key_flags.fodmap_level:
        return None
    return FodmapFlag(level=key_flags.fodmap_level, reason="", source="legacy")


def _combined_lactose(analysis: DishAnalysis) -> LactoseFlag | None:
    selection = analysis.selection_default
    return selection.combined_lactose if selection else None


def _flat_lactose(analysis: DishAnalysis) -> LactoseFlag | None:
    return analysis.lactose_flags


def _organ_flags_lactose(analysis: DishAnalysis) -> LactoseFlag | None:
    flags = analysis.organs.flags if analysis.organs else None
    return flags.lactose if flags else None


def _legacy_lactose(analysis: DishAnalysis) -> LactoseFlag | None:
    key_flags = analysis.summary.key_flags if analysis.summary else None
    if not key_flags or not key_flags.lactose_level:
        return None
    return LactoseFlag(level=key_flags.lactose_level, reason="", source="legacy")


def _combined_nutrition(analysis: DishAnalysis) -> NutritionSummary | None:
    selection = analysis.selection_default
    return selection.combined_nutrition if selection else None


def _top_level_nutrition(analysis: DishAnalysis) -> NutritionSummary | None:
    return analysis.nutrition_summary


def _recipe_nutrition(analysis: DishAnalysis) -> NutritionSummary | None:
    return analysis.recipe.nutrition_summary if analysis.recipe else None


def _recipe_output_nutrition(analysis: DishAnalysis) -> NutritionSummary | None:
    recipe = analysis.recipe
    if not recipe or not recipe.out:
        return None
    return recipe.out.nutrition_summary


ALLERGEN_SOURCES: tuple[tuple[str, Accessor[list[AllergenFlag]]], ...] = (
    ("selection_default", _combined_allergens),
    ("allergen_flags", _flat_allergens),
    ("legacy", _legacy_allergens),
)
STRUCTURED_ALLERGEN_SOURCES = frozenset({"selection_default", "allergen_flags"})

FODMAP_SOURCES: tuple[tuple[str, Accessor[FodmapFlag]], ...] = (
    ("selection_default", _combined_fodmap),
    ("fodmap_flags", _flat_fodmap),
    ("organ_flags", _organ_flags_fodmap),
    ("legacy", _legacy_fodmap),
)

LACTOSE_SOURCES: tuple[tuple[str, Accessor[LactoseFlag]], ...] = (
    ("selection_default", _combined_lactose),
    ("lactose_flags", _flat_lactose),
    ("organ_flags", _organ_flags_lactose),
    ("legacy", _legacy_lactose),
)

NUTRITION_SOURCES: tuple[tuple[str, Accessor[NutritionSummary]], ...] = (
    ("selection_default", _combined_nutrition),
    ("nutrition_summary", _top_level_nutrition),
    ("recipe", _recipe_nutrition),
    ("recipe_out", _recipe_output_nutrition),
)


def first_present(
    sources: Sequence[tuple[str, Accessor[T]]], analysis: DishAnalysis
) -> tuple[str | None, T | None]:
    """Return the name and value of the first source with a non-empty value."""
    for name, accessor in sources:
        value = accessor(analysis)
        if value is None:
            continue
        if isinstance(value, list) and not value:
            continue
        return name, value
    return None, None


def build_allergen_matcher(user_allergens: Sequence[str]) -> Callable[[str], bool]:
    """Return a predicate telling whether an allergen name concerns the user.

    Matches are case-insensitive and treat each synonym pair in
    ``ALLERGEN_SYNONYMS`` as equivalent in both directions.
    """
    selected = {allergen.strip().lower() for allergen in user_allergens}
    equivalents: dict[str, set[str]] = {}
    for left, right in ALLERGEN_SYNONYMS:
        equivalents.setdefault(left, set()).add(right)
        equivalents.setdefault(right, set()).add(left)

    def matches(name: str) -> bool:
        lowered = name.strip().lower()
        if lowered in selected:
            return True
        return bool(equivalents.get(lowered, set()) & selected)

    return matches


def classify_organ_level(level_raw: str | None) -> OrganSeverity:
    """Classify a level from a per-organ entry. ``mild`` counts as medium."""
    level = (level_raw or "").strip().lower()
    if not level or level == "neutral":
        return "neutral"
    if "high" in level or "severe" in level:
        return "high"
    if "moderate" in level or "mild" in level or "medium" in level:
        return "medium"
    if "low" in level:
        return "low"
    return "neutral"


def classify_legacy_organ_level(level_raw: str | None) -> OrganSeverity:
    """Classify a level from the legacy summary. ``mild`` counts as low."""
    level = (level_raw or "").strip().lower()
    if not level or level == "neutral":
        return "neutral"
    if "high" in level or "severe" in level:
        return "high"
    if "moderate" in level or "medium" in level:
        return "medium"
    if "mild" in level or "low" in level:
        return "low"
    return "neutral"


def organ_sentence(organ: str, score: float | None, severity: OrganSeverity) -> str:
    """Describe an organ impact from its score sign and severity."""
    name = organ.lower()
    if not _finite(score) or score == 0:
        return f"Neutral impact on your {name}."
    if score < 0:
        if severity == "high":
            return (
                f"May strongly stress your {name}, "
                "based on ingredients linked to that organ."
            )
        if severity == "medium":
            return f"May put extra load on your {name}."
        return f"Slightly increased load on your {name}."
    if severity == "high":
        return f"May be particularly supportive for your {name}."
    if severity == "medium":
        return f"May offer some support for your {name}."
    return f"Mildly supportive for your {name}."


def nutrition_source_label(source_tag: str | None) -> str | None:
    """Map an opaque nutrition source tag to a short sentence."""
    if source_tag is None or not source_tag.strip():
        return None
    return NUTRITION_SOURCE_LABELS.get(
        source_tag.strip().lower(), GENERIC_NUTRITION_SOURCE_LABEL
    )


def build_dish_view_model(
    analysis: DishAnalysis | Mapping[str, object] | None,
    user_allergens: Sequence[str],
) -> DishViewModel:
    """Build the canonical view model for a dish analysis payload."""
    if not isinstance(analysis, DishAnalysis):
        analysis = DishAnalysis.from_payload(analysis)
    matches_user = build_allergen_matcher(user_allergens)
    cares_about_milk = any(a.strip().lower() == "milk" for a in user_allergens)

    allergen_source, allergen_flags = first_present(ALLERGEN_SOURCES, analysis)
    _, lactose_flag = first_present(LACTOSE_SOURCES, analysis)
    allergens = _allergen_pills(
        allergen_flags or [], lactose_flag, matches_user, cares_about_milk
    )
    allergen_sentence = _allergen_sentence(allergen_source, allergens, analysis)

    _, fodmap_flag = first_present(FODMAP_SOURCES, analysis)
    fodmap_level = fodmap_flag.level if fodmap_flag else None
    fodmap_sentence = fodmap_flag.reason if fodmap_flag and fodmap_flag.reason else None
    if not fodmap_sentence and fodmap_level:
        fodmap_sentence = f"FODMAP level {fodmap_level.lower()}."

    plate_components = _plate_components(analysis, matches_user, cares_about_milk)
    plate_summary = _plate_summary(plate_components)
    if plate_summary:
        clause = f" This considers the whole plate, including: {plate_summary}."
        if allergen_sentence:
            allergen_sentence += clause
        if fodmap_sentence:
            fodmap_sentence += clause

    _, nutrition = first_present(NUTRITION_SOURCES, analysis)

    return DishViewModel(
        allergens=allergens,
        allergen_sentence=allergen_sentence,
        fodmap_level=fodmap_level,
        fodmap_sentence=fodmap_sentence,
        fodmap_triggers=_fodmap_triggers(analysis),
        organ_lines=_organ_lines(analysis),
        nutrition=_macros(nutrition),
        nutrition_source_label=nutrition_source_label(analysis.nutrition_source),
        diet_tags=_diet_tags(analysis),
        portion=_portion(analysis),
        plate_components=plate_components,
        plate_summary=plate_summary,
        nutrition_insights=analysis.nutrition_insights,
    )


def _allergen_pills(
    flags: list[AllergenFlag],
    lactose_flag: LactoseFlag | None,
    matches_user: Callable[[str], bool],
    cares_about_milk: bool,
) -> list[AllergenPill]:
    pills: list[AllergenPill] = []
    seen: set[str] = set()
    for flag in flags:
        presence = (flag.present or "").strip().lower()
        if not flag.kind or presence not in SHOWN_PRESENCE:
            continue
        key = flag.kind.strip().lower()
        if key in seen:
            continue
        seen.add(key)
        pills.append(
            AllergenPill(
                name=flag.kind,
                is_user_allergen=matches_user(flag.kind),
                present=presence,
            )
        )

    lactose_level = (lactose_flag.level or "").lower() if lactose_flag else ""
    if cares_about_milk and lactose_level == "high":
        pills.append(AllergenPill(name=HIGH_LACTOSE_PILL, is_user_allergen=True))
    return pills


def _allergen_sentence(
    source: str | None, pills: list[AllergenPill], analysis: DishAnalysis
) -> str | None:
    if source in STRUCTURED_ALLERGEN_SOURCES:
        flagged = [pill for pill in pills if pill.name != HIGH_LACTOSE_PILL]
        contains = [pill.name for pill in flagged if pill.present == "yes"]
        maybe = [pill.name for pill in flagged if pill.present == "maybe"]
        parts = []
        if contains:
            parts.append(f"Contains {', '.join(contains)}.")
        if maybe:
            parts.append(
                f"May contain {', '.join(maybe)} based on recipe ingredients."
            )
        if parts:
            return " ".join(parts)

    messages = _legacy_allergen_messages(analysis)
    if messages:
        return " ".join(messages)
    if pills:
        return f"Contains {', '.join(pill.name for pill in pills)}."
    return None


def _legacy_allergen_messages(analysis: DishAnalysis) -> list[str]:
    flags = analysis.organs.flags if analysis.organs else None
    if not flags or not flags.allergens:
        return []
    return [flag.message for flag in flags.allergens if flag.message]


def _fodmap_triggers(analysis: DishAnalysis) -> list[str]:
    lex = analysis.debug.lex_per_ingredient if analysis.debug else None
    triggers: list[str] = []
    for entry in (lex.per_ingredient if lex else None) or []:
        if not entry.ingredient or entry.ingredient in triggers:
            continue
        if any(hit.get("fodmap") for hit in entry.hits or []):
            triggers.append(entry.ingredient)
    return triggers


def _organ_lines(analysis: DishAnalysis) -> list[OrganLine]:
    modern = _index_organs(analysis.organs.organs if analysis.organs else None)
    legacy = _index_organs(analysis.summary.organs if analysis.summary else None)

    organs = list(CANONICAL_ORGANS)
    extended_keys = {key for key, _ in EXTENDED_ORGANS}
    if extended_keys & (modern.keys() | legacy.keys()):
        organs.extend(EXTENDED_ORGANS)

    lines = []
    for key, label in organs:
        reasons: list[str] = []
        entry: OrganSummaryEntry
        if key in modern:
            entry = modern[key]
            severity = classify_organ_level(entry.level)
            reasons = [r for r in modern[key].reasons or [] if r]
        elif key in legacy:
            entry = legacy[key]
            severity = classify_legacy_organ_level(entry.level)
        else:
            entry = OrganSummaryEntry()
            severity = "neutral"
        sentence = (
            reasons[0] if reasons else organ_sentence(label, entry.score, severity)
        )
        lines.append(
            OrganLine(
                organ_key=key,
                organ_label=label,
                score=entry.score,
                level_raw=entry.level,
                severity=severity,
                sentence=sentence,
            )
        )
    return lines


def _index_organs(entries: Sequence[E] | None) -> dict[str, E]:
    indexed: dict[str, E] = {}
    for entry in entries or []:
        key = (entry.organ or "").strip().lower()
        if key and key not in indexed:
            indexed[key] = entry
    return indexed


def _macros(nutrition: NutritionSummary | None) -> NutritionMacros:
    if nutrition is None:
        return NutritionMacros()
    return NutritionMacros(
        calories=nutrition.energy_kcal,
        protein=nutrition.protein_g,
        carbs=nutrition.carbs_g,
        fat=nutrition.fat_g,
        sugar=nutrition.sugar_g,
        fiber=nutrition.fiber_g,
        sodium=nutrition.sodium_mg,
    )


def _tag_key(label: str) -> str:
    return _TAG_SEPARATORS.sub(" ", label.strip().lower())


def _diet_tags(analysis: DishAnalysis) -> list[str]:
    labels = analysis.summary.edamam_labels if analysis.summary else None
    tags = [label for label in labels or [] if label.strip()]

    checks = analysis.lifestyle_checks
    if checks:
        answers = ((checks.vegetarian, "Vegetarian"), (checks.vegan, "Vegan"))
        for answer, label in answers:
            if _is_yes(answer) and _tag_key(label) not in {_tag_key(t) for t in tags}:
                tags.append(label)

    for code in analysis.lifestyle_tags or []:
        label = LIFESTYLE_TAG_LABELS.get(_tag_key(code).replace(" ", "_"))
        if label and _tag_key(label) not in {_tag_key(t) for t in tags}:
            tags.append(label)

    # Red meat wins over vegetarian, vegan and red meat free tags from any source.
    if checks and _is_yes(checks.contains_red_meat):
        tags = [tag for tag in tags if _tag_key(tag) not in _RED_MEAT_CONFLICTS]

    priority = {_tag_key(label): index for index, label in enumerate(DIET_TAG_PRIORITY)}
    return sorted(tags, key=lambda tag: priority.get(_tag_key(tag), len(priority)))


def _is_yes(answer: str | None) -> bool:
    return (answer or "").strip().lower() == "yes"


def _finite(value: float | None) -> bool:
    return value is not None and math.isfinite(value)


def _portion(analysis: DishAnalysis) -> PortionSummary | None:
    block = analysis.portion
    if block is None:
        return None
    manual = block.manual_factor if _finite(block.manual_factor) else 1.0
    ai = block.ai_factor if _finite(block.ai_factor) else 1.0
    effective = (
        block.effective_factor if _finite(block.effective_factor) else manual * ai
    )
    return PortionSummary(
        manual_factor=manual, ai_factor=ai, effective_factor=effective
    )


def _plate_components(
    analysis: DishAnalysis,
    matches_user: Callable[[str], bool],
    cares_about_milk: bool,
) -> list[PlateComponentView] | None:
    components = analysis.plate_components or []
    if not components:
        return None
    selections = analysis.selection_components or {}
    breakdown = analysis.nutrition_breakdown or []

    views = []
    for index, component in enumerate(components):
        component_id = component.component_id or f"component_{index + 1}"
        selection = selections.get(component_id)
        row = _selection_row(selection, component_id)
        if row is None and index < len(breakdown):
            row = breakdown[index]

        nutrition: NutritionSummary | None = row
        if nutrition is None and selection is not None:
            nutrition = selection.combined_nutrition

        share_ratio = row.share_ratio if row and row.share_ratio is not None else None
        if share_ratio is None:
            share_ratio = component.area_ratio

        label = (
            component.label
            or (row.component if row else None)
            or component.category
            or component_id
        )
        allergens: list[AllergenPill] = []
        fodmap_level = lactose_level = None
        if selection is not None:
            allergens = _allergen_pills(
                selection.combined_allergens or [],
                selection.combined_lactose,
                matches_user,
                cares_about_milk,
            )
            if selection.combined_fodmap:
                fodmap_level = selection.combined_fodmap.level
            if selection.combined_lactose:
                lactose_level = selection.combined_lactose.level

        views.append(
            PlateComponentView(
                component_id=component_id,
                label=label,
                role=component.role or (row.role if row else None),
                category=component.category or (row.category if row else None),
                share_ratio=share_ratio,
                nutrition=_macros(nutrition),
                allergens=allergens,
                fodmap_level=fodmap_level,
                lactose_level=lactose_level,
            )
        )
    return views


def _selection_row(
    selection: SelectionResult | None, component_id: str
) -> SelectionNutritionRow | None:
    if selection is None or not selection.nutrition:
        return None
    for row in selection.nutrition:
        if row.component_id == component_id:
            return row
    return selection.nutrition[0]


def _plate_summary(components: list[PlateComponentView] | None) -> str | None:
    if not components:
        return None
    pieces = []
    for component in components:
        role = (component.role or "").strip()
        if role and role.lower() != "unknown":
            pieces.append(f"{component.label} ({role})")
        else:
            pieces.append(component.label)
    return ", ".join(pieces)
