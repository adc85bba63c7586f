"""Models for raw dish analysis payloads.

Payloads come from several backend code paths with partially overlapping
schemas. Every field here is optional and validation is lenient: a malformed
value becomes ``None`` and malformed list items are dropped, so any JSON
object parses into a ``DishAnalysis``.
"""

from collections.abc import Mapping
from typing import Annotated, Any, TypeVar

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidatorFunctionWrapHandler,
    WrapValidator,
)

T = TypeVar("T")


def _none_on_error(value: Any, handler: ValidatorFunctionWrapHandler) -> Any:
    try:
        return handler(value)
    except ValidationError:
        return None


def _drop_invalid_items(value: Any, handler: ValidatorFunctionWrapHandler) -> Any:
    if not isinstance(value, list):
        return None
    items: list[Any] = []
    for item in value:
        try:
            items.extend(handler([item]))
        except ValidationError:
            continue
    return items


def _drop_invalid_values(value: Any, handler: ValidatorFunctionWrapHandler) -> Any:
    if not isinstance(value, dict):
        return None
    entries: dict[Any, Any] = {}
    for key, item in value.items():
        try:
            entries.update(handler({key: item}))
        except ValidationError:
            continue
    return entries


Lenient = Annotated[T | None, WrapValidator(_none_on_error)]
LenientList = Annotated[list[T] | None, WrapValidator(_drop_invalid_items)]
LenientMap = Annotated[dict[str, T] | None, WrapValidator(_drop_invalid_values)]


class PayloadModel(BaseModel):
    """Base model for payload blocks."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class AllergenFlag(PayloadModel):
    """Allergen flag; ``present`` is one of yes, no or maybe."""

    kind: Lenient[str] = None
    present: Lenient[str] = None
    message: Lenient[str] = None
    source: Lenient[str] = None


class FodmapFlag(PayloadModel):
    """FODMAP level with an explanation."""

    level: Lenient[str] = None
    reason: Lenient[str] = None
    source: Lenient[str] = None


class LactoseFlag(PayloadModel):
    """Lactose level with an explanation."""

    level: Lenient[str] = None
    reason: Lenient[str] = None
    source: Lenient[str] = None


class NutritionSummary(PayloadModel):
    """Macro nutrients for a dish or a plate component."""

    energy_kcal: Lenient[float] = Field(default=None, alias="energyKcal")
    protein_g: Lenient[float] = None
    fat_g: Lenient[float] = None
    carbs_g: Lenient[float] = None
    sugar_g: Lenient[float] = None
    fiber_g: Lenient[float] = None
    sodium_mg: Lenient[float] = None


class NutritionInsights(PayloadModel):
    summary: Lenient[str] = None
    highlights: LenientList[str] = None
    cautions: LenientList[str] = None
    classifications: LenientMap[str] = None


class LifestyleChecks(PayloadModel):
    """Yes/no/maybe answers about diet compatibility."""

    contains_red_meat: Lenient[str] = None
    vegetarian: Lenient[str] = None
    vegan: Lenient[str] = None


class OrganSummaryEntry(PayloadModel):
    """Legacy per-organ summary without explanations."""

    organ: Lenient[str] = None
    score: Lenient[float] = None
    level: Lenient[str] = None


class OrganEntry(OrganSummaryEntry):
    """Per-organ entry with explanatory reasons."""

    reasons: LenientList[str] = None


class KeyFlags(PayloadModel):
    allergens: LenientList[str] = None
    fodmap_level: Lenient[str] = Field(default=None, alias="fodmapLevel")
    lactose_level: Lenient[str] = Field(default=None, alias="lactoseLevel")


class DishSummary(PayloadModel):
    """Legacy summary block."""

    organs: LenientList[OrganSummaryEntry] = None
    key_flags: Lenient[KeyFlags] = Field(default=None, alias="keyFlags")
    edamam_labels: LenientList[str] = Field(default=None, alias="edamamLabels")


class OrganFlags(PayloadModel):
    allergens: LenientList[AllergenFlag] = None
    fodmap: Lenient[FodmapFlag] = None
    lactose: Lenient[LactoseFlag] = None


class OrgansBlock(PayloadModel):
    organs: LenientList[OrganEntry] = None
    flags: Lenient[OrganFlags] = None


class RecipeOutput(PayloadModel):
    nutrition_summary: Lenient[NutritionSummary] = None


class RecipeBlock(PayloadModel):
    """Recipe block; nutrition may sit at the top or under ``out``."""

    nutrition_summary: Lenient[NutritionSummary] = None
    out: Lenient[RecipeOutput] = None


class LexIngredient(PayloadModel):
    """Lexical hits for one ingredient."""

    ingredient: Lenient[str] = None
    hits: LenientList[dict[str, Any]] = None


class LexPerIngredient(PayloadModel):
    per_ingredient: LenientList[LexIngredient] = Field(
        default=None, alias="perIngredient"
    )


class AnalysisDebug(PayloadModel):
    lex_per_ingredient: Lenient[LexPerIngredient] = None


class PlateComponent(PayloadModel):
    """A component detected on the plate."""

    component_id: Lenient[str] = None
    role: Lenient[str] = None
    category: Lenient[str] = None
    label: Lenient[str] = None
    area_ratio: Lenient[float] = None


class SelectionNutritionRow(NutritionSummary):
    """Nutrition for one component of a selection."""

    component_id: Lenient[str] = None
    component: Lenient[str] = None
    role: Lenient[str] = None
    category: Lenient[str] = None
    share_ratio: Lenient[float] = None


class SelectionResult(PayloadModel):
    """Allergens, FODMAP, lactose and nutrition for a set of components."""

    nutrition: LenientList[SelectionNutritionRow] = None
    combined_nutrition: Lenient[NutritionSummary] = None
    combined_allergens: LenientList[AllergenFlag] = None
    combined_fodmap: Lenient[FodmapFlag] = None
    combined_lactose: Lenient[LactoseFlag] = None


class PortionBlock(PayloadModel):
    """Portion multipliers relative to a typical serving."""

    manual_factor: Lenient[float] = None
    ai_factor: Lenient[float] = None
    effective_factor: Lenient[float] = None


class DishAnalysis(PayloadModel):
    """Canonical form of an analysis payload."""

    ok: Lenient[bool] = None
    dish_name: Lenient[str] = Field(default=None, alias="dishName")
    source: Lenient[str] = None
    error: Lenient[str] = None
    summary: Lenient[DishSummary] = None
    recipe: Lenient[RecipeBlock] = None
    organs: Lenient[OrgansBlock] = None
    debug: Lenient[AnalysisDebug] = None

    allergen_flags: LenientList[AllergenFlag] = None
    fodmap_flags: Lenient[FodmapFlag] = None
    lactose_flags: Lenient[LactoseFlag] = None
    nutrition_summary: Lenient[NutritionSummary] = None
    nutrition_insights: Lenient[NutritionInsights] = None
    nutrition_source: Lenient[str] = None
    lifestyle_tags: LenientList[str] = None
    lifestyle_checks: Lenient[LifestyleChecks] = None
    portion: Lenient[PortionBlock] = None

    plate_components: LenientList[PlateComponent] = None
    nutrition_breakdown: LenientList[SelectionNutritionRow] = None
    selection_default: Lenient[SelectionResult] = None
    selection_components: LenientMap[SelectionResult] = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, object] | None) -> "DishAnalysis":
        """Parse a raw payload, returning an empty analysis when it is unusable."""
        if not isinstance(payload, Mapping):
            return cls()
        try:
            return cls.model_validate(dict(payload))
        except ValidationError:
            return cls()
