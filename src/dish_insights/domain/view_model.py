"""View model produced from a dish analysis."""

from dataclasses import dataclass, field
from typing import Literal

from dish_insights.domain.analysis import NutritionInsights

OrganSeverity = Literal["low", "medium", "high", "neutral"]


@dataclass(frozen=True)
class AllergenPill:
    """Allergen shown to the user."""

    name: str
    is_user_allergen: bool
    present: str = "yes"


@dataclass(frozen=True)
class OrganLine:
    """Impact of the dish on one organ."""

    organ_key: str
    organ_label: str
    score: float | None
    level_raw: str | None
    severity: OrganSeverity
    sentence: str


@dataclass(frozen=True)
class NutritionMacros:
    """Macros in kcal, grams and milligrams (sodium)."""

    calories: float | None = None
    protein: float | None = None
    carbs: float | None = None
    fat: float | None = None
    sugar: float | None = None
    fiber: float | None = None
    sodium: float | None = None


@dataclass(frozen=True)
class PortionSummary:
    """Portion multipliers; effective is usually manual times AI estimate."""

    manual_factor: float
    ai_factor: float
    effective_factor: float


@dataclass(frozen=True)
class PlateComponentView:
    """One component of a multi-component plate."""

    component_id: str
    label: str
    role: str | None
    category: str | None
    share_ratio: float | None
    nutrition: NutritionMacros
    allergens: list[AllergenPill]
    fodmap_level: str | None
    lactose_level: str | None


@dataclass(frozen=True)
class DishViewModel:
    """Canonical, render-ready view of a dish analysis."""

    allergens: list[AllergenPill]
    allergen_sentence: str | None
    fodmap_level: str | None
    fodmap_sentence: str | None
    fodmap_triggers: list[str]
    organ_lines: list[OrganLine]
    nutrition: NutritionMacros
    nutrition_source_label: str | None
    diet_tags: list[str] = field(default_factory=list)
    portion: PortionSummary | None = None
    plate_components: list[PlateComponentView] | None = None
    plate_summary: str | None = None
    nutrition_insights: NutritionInsights | None = None
