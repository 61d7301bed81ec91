"""
application.services.constraints - UI sliders/chips → backend ConstraintSet.

Pure functions, no I/O. The resulting ConstraintSet is rendered into the
natural-language block that the answer prompt embeds. Macros are never
used as a retrieval filter; retrieval only filters on the dataset tag.
"""

from __future__ import annotations

from typing import Iterable, Optional

from domain.models import ConstraintSet, MacroRange, MacroSlider, UiConstraints

CALORIE_TOLERANCE = 50
GRAM_TOLERANCE = 5

DIETARY_CHIP_MAP: dict[str, str] = {
    "vegan": "Vegan",
    "glutenfree": "Gluten-Free",
    "keto": "Keto",
    "halal": "Halal",
    "dairyfree": "Dairy-Free",
}


# Slider bounds and starting values of the chat UI.
DEFAULT_SLIDERS: dict[str, MacroSlider] = {
    "calories": MacroSlider(value=600, min=200, max=1500),
    "protein": MacroSlider(value=30, min=10, max=100),
    "carbs": MacroSlider(value=60, min=10, max=150),
    "fats": MacroSlider(value=20, min=5, max=80),
    "time": MacroSlider(value=30, min=5, max=120),
}


def lock_sliders(**targets: Optional[float]) -> UiConstraints:
    """Default sliders with every given target locked at its value.

    >>> lock_sliders(calories=500).calories
    MacroSlider(value=500, min=200, max=1500, locked=True)
    """
    unknown = set(targets) - set(DEFAULT_SLIDERS)
    if unknown:
        raise ValueError(f"Unknown slider(s): {', '.join(sorted(unknown))}")
    sliders = {}
    for name, default in DEFAULT_SLIDERS.items():
        target = targets.get(name)
        if target is None:
            sliders[name] = default
        else:
            value = min(max(target, default.min), default.max)
            sliders[name] = MacroSlider(value=value, min=default.min, max=default.max, locked=True)
    return UiConstraints(**sliders)


def map_macro(slider: MacroSlider, tolerance: float) -> MacroRange:
    """Locked sliders collapse to value±tolerance clipped to the slider
    bounds; unlocked sliders pass their full range through unchanged."""
    if slider.locked:
        return MacroRange(
            min=max(slider.min, slider.value - tolerance),
            max=min(slider.max, slider.value + tolerance),
        )
    return MacroRange(min=slider.min, max=slider.max)


def map_dietary_chips(chips: Iterable[str]) -> list[str]:
    """Unknown chip values are dropped."""
    return [DIETARY_CHIP_MAP[c] for c in chips if c in DIETARY_CHIP_MAP]


def map_constraints(
    ui: UiConstraints,
    dietary_chips: Iterable[str] = (),
    allergens: Optional[list[str]] = None,
    dislikes: Optional[list[str]] = None,
) -> ConstraintSet:
    return ConstraintSet(
        calories=map_macro(ui.calories, CALORIE_TOLERANCE),
        protein=map_macro(ui.protein, GRAM_TOLERANCE),
        carbs=map_macro(ui.carbs, GRAM_TOLERANCE),
        fats=map_macro(ui.fats, GRAM_TOLERANCE),
        max_time=ui.time.value,
        dietary=map_dietary_chips(dietary_chips),
        allergens=list(allergens or []),
        dislikes=list(dislikes or []),
    )


def _num(value: float) -> str:
    # 450.0 -> "450", 12.5 -> "12.5"
    return f"{value:g}"


def build_constraint_block(constraints: Optional[ConstraintSet]) -> str:
    """Render the constraint paragraph for the answer prompt.

    Returns "" when there is nothing to say.
    """
    if constraints is None or constraints.is_empty:
        return ""

    lines = ["", "", "IMPORTANT CONSTRAINTS FOR THIS RECIPE:"]
    if constraints.calories:
        lines.append(
            f"- Calories: {_num(constraints.calories.min)}-{_num(constraints.calories.max)} kcal"
        )
    for label, rng in (
        ("Protein", constraints.protein),
        ("Carbs", constraints.carbs),
        ("Fats", constraints.fats),
    ):
        if rng:
            lines.append(f"- {label}: {_num(rng.min)}-{_num(rng.max)}g")
    if constraints.max_time:
        lines.append(f"- Cooking Time: Max {_num(constraints.max_time)} minutes")
    if constraints.dietary:
        lines.append(f"- Dietary Preferences: {', '.join(constraints.dietary)}")
    if constraints.allergens:
        lines.append(f"- Avoid These Allergens: {', '.join(constraints.allergens)}")
    if constraints.dislikes:
        lines.append(f"- Disliked Ingredients: {', '.join(constraints.dislikes)}")
    return "\n".join(lines) + "\n"
