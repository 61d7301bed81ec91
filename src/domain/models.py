"""
domain.models - Value objects for the recipe RAG pipeline.

These are immutable data containers with no business logic and no
dependencies on infrastructure (no LangChain, no FAISS, no Pinecone).

Groups:
    - Corpus:       Document
    - Conversation: ChatTurn, UiMessage
    - Constraints:  MacroSlider, UiConstraints, MacroRange, ConstraintSet
    - Outputs:      Macros, Recipe, Meal, Day, MealPlan, ParseFailure
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional


# ---------------------------------------------------------------------------
# Corpus
# ---------------------------------------------------------------------------

DATASET_TAG_KEY = "dataset_tag"


@dataclass(frozen=True)
class Document:
    """A single corpus unit: one flattened CSV row plus its metadata.

    metadata always carries exactly one DATASET_TAG_KEY entry once the
    document has been tagged for indexing.
    """
    content: str
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def dataset_tag(self) -> Optional[str]:
        return self.metadata.get(DATASET_TAG_KEY)

    def tagged(self, dataset_tag: str) -> Document:
        """Return a copy carrying *dataset_tag* (replacing any previous tag)."""
        return Document(
            content=self.content,
            metadata={**self.metadata, DATASET_TAG_KEY: dataset_tag},
        )


# ---------------------------------------------------------------------------
# Conversation
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ChatTurn:
    """One transcript entry in the form the language model expects.

    role is "human" or "ai".
    """
    role: str
    content: str


@dataclass(frozen=True)
class UiMessage:
    """A chat message as the web UI stores it.

    role is "user" or "bot". recipe_title is set when the bot turn
    rendered a recipe card.
    """
    role: str
    content: str
    recipe_title: Optional[str] = None
    is_error: bool = False


# ---------------------------------------------------------------------------
# Constraints
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class MacroSlider:
    """State of one UI slider: the target value, its lock flag, and bounds."""
    value: float
    min: float
    max: float
    locked: bool = False


@dataclass(frozen=True)
class UiConstraints:
    """The full set of UI sliders for one chat turn."""
    calories: MacroSlider
    protein: MacroSlider
    carbs: MacroSlider
    fats: MacroSlider
    time: MacroSlider


@dataclass(frozen=True)
class MacroRange:
    min: float
    max: float


@dataclass(frozen=True)
class ConstraintSet:
    """Backend constraint set injected into the generation prompt.

    Every field is optional so that partially specified request bodies
    (e.g. only a calorie range) stay expressible. The mapper always
    produces a fully populated instance.
    """
    calories: Optional[MacroRange] = None
    protein: Optional[MacroRange] = None
    carbs: Optional[MacroRange] = None
    fats: Optional[MacroRange] = None
    max_time: Optional[float] = None
    dietary: list[str] = field(default_factory=list)
    allergens: list[str] = field(default_factory=list)
    dislikes: list[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return (
            self.calories is None
            and self.protein is None
            and self.carbs is None
            and self.fats is None
            and not self.max_time
            and not self.dietary
            and not self.allergens
            and not self.dislikes
        )


# ---------------------------------------------------------------------------
# Recipe
# ---------------------------------------------------------------------------

DIFFICULTIES = ("easy", "medium", "hard")


@dataclass(frozen=True)
class Macros:
    """Per-serving macros as reported by the model (never re-validated)."""
    calories: float = 0
    protein: float = 0
    carbs: float = 0
    fats: float = 0


@dataclass(frozen=True)
class Recipe:
    title: str
    summary: str = ""
    ingredients: list[str] = field(default_factory=list)
    steps: list[str] = field(default_factory=list)
    macros: Macros = field(default_factory=Macros)
    time: float = 0
    difficulty: str = "medium"
    servings: int = 1
    explanation: str = ""


# ---------------------------------------------------------------------------
# Meal plan
# ---------------------------------------------------------------------------

MEAL_TYPES = ("breakfast", "lunch", "dinner")


@dataclass(frozen=True)
class Meal:
    title: str
    type: str
    description: str = ""
    ingredients: list[str] = field(default_factory=list)
    steps: list[str] = field(default_factory=list)
    time: Optional[float] = None


@dataclass(frozen=True)
class Day:
    day: int
    meals: list[Meal] = field(default_factory=list)


@dataclass(frozen=True)
class MealPlan:
    title: str
    description: str = ""
    days: list[Day] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Structured output failure
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ParseFailure:
    """Recoverable failure to extract a structured object from model text.

    raw_text is kept for server-side diagnostics only and must never be
    returned to the end user.
    """
    reason: str
    raw_text: str
