"""
application.prompts - Prompt templates for every LLM stage.

Templates use str.format placeholders, so literal JSON braces are doubled.
Builders return the (role, text) message list that CompletionPort expects.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Query condensation
# ---------------------------------------------------------------------------

CONDENSE_SYSTEM_PROMPT = (
    "Given the following chat history and a follow up question, rephrase the "
    "follow up question to be a standalone question.\n\n"
    "Chat History:\n{chat_history}"
)

CONDENSE_HUMAN_PROMPT = "Follow Up Input: {question}\nStandalone question:"


def build_condense_messages(question: str, chat_history: str) -> list[tuple[str, str]]:
    return [
        ("system", CONDENSE_SYSTEM_PROMPT.format(chat_history=chat_history)),
        ("human", CONDENSE_HUMAN_PROMPT.format(question=question)),
    ]


# ---------------------------------------------------------------------------
# Recipe answer composition
# ---------------------------------------------------------------------------

RECIPE_SYSTEM_PROMPT = """You are a helpful recipe and cooking assistant. Your job is to answer the user's question about recipes.

CONTEXT from our recipe database is provided below. If the CONTEXT contains relevant recipes, use them as inspiration. If the CONTEXT is NOT relevant or doesn't contain good matches, use your own knowledge to create a recipe that fits the user's request.

CRITICAL: You MUST respond with ONLY a valid JSON object in this exact format:
{{
  "title": "Recipe Name",
  "summary": "Brief description of the recipe",
  "ingredients": ["200g chicken breast", "1 cup rice", "2 tbsp soy sauce"],
  "steps": ["Step 1 description", "Step 2 description", "Step 3 description"],
  "macros": {{"calories": 450, "protein": 35, "carbs": 50, "fats": 10}},
  "time": 25,
  "difficulty": "easy",
  "servings": 2,
  "explanation": "Why this recipe fits your requirements and preferences"
}}

IMPORTANT INSTRUCTIONS FOR STEPS:
- Keep each step concise but clear (1-2 sentences max)
- Include key cooking times and temperatures when relevant
- Add brief visual cues for doneness (e.g., 'until golden', 'fragrant')

IMPORTANT: Always respect the user's dietary constraints and nutritional requirements provided below.
Do NOT include any text before or after the JSON. Only output valid JSON.
The difficulty must be one of: easy, medium, or hard.{constraints}

Chat History:
{chat_history}

CONTEXT:
{context}"""

RECIPE_HUMAN_PROMPT = "QUESTION:\n{question}"


def build_recipe_messages(
    question: str,
    context: str,
    chat_history: str,
    constraint_block: str,
) -> list[tuple[str, str]]:
    system = RECIPE_SYSTEM_PROMPT.format(
        constraints=constraint_block,
        chat_history=chat_history,
        context=context,
    )
    return [("system", system), ("human", RECIPE_HUMAN_PROMPT.format(question=question))]


# ---------------------------------------------------------------------------
# Meal plan
# ---------------------------------------------------------------------------

MEAL_PLAN_SYSTEM_PROMPT = """Create a {days}-day meal plan. Return ONLY valid JSON:
{{"title":"{days}-Day Meal Plan","description":"Weekly meals","days":[{{"day":1,"meals":[{{"title":"Meal Name","description":"Brief desc","type":"breakfast","ingredients":["item1","item2"],"steps":["Step 1","Step 2"],"time":15}},{{"title":"...","type":"lunch",...}},{{"title":"...","type":"dinner",...}}]}},{{"day":2,"meals":[...]}},...]}}

Rules:
- Use ONLY the given ingredients
- {days} days, each with breakfast/lunch/dinner
- Each meal: title, description (10 words max), type, ingredients array, steps array (3-4 simple steps), time (minutes)
- Keep steps simple and brief
- Output JSON only"""

MEAL_PLAN_HUMAN_PROMPT = "Ingredients: {ingredients}"


def build_meal_plan_messages(ingredients: list[str], days: int) -> list[tuple[str, str]]:
    return [
        ("system", MEAL_PLAN_SYSTEM_PROMPT.format(days=days)),
        ("human", MEAL_PLAN_HUMAN_PROMPT.format(ingredients=", ".join(ingredients))),
    ]


# ---------------------------------------------------------------------------
# Terminal chat demo (free-text answers)
# ---------------------------------------------------------------------------

DEMO_SYSTEM_PROMPT = """You are a helpful recipe and cooking assistant. Your job is to answer the user's question about recipes or cooking techniques.

Use the following retrieved CONTEXT to answer. If the context is relevant, use it as your primary source of information.

If the question is about cooking but the CONTEXT doesn't have the answer (like 'what does saute mean?'), you can use your general knowledge to answer.

If the question is NOT about cooking or recipes (like 'who is the president?'), politely state that you can only help with cooking-related topics.

Chat History:
{chat_history}

CONTEXT:
{context}"""


def build_demo_messages(question: str, context: str, chat_history: str) -> list[tuple[str, str]]:
    return [
        ("system", DEMO_SYSTEM_PROMPT.format(chat_history=chat_history, context=context)),
        ("human", RECIPE_HUMAN_PROMPT.format(question=question)),
    ]
