"""
NutriTrack prompt templates
===========================
Every prompt sent to the language model is assembled here so the insight
orchestrator, chat session and translation cache share one set of
language and format directives.
"""
from typing import Iterable, List, Optional, Sequence

from nutritrack.config import SUPPORTED_LANGUAGES, language_name

# ── Shared language directive ───────────────────────────────────────────
def language_directive(language: str, verb: str = "respond") -> str:
    lines = [f'- You MUST {verb} in the language with code: "{language}"']
    for code, name in SUPPORTED_LANGUAGES.items():
        lines.append(f'- If the language is "{code}", {verb} in {name}')
    lines.append(
        f"- For other language codes, try to {verb} in that language, "
        "falling back to English if necessary"
    )
    return "LANGUAGE INSTRUCTIONS:\n" + "\n".join(lines)


# ── Insight generation ──────────────────────────────────────────────────
INSIGHT_EXAMPLE_JSON = (
    "{\n"
    '  "description": "Male patients show significantly lower vegetable intake scores and '
    'serve sizes compared to females, both falling short of daily guidelines.",\n'
    '  "recommendations": [\n'
    '    "Discuss strategies to increase daily vegetable serves for all patients, especially males.",\n'
    '    "Explore barriers to vegetable consumption with male patients specifically.",\n'
    '    "Provide tailored recipes and meal planning tips to incorporate more vegetables."\n'
    "  ]\n"
    "}"
)


def build_insight_prompt(
    category_name: str,
    findings: str,
    population_context: str,
    language: str = "en",
) -> str:
    """Prompt asking for a JSON description + recommendations for one category."""
    return (
        "You are a nutritional analysis assistant for the NutriTrack application, aiding clinicians.\n"
        f'Based on the following calculated findings for the nutritional category "{category_name}", '
        "provide a concise textual description and 2-3 actionable recommendations for clinicians.\n"
        f"The findings are derived from: {population_context}\n"
        "If every score is zero, state that no data is available for this category.\n\n"
        f"{language_directive(language, verb='generate content')}\n\n"
        f"Calculated Findings:\n{findings}\n\n"
        "Respond ONLY with a valid JSON object containing two keys:\n"
        '1. "description": A string (max 40 words) summarizing the key insight from the findings.\n'
        '2. "recommendations": An array of strings, where each string is an actionable '
        "recommendation (max 20 words per recommendation).\n\n"
        f"Example of your JSON output:\n{INSIGHT_EXAMPLE_JSON}"
    )


# ── Chat assistant ──────────────────────────────────────────────────────
REFUSAL_TEMPLATE = (
    "I'm specialized in nutrition guidance only. I cannot provide information about [topic]. "
    "Would you like to know something about HEIFA scores or dietary recommendations instead?"
)

ASSISTANT_PERSONA = (
    "You are NutriAssist, an AI nutrition consultant specializing in analyzing HEIFA "
    "(Healthy Eating Index for Australian Adults) scores and providing evidence-based "
    "nutrition guidance. You are part of the NutriTrack application for clinicians."
)

TOPIC_RESTRICTIONS = (
    "TOPIC RESTRICTIONS:\n"
    "- You MUST ONLY answer questions related to nutrition, dietary guidelines, HEIFA scores, "
    "and food-related health topics\n"
    "- You MUST REFUSE to answer questions about physics, economics, politics, history, "
    "entertainment, or any non-nutrition topics\n"
    "- Health care, Physical activities, etc.(nutrition questions) can be answered\n"
    f'- When asked about non-nutrition topics, respond with: "{REFUSAL_TEMPLATE}"'
)

CAPABILITIES = (
    "CAPABILITIES:\n"
    "- Interpret HEIFA scores and their components (vegetables, fruits, grains, etc.)\n"
    "- Explain nutrition concepts using scientific evidence\n"
    "- Compare nutrition patterns across demographic groups\n"
    "- Suggest specific interventions to improve patient nutrition outcomes\n\n"
    "LIMITATIONS:\n"
    "- You cannot diagnose medical conditions or prescribe medications\n"
    "- You cannot access or reference individual patient data or identifiable information\n"
    "- You should cite general statistics based on aggregated, anonymized data only"
)

RESPONSE_FORMAT = (
    "FORMAT:\n"
    "- Keep responses concise (2-3 paragraphs maximum)\n"
    "- Use professional but accessible language suitable for healthcare professionals\n"
    "- Add relevant category tags after your response (e.g., #vegetables, #gender_differences, #water_intake)"
)


def build_chat_prompt(question: str, language: str = "en") -> str:
    """Scoped system prompt followed by the clinician's question."""
    return "\n\n".join([
        ASSISTANT_PERSONA,
        language_directive(language),
        TOPIC_RESTRICTIONS,
        CAPABILITIES,
        RESPONSE_FORMAT,
        f"USER QUESTION: {question}",
    ])


def build_follow_up_prompt(
    question: str,
    answer: str,
    categories: Sequence[str],
    language: str = "en",
) -> str:
    """Prompt asking for three third-person follow-up questions as a numbered list."""
    focus = ", ".join(categories) if categories else "the nutrition topics discussed"
    return (
        "Based on this nutrition conversation, generate 3 relevant follow-up questions "
        "the clinician might want to ask next:\n\n"
        f"USER: {question}\n"
        f"AI: {answer}\n\n"
        f"{language_directive(language, verb='generate questions')}\n\n"
        "The questions should:\n"
        "1. Be directly related to the topics discussed\n"
        f"2. Focus on {focus} if relevant\n"
        "3. Be concise (10 words or less each)\n"
        "4. Not repeat the original question\n"
        "5. Be formatted as a numbered list (1. 2. 3.)\n"
        "6. Use professional clinical language from a clinician perspective\n"
        "7. NEVER use personal pronouns (I, you, we, they)\n"
        "8. Phrase questions in third-person or passive voice "
        '(e.g., "What factors influence vegetable consumption in female patients?")\n'
        "9. Focus on the medical/nutritional topic, not the person asking or being asked"
    )


# ── Translation ─────────────────────────────────────────────────────────
def build_translation_prompt(text: str, source_lang: str, target_lang: str) -> str:
    return (
        f"Translate the following text from {language_name(source_lang)} to "
        f'{language_name(target_lang)}: "{text}"\n'
        "Please return ONLY the translated text, nothing else - no explanations, "
        "no headers, no quotes."
    )


def build_batch_translation_prompt(
    texts: Iterable[str],
    target_lang: str,
    source_lang: Optional[str] = None,
) -> str:
    source = f" from {language_name(source_lang)}" if source_lang else ""
    items: List[str] = [t.replace("\n", " ") for t in texts]
    return (
        f"Translate these items{source} to {language_name(target_lang)}. "
        "Return ONLY the translations in the same order, one per line:\n"
        + "\n".join(items)
    )
