"""AI explanations for questions via an OpenAI-compatible chat endpoint.

Config (env vars, see pyqdeck.config):
    OPENAI_API_KEY
    PYQDECK_AI_BASE_URL   # optional, for proxies / self-hosted gateways
    PYQDECK_AI_MODEL=gpt-4o-mini
    PYQDECK_AI_TIMEOUT=60

Answers to question requests are cached in the chunked secure store so a
repeated request does not hit the network.
"""
import logging
import re
from dataclasses import dataclass
from enum import Enum

from pyqdeck import config
from pyqdeck.models import UNCATEGORIZED, Question
from pyqdeck.secure_store import load_chunked, save_chunked
from pyqdeck.text import image_urls

logger = logging.getLogger(__name__)

CACHE_PREFIX = "pyqdeck_ai_"
NO_ANSWER = "The AI did not provide a specific answer. Please try rephrasing or regenerating."
MARKDOWN_LINK_LINE = re.compile(r"^.*\[.*?\]\(.*?\).*$(\r?\n)?", re.MULTILINE)


class RequestType(Enum):
    SOLVE_QUESTION = "SOLVE_QUESTION"
    EXPLAIN_CONCEPTS = "EXPLAIN_CONCEPTS"
    CUSTOM_QUERY = "CUSTOM_QUERY"


class ExplanationError(Exception):
    """The AI request failed; str(exc) is safe to show to the user."""


@dataclass
class SubjectContext:
    branch_name: str = ""
    semester_number: int | None = None
    subject_name: str = ""
    subject_code: str = ""


BASE_INSTRUCTION = """You are "PYQ Deck AI Assistant", an expert academic tutor specializing in university-level engineering and technical subjects.
Format your response using Markdown with headings, lists, bold, and code blocks.
Use LaTeX for all math expressions: $...$ inline and $$...$$ for blocks. Do not use \\[ \\] or \\( \\) delimiters.
Maintain a helpful, encouraging, and professional tone throughout."""

_SETTINGS = {
    RequestType.SOLVE_QUESTION: {
        "intro": (
            "I need help with a question from a previous year's exam paper. Please provide a comprehensive "
            "explanation, solution steps if it's a problem, or a detailed discussion if it's theoretical."
        ),
        "guidelines": (
            "Guidelines for solving a question:\n"
            "- Analyze the question text, its context (subject, year, marks) and any included images.\n"
            "- For numerical problems give step-by-step solutions with formulas and units.\n"
            "- For theoretical questions give explanations with definitions and examples.\n"
            "- If information is missing, say what is missing but attempt the best answer."
        ),
        "max_tokens": 2000,
        "temperature": 0.5,
    },
    RequestType.EXPLAIN_CONCEPTS: {
        "intro": (
            "Regarding the following question, please identify and explain in detail the key concepts, "
            "theories, principles, and any relevant formulas or laws involved."
        ),
        "guidelines": (
            "Explain the fundamental concepts related to the question:\n"
            "- Identify all core concepts, theories, laws, formulas and principles involved.\n"
            "- For each, give a definition, its significance, and an example where useful.\n"
            "- For formulas, explain the components, units and typical usage."
        ),
        "max_tokens": 2500,
        "temperature": 0.3,
    },
    RequestType.CUSTOM_QUERY: {
        "intro": "",
        "guidelines": "Answer the user's question clearly, concisely and accurately.",
        "max_tokens": 1500,
        "temperature": 0.6,
    },
}


def _context_block(question: Question, context: SubjectContext) -> str:
    lines = ["--- Question Context (for AI analysis only) ---"]
    if context.branch_name:
        lines.append(f"Branch: {context.branch_name}")
    if context.semester_number:
        lines.append(f"Semester: {context.semester_number}")
    if context.subject_name:
        lines.append(f"Subject: {context.subject_name} ({context.subject_code or 'N/A'})")
    if question.chapter_label != UNCATEGORIZED:
        lines.append(f"Chapter/Module: {question.chapter_label}")
    if question.year:
        lines.append(f"Year: {question.year}")
    if question.q_number:
        lines.append(f"Question Number: {question.q_number}")
    if question.marks is not None:
        lines.append(f"Marks: {question.marks:g}")
    lines.append("--- End of Context ---")
    return "\n".join(lines)


def build_messages(
    request_type: RequestType,
    item: Question | str,
    context: SubjectContext | None = None,
) -> list[dict]:
    """Chat messages for a request. item is a Question, or the user's text for CUSTOM_QUERY."""
    settings = _SETTINGS[request_type]
    system = f"{BASE_INSTRUCTION}\n\n{settings['guidelines']}"

    if request_type is RequestType.CUSTOM_QUERY:
        prompt = f'The user\'s custom question is: "{item}"'
        if context and (context.subject_name or context.branch_name):
            prompt += "\n\n--- General Academic Context (if relevant) ---"
            if context.subject_name:
                prompt += f"\nCurrent Subject Focus: {context.subject_name}"
            if context.branch_name:
                prompt += f"\nCurrent Branch Focus: {context.branch_name}"
            if context.semester_number:
                prompt += f"\nCurrent Semester Focus: {context.semester_number}"
        return [{"role": "system", "content": system}, {"role": "user", "content": prompt}]

    if not isinstance(item, Question) or context is None:
        raise ValueError(f"{request_type.value} needs a Question and a SubjectContext")
    parts: list[dict] = [{"type": "text", "text": f"{settings['intro']}\n\n{_context_block(item, context)}"}]
    question_text = item.text or "No question text provided."
    images = image_urls(item.text)
    for url in images:
        parts.append({"type": "image_url", "image_url": {"url": url, "detail": "auto"}})
    if images:
        parts.append({"type": "text", "text": f"The question text (which may refer to the image(s) above) is:\n\n{question_text}"})
    else:
        parts.append({"type": "text", "text": f"The question text is:\n\n{question_text}"})
    return [{"role": "system", "content": system}, {"role": "user", "content": parts}]


def strip_markdown_links(text: str) -> str:
    """Drop every line that carries a markdown link."""
    return MARKDOWN_LINK_LINE.sub("", text)


_client = None


def _get_client():
    global _client
    if _client is None:
        if not config.OPENAI_API_KEY:
            raise ExplanationError("AI service unconfigured: OPENAI_API_KEY is not set.")
        from openai import OpenAI
        _client = OpenAI(
            api_key=config.OPENAI_API_KEY,
            base_url=config.AI_BASE_URL,
            timeout=config.AI_TIMEOUT,
            max_retries=1,
        )
    return _client


def _complete(messages: list[dict], max_tokens: int, temperature: float) -> str:
    import openai

    try:
        response = _get_client().chat.completions.create(
            model=config.AI_MODEL,
            messages=messages,
            max_tokens=max_tokens,
            temperature=temperature,
        )
    except openai.AuthenticationError as exc:
        raise ExplanationError("Authentication error. Please check the AI service API key.") from exc
    except openai.APIConnectionError as exc:
        raise ExplanationError("Network error: could not reach the AI service.") from exc
    except openai.APIError as exc:
        raise ExplanationError(f"AI request failed: {exc}") from exc

    if not response.choices:
        raise ExplanationError("The AI service returned no answer.")
    choice = response.choices[0]
    if choice.finish_reason == "content_filter":
        raise ExplanationError("AI response was blocked due to content policy.")
    return (choice.message.content if choice.message else None) or ""


def cache_key(request_type: RequestType, question_id: str) -> str:
    return f"{CACHE_PREFIX}{request_type.value.lower()}_{question_id}"


def explain(
    request_type: RequestType,
    item: Question | str,
    context: SubjectContext | None = None,
    db_path: str | None = None,
    use_cache: bool = True,
) -> str:
    """Ask the AI about a question (or a free-form query). Raises ExplanationError on failure."""
    key = None
    if db_path and use_cache and isinstance(item, Question):
        key = cache_key(request_type, item.question_id)
        cached = load_chunked(db_path, key)
        if cached is not None:
            logger.info("AI answer for %s served from cache", item.question_id)
            return cached

    settings = _SETTINGS[request_type]
    messages = build_messages(request_type, item, context)
    try:
        answer = _complete(messages, settings["max_tokens"], settings["temperature"])
    except ExplanationError:
        logger.exception("AI request failed (type %s)", request_type.value)
        raise
    answer = strip_markdown_links(answer)
    if not answer.strip():
        return NO_ANSWER

    if key is not None:
        save_chunked(db_path, key, answer)
    return answer
