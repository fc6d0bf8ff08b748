"""Assembly of paste-ready prompts from a request and retrieved guide snippets."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, List, Sequence

from guiderag.classify import Classification, GuideRules, TaskType
from guiderag.models import Chunk, SearchResult
from guiderag.utils.text import collapse_whitespace

SNIPPET_CHARS = 800
MAX_FORMAT_CHARS = 3000
MAX_FEW_SHOT = 3

_CODE_INDICATORS = (
    "const ",
    "let ",
    "function ",
    "=>",
    "{\n",
    ";\n",
    "import ",
    "class ",
    "#include",
    "def ",
    "console.log",
    "fetch(",
)

OUTPUT_FORMATS: Dict[TaskType, str] = {
    TaskType.SUMMARIZATION: (
        "Output format: Provide a concise summary with bullet points and a short paragraph. "
        "Keep it in Hebrew."
    ),
    TaskType.TRANSLATION: (
        "Output format: Provide only the translated text, preserving meaning and tone."
    ),
    TaskType.ANALYSIS: (
        "Output format: Use sections with headings: Summary, Findings, Recommendations. "
        "Use bullet points where appropriate."
    ),
    TaskType.CREATIVE: (
        "Output format: Provide the creative output or runnable code (if code requested). "
        "For code include a single code block and a short explanation."
    ),
}
DEFAULT_OUTPUT_FORMAT = (
    "Output format: Provide a clear, structured response. Use headings and bullets where useful."
)

INSTRUCTION_ENGLISH = (
    "Please carry out the request below exactly as specified. The user's request is provided "
    "in Hebrew; prefer responding in Hebrew unless the user explicitly requests another language."
)

SYSTEM_LINE = (
    "System: You are an expert, concise, and highly reliable assistant. Follow instructions "
    "exactly and produce final results without asking for clarifying questions unless "
    "explicitly requested."
)

GUIDELINES = (
    "Behavioral guidelines:\n"
    "- Be precise and concise.\n"
    "- Use headings and bullet points.\n"
    "- When returning code, include runnable code in a single code block and a brief explanation."
)


def is_code_snippet(text: str) -> bool:
    if not text:
        return False
    score = sum(1 for indicator in _CODE_INDICATORS if indicator in text)
    lines = len(re.split(r"\r?\n", text))
    if lines > 3 and text.count(";") > 1:
        score += 2
    return score >= 2


def detect_language(text: str) -> str:
    if not text:
        return "text"
    if re.search(r"\b(function|const|let|console\.log)\b", text) or "=>" in text:
        return "javascript"
    if re.search(r"\b(def |import |print\()", text):
        return "python"
    if re.search(r"^<\?php|echo\s+\$", text, re.MULTILINE):
        return "php"
    return "text"


def describe_snippet(text: str) -> str:
    lowered = (text or "").lower()
    if "authorization" in lowered or "bearer" in lowered or "token" in lowered:
        return "Retrieves a valid Bearer token and sets HTTP headers."
    if "fetch(" in lowered or "axios" in lowered or "http" in lowered:
        return "Example: HTTP request with headers and JSON payload."
    if "class " in lowered or "new " in lowered:
        return "Class or constructor example."
    if "def " in lowered or "import " in lowered:
        return "Python function example."
    return "Code example demonstrating the described behavior."


def format_snippet(text: str, filename: str) -> str:
    """Fence code-like snippets; collapse plain text into one paragraph."""
    if not text:
        return ""
    short = text[:MAX_FORMAT_CHARS]
    if is_code_snippet(short):
        body = "\n".join(line.rstrip() for line in re.split(r"\r?\n", short))
        return (
            f"// From {filename}: {describe_snippet(short)}\n\n"
            f"```{detect_language(short)}\n{body}\n```\n"
        )
    return collapse_whitespace(short)


def recommend_model(task: TaskType) -> str:
    return "claude-2.1 (or GPT-4)" if task is TaskType.CREATIVE else "gpt-4"


@dataclass(slots=True)
class PromptBundle:
    task: TaskType
    classification: Classification
    professional_prompt: str
    final_prompt: str
    model_recommendation: str
    parameters: Dict[str, float]
    retrieved: List[SearchResult] = field(default_factory=list)


def _few_shot(
    task: TaskType, rules: GuideRules, chunks: Sequence[Chunk], retrieved: Sequence[SearchResult]
) -> str:
    task_files = rules.task_hints.get(task, [])
    examples = [
        format_snippet(chunk.text[:SNIPPET_CHARS], chunk.filename)
        for chunk in chunks
        if chunk.filename in task_files
    ][:MAX_FEW_SHOT]
    if not examples:
        examples = [format_snippet(r.snippet[:SNIPPET_CHARS], r.filename) for r in retrieved]
    return "\n\n".join(examples)


def build_prompt(
    request: str,
    *,
    classification: Classification,
    rules: GuideRules,
    retrieved: Sequence[SearchResult],
    chunks: Sequence[Chunk] = (),
    model: str | None = None,
    temperature: float | None = None,
    top_p: float | None = None,
) -> PromptBundle:
    """Render the professional and compact prompts for ``request``."""
    task = classification.task
    params = {
        "temperature": rules.parameters.temperature if temperature is None else temperature,
        "top_p": rules.parameters.top_p if top_p is None else top_p,
    }

    example = retrieved[0] if retrieved else None
    context = (
        format_snippet(example.snippet[:SNIPPET_CHARS], example.filename)
        if example
        else "Context: No example available from the guides."
    )
    few_shot = _few_shot(task, rules, chunks, retrieved)
    output_format = OUTPUT_FORMATS.get(task, DEFAULT_OUTPUT_FORMAT)
    recommended = recommend_model(task)

    professional = "\n".join(
        [
            SYSTEM_LINE,
            "",
            f"Context:\n{context}",
            "",
            few_shot,
            f"User request (Hebrew): {request}",
            "",
            f"Instruction (English): {INSTRUCTION_ENGLISH}",
            "",
            f"Task type: {task.value}",
            "",
            output_format,
            "",
            f"Recommended model: {recommended}",
            f"Recommended parameters: temperature={params['temperature']}, "
            f"top_p={params['top_p']}, top_k=N/A",
            "",
            GUIDELINES,
            "",
            "Return only the requested output according to the Output format.",
        ]
    )

    final_lines = [
        "SYSTEM: You are an expert assistant. Follow the instructions exactly and respond concisely.",
        "",
        f"CONTEXT: {context.replace(chr(10), ' ')}",
        "",
        f"EXAMPLE: {few_shot.replace(chr(10), ' ')}" if few_shot else "",
        f"USER_REQUEST: {request}",
        "",
        f"INSTRUCTION: {INSTRUCTION_ENGLISH}",
        "",
        f"OUTPUT_FORMAT: {output_format}",
        "",
        f"RECOMMENDED_MODEL: {recommended}",
        f"PARAMETERS: temperature={params['temperature']}, top_p={params['top_p']}",
        "",
        "NOTE: Return only the requested output. Do not include internal commentary.",
    ]

    return PromptBundle(
        task=task,
        classification=classification,
        professional_prompt=professional,
        final_prompt="\n".join(line for line in final_lines if line),
        model_recommendation=model or recommended,
        parameters=params,
        retrieved=list(retrieved),
    )
