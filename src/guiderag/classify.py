"""Guide-derived prompt rules and request task classification."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Sequence

from guiderag.models import Document, Index
from guiderag.utils.text import tokenize


class TaskType(str, Enum):
    SUMMARIZATION = "summarization"
    TRANSLATION = "translation"
    ANALYSIS = "analysis"
    CREATIVE = "creative"
    INSTRUCTIONS = "instructions"


TASK_KEYWORDS: Dict[TaskType, tuple[str, ...]] = {
    TaskType.SUMMARIZATION: ("סיכום", "תקציר", "summariz"),
    TaskType.TRANSLATION: ("תרגום", "translate", "מתורגם"),
    TaskType.ANALYSIS: ("ניתוח", "analysis", "הערכה"),
    TaskType.CREATIVE: ("סיפור", "יצירתי", "creative", "כתיבה"),
    TaskType.INSTRUCTIONS: ("הנחיות", "שלבים", "מדריך", "steps"),
}

# Ordered; the first matching pattern decides.
_REQUEST_PATTERNS: tuple[tuple[re.Pattern[str], TaskType], ...] = (
    (re.compile("סיכום|תקציר"), TaskType.SUMMARIZATION),
    (re.compile("תרגום|translate"), TaskType.TRANSLATION),
    (re.compile("ניתוח|הערכה|analyz"), TaskType.ANALYSIS),
    (re.compile("סיפור|יצירתי|כתיבה|creative"), TaskType.CREATIVE),
    (re.compile("קוד|תוכנית|תכנית|לכתוב קוד|game|משחק|טטריס|tetris"), TaskType.CREATIVE),
)

PROMPT_PATTERNS: Dict[TaskType, str] = {
    TaskType.SUMMARIZATION: (
        "Context: {context}\n"
        "Instruction: Summarize the following in Hebrew, keeping important points and examples.\n"
        "Output format: Bullet points or short paragraph.\n"
        "Parameters: temperature=0.0, top_p=1.0"
    ),
    TaskType.TRANSLATION: (
        "Context: {context}\n"
        "Instruction: Translate the following text to the target language precisely, "
        "preserving meaning and tone.\n"
        "Output format: Translated text only.\n"
        "Parameters: temperature=0.0, top_p=1.0"
    ),
    TaskType.ANALYSIS: (
        "Context: {context}\n"
        "Instruction: Analyze the following and provide structured findings and recommendations.\n"
        "Output format: Sections with headings: Summary, Findings, Recommendations.\n"
        "Parameters: temperature=0.0, top_p=1.0"
    ),
    TaskType.CREATIVE: (
        "Context: {context}\n"
        "Instruction: Create a creative piece based on the input. Keep tone as specified.\n"
        "Output format: Complete story or creative output.\n"
        "Parameters: temperature=0.7, top_p=1.0"
    ),
}

EXAMPLE_CHARS = 800


@dataclass(slots=True)
class ModelParameters:
    temperature: float = 0.0
    top_p: float = 1.0


@dataclass(slots=True)
class GuideRules:
    """Heuristics mined from the guide corpus."""

    task_hints: Dict[TaskType, List[str]] = field(default_factory=dict)
    examples: List[Dict[str, str]] = field(default_factory=list)
    parameters: ModelParameters = field(default_factory=ModelParameters)
    patterns: Dict[TaskType, str] = field(default_factory=lambda: dict(PROMPT_PATTERNS))

    def to_dict(self) -> Dict[str, object]:
        return {
            "taskHints": {task.value: files for task, files in self.task_hints.items()},
            "examples": self.examples,
            "recommendedParameters": {
                "temperature": self.parameters.temperature,
                "top_p": self.parameters.top_p,
            },
            "patterns": {task.value: pattern for task, pattern in self.patterns.items()},
        }


@dataclass(slots=True)
class Classification:
    task: TaskType
    source: str = "regex"
    scores: Dict[TaskType, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, object]:
        return {
            "source": self.source,
            "task": self.task.value,
            "scores": {task.value: score for task, score in self.scores.items()},
        }


def derive_rules(documents: Sequence[Document]) -> GuideRules:
    """Collect examples and per-task file hints from the guides."""
    rules = GuideRules()
    for document in documents:
        text = document.text or ""
        example = text.strip()[:EXAMPLE_CHARS]
        if example:
            rules.examples.append({"filename": document.filename, "snippet": example})

        for task, keywords in TASK_KEYWORDS.items():
            if any(keyword in text for keyword in keywords):
                rules.task_hints.setdefault(task, []).append(document.filename)

    if TaskType.CREATIVE in rules.task_hints:
        rules.parameters.temperature = 0.7
    return rules


def classify_task(text: str) -> TaskType:
    """Pick a task from keywords in the request; analysis when nothing matches."""
    lowered = (text or "").lower()
    for pattern, task in _REQUEST_PATTERNS:
        if pattern.search(lowered):
            return task
    return TaskType.ANALYSIS


def classify(text: str, rules: GuideRules, index: Index | None) -> Classification:
    """Refine :func:`classify_task` with term-weight scores of hinted guides.

    Each task accumulates the raw scores of the chunks belonging to the files
    hinted for it; the best positive task wins.
    """
    fallback = classify_task(text)
    if index is None or not index.chunks or not rules.task_hints:
        return Classification(task=fallback)

    scores: Dict[TaskType, float] = {task: 0.0 for task in rules.patterns}
    raw = index.score(tokenize(text))
    for position, chunk in enumerate(index.chunks):
        measure = float(raw[position])
        if measure == 0.0:
            continue
        for task, files in rules.task_hints.items():
            if chunk.filename in files:
                scores[task] = scores.get(task, 0.0) + measure

    best = max(scores, key=lambda task: scores[task], default=None)
    if best is not None and scores[best] > 0:
        return Classification(task=best, source="tfidf", scores=scores)
    return Classification(task=fallback, source="regex", scores=scores)
