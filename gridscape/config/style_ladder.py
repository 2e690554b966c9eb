"""Prompt ladder tables with optional YAML overrides."""

from __future__ import annotations

from copy import deepcopy
from pathlib import Path
from threading import Lock
from typing import Any

import yaml

from gridscape.config.settings import settings
from gridscape.util.logger import logger


MIN_LEVEL = 1
MAX_LEVEL = 2

_DEFAULT_LADDER: dict[str, Any] = {
    "system": {
        "rewrite_role": (
            "You are an expert Applied Linguist and Writing Coach. "
            "Your goal is to rewrite user text to help language learners understand different registers and styles."
        ),
        "define_role": "You are an Etymologist and Lexicographer.",
        "meaning": "PRESERVE MEANING: Do not change the facts or the fundamental truth of the sentence.",
        "define_meaning": "Define the word only as it is used in the given context; do not invent senses.",
        "reason": (
            "EDUCATIONAL VALUE: The 'reason' field must name the linguistic mechanism used "
            "(e.g. \"Participial phrase\", \"Nominalization for weight\"), in at most {max_words} words."
        ),
        "define_fields": {
            "definition": "concise, at most 15 words",
            "nuance": "at most 10 words on the connotation, flavor or register of the word",
            "transcription": "IPA pronunciation of the word as spoken in the context",
        },
        "rewrite_fields": {
            "text": "the rewritten sentence",
            "reason": "why the change works",
        },
        "format": (
            "OUTPUT FORMAT: Respond with a single JSON object containing exactly these fields: {fields}. "
            "No surrounding prose, no markdown, no code fences."
        ),
    },
    "closing": "Final Constraint: Ensure the output is distinctly different from the input. Do not return the text unchanged.",
    "registers": {
        "speaking": "Context: spoken English. Keep it natural to say out loud.",
        "writing": "Context: written English. Follow conventions of edited prose.",
    },
    "operations": {
        "elevate": {
            "speaking": {
                1: (
                    "DIRECTION: ELEVATE (POLISH).\n"
                    "Target: articulate, confident speech.\n"
                    "Mechanism:\n"
                    "1. Replace generic words with precise ones.\n"
                    "2. Smooth the rhythm without adding length.\n"
                    "Example: \"I am really hungry\" -> \"I am famished.\""
                ),
                2: (
                    "DIRECTION: ELEVATE (ORATORICAL).\n"
                    "Target: CEFR C1/C2 rhetoric suited to a speech or toast.\n"
                    "Mechanism:\n"
                    "1. Use parallelism or a rhetorical turn.\n"
                    "2. Choose vivid, elevated vocabulary.\n"
                    "3. Tone: authoritative and refined.\n"
                    "Example: \"I am really hungry\" -> \"Hunger, I confess, has quite overtaken me.\""
                ),
            },
            "writing": {
                1: (
                    "DIRECTION: ELEVATE (POLISH).\n"
                    "Target: clean, professional prose.\n"
                    "Mechanism:\n"
                    "1. Lexical precision: replace generic verbs with precise ones.\n"
                    "2. Tighten phrasing.\n"
                    "Example: \"I am really hungry\" -> \"I am famished.\""
                ),
                2: (
                    "DIRECTION: ELEVATE (ACADEMIC/LITERARY).\n"
                    "Target: CEFR C1/C2 proficiency.\n"
                    "Mechanism:\n"
                    "1. Syntactic complexity: use subordination, inversion, or participial phrases.\n"
                    "2. Lexical precision: replace generic verbs with precise ones.\n"
                    "3. Tone: authoritative and refined.\n"
                    "Example: \"I am really hungry\" -> \"I am overcome by a ravenous appetite.\""
                ),
            },
        },
        "ground": {
            "speaking": {
                1: (
                    "DIRECTION: GROUND (CLARITY).\n"
                    "Target: relaxed, everyday speech.\n"
                    "Mechanism:\n"
                    "1. Prefer contractions and common words.\n"
                    "2. Remove unnecessary modifiers.\n"
                    "Example: \"I am overcome by a ravenous appetite\" -> \"I'm really hungry.\""
                ),
                2: (
                    "DIRECTION: GROUND (BARE).\n"
                    "Target: the shortest natural spoken form.\n"
                    "Mechanism:\n"
                    "1. Cut to the core message.\n"
                    "2. Use strong Anglo-Saxon roots.\n"
                    "Example: \"I am overcome by a ravenous appetite\" -> \"I'm starving.\""
                ),
            },
            "writing": {
                1: (
                    "DIRECTION: GROUND (CLARITY/DIRECTNESS).\n"
                    "Target: natural, punchy, modern prose.\n"
                    "Mechanism:\n"
                    "1. Remove unnecessary modifiers.\n"
                    "2. Unpack complex grammar into direct Subject-Verb-Object structures.\n"
                    "Example: \"I am overcome by a ravenous appetite\" -> \"I am very hungry.\""
                ),
                2: (
                    "DIRECTION: GROUND (HEMINGWAY).\n"
                    "Target: spare, declarative prose.\n"
                    "Mechanism:\n"
                    "1. Short sentences, concrete nouns.\n"
                    "2. Use strong Anglo-Saxon roots.\n"
                    "Example: \"I am overcome by a ravenous appetite\" -> \"I'm starving.\""
                ),
            },
        },
        "expand": {
            "speaking": {
                1: (
                    "DIRECTION: NUANCE (FEELING).\n"
                    "Target: expressive conversational storytelling.\n"
                    "Mechanism:\n"
                    "1. Add how it feels, in words a person would say.\n"
                    "2. Keep it to one or two sentences.\n"
                    "Example: \"I am really hungry\" -> \"Honestly, my stomach won't stop growling.\""
                ),
                2: (
                    "DIRECTION: NUANCE & EXPANSION (SCENE).\n"
                    "Target: an anecdote told aloud.\n"
                    "Mechanism:\n"
                    "1. Add one concrete detail that implies the situation.\n"
                    "2. You may make the sentence longer to add depth.\n"
                    "Example: \"I am really hungry\" -> \"I skipped lunch and now my stomach is growling through every meeting.\""
                ),
            },
            "writing": {
                1: (
                    "DIRECTION: NUANCE (SENSORY).\n"
                    "Target: creative non-fiction.\n"
                    "Mechanism:\n"
                    "1. \"Show, Don't Tell\": describe the physical sensation.\n"
                    "2. Keep the original sentence's scope.\n"
                    "Example: \"I am really hungry\" -> \"A hollow ache gnawed at my stomach.\""
                ),
                2: (
                    "DIRECTION: NUANCE & EXPANSION.\n"
                    "Target: novelist style.\n"
                    "Mechanism:\n"
                    "1. \"Show, Don't Tell\": describe the physical sensation or environment.\n"
                    "2. Add a specific detail that implies the context.\n"
                    "3. Expand: you may make the sentence longer to add depth.\n"
                    "Example: \"I am really hungry\" -> \"My stomach gave a hollow rumble, reminding me I hadn't eaten since dawn.\""
                ),
            },
        },
    },
    "personas": {
        "hemingway": "Rewrite this in the voice of Ernest Hemingway: short declarative sentences, concrete nouns, no ornament.",
        "shakespeare": "Rewrite this as a line Shakespeare might write: Early Modern English, iambic cadence, vivid metaphor.",
        "scientist": "Rewrite this as a scientist would state it: precise, measured, hedged where evidence is uncertain.",
        "poet": "Rewrite this as a line of lyric poetry: imagery first, compressed syntax.",
        "lawyer": "Rewrite this in formal legal register: unambiguous, defined terms, no figurative language.",
        "child": "Rewrite this as a curious seven-year-old would say it: simple words, honest and direct.",
        "journalist": "Rewrite this as a news lede: who, what, where in one tight sentence.",
    },
    "custom_fallback": "Rewrite this.",
    "reason_max_words": 15,
}

_CACHE_LOCK = Lock()
_CACHE_PATH = ""
_CACHE_MTIME_NS = -1
_CACHE_LADDER: dict[str, Any] | None = None


def _resolve_ladder_file(path: str) -> Path:
    candidate = Path(path)
    if candidate.is_absolute():
        return candidate
    app_root = Path(__file__).resolve().parents[2]
    candidates = [Path.cwd() / candidate, app_root / candidate]
    for item in candidates:
        if item.exists():
            return item.resolve()
    return candidates[-1].resolve()


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            base[key] = _deep_merge(dict(base[key]), value)
        else:
            base[key] = value
    return base


def load_style_ladder(path: str | None = None) -> dict[str, Any]:
    global _CACHE_PATH, _CACHE_MTIME_NS, _CACHE_LADDER

    ladder_path = _resolve_ladder_file(path or settings.style_ladder_path)
    path_key = str(ladder_path)
    mtime_ns = ladder_path.stat().st_mtime_ns if ladder_path.exists() else -1

    with _CACHE_LOCK:
        if _CACHE_LADDER is not None and _CACHE_PATH == path_key and _CACHE_MTIME_NS == mtime_ns:
            return deepcopy(_CACHE_LADDER)

        ladder = deepcopy(_DEFAULT_LADDER)
        if ladder_path.exists():
            raw = yaml.safe_load(ladder_path.read_text(encoding="utf-8")) or {}
            if not isinstance(raw, dict):
                raise ValueError(f"style ladder file must be a mapping: {ladder_path}")
            ladder = _deep_merge(ladder, raw)
            logger.info("style ladder loaded path=%s", ladder_path)
        else:
            logger.debug("style ladder file not found, using built-in tables path=%s", ladder_path)

        _CACHE_PATH = path_key
        _CACHE_MTIME_NS = mtime_ns
        _CACHE_LADDER = ladder
        return deepcopy(ladder)


def clamp_level(level: int) -> int:
    return max(MIN_LEVEL, min(MAX_LEVEL, int(level)))
