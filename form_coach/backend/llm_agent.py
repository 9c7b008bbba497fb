# backend/llm_agent.py

import json
import logging
from functools import lru_cache
from typing import Dict, Optional

from langchain_core.messages import HumanMessage, SystemMessage
from langchain_groq import ChatGroq

from form_coach import config

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are the spoken coach of a live form-analysis workout app.\n\n"
    "After every rep you get a short summary of how it went. Reply with one "
    "spoken cue, the way a trainer standing next to the lifter would.\n\n"
    "Voice:\n"
    "- Direct and encouraging, address the lifter as \"you\".\n"
    "- 5-10 words, 12 at most.\n"
    "- Plain words only, no emojis or hashtags.\n"
    "- Never mention JSON, fields, data, or that you are an AI.\n\n"
    "You receive data for a SINGLE rep. Respond with a SINGLE JSON object ONLY, "
    "no commentary, no markdown.\n\n"
    "JSON format:\n"
    "{\n"
    '  "exercise": string,\n'
    '  "main_issue": string | null,   // one of the rep faults, or null\n'
    '  "severity": "none" | "low" | "medium" | "high",\n'
    '  "message": string\n'
    "}\n\n"
    "Signals in the rep JSON:\n"
    "- exercise: squat, lunge, deadlift, pushup\n"
    "- duration_s: rep time in seconds\n"
    "- primary_angle_min: deepest angle of the rep (knee for squat/lunge, hip for "
    "deadlift, elbow for pushup; 180 = straight)\n"
    "- faults: form faults seen during the rep, e.g. depth_good, back_straight, balance, "
    "torso_upright, knee_alignment, bar_path, lockout, chest_depth_good, torso_rigid, "
    "elbow_lockout\n"
    "- overall_form: excellent, needs-improvement or poor at the end of the rep\n"
    "- avg_confidence: 0..1 tracking quality\n\n"
    "Guidelines:\n"
    "- No faults: severity \"none\" and a short positive line.\n"
    "- Otherwise pick the most important fault and say how to fix it.\n"
    "- If duration_s < 0.4, mention slowing down and controlling the rep.\n"
)

# Spoken fixes for the faults the client reports
FAULT_MESSAGES: Dict[str, str] = {
    "depth_good": "Sit deeper, thighs to parallel",
    "back_straight": "Chest up, keep your back flat",
    "balance": "Keep your weight centered over your feet",
    "depth": "Drop that back knee lower",
    "torso_upright": "Stay tall, no leaning forward",
    "knee_alignment": "Keep the front knee over your ankle",
    "bar_path": "Keep the bar close to your legs",
    "lockout": "Finish tall, squeeze at the top",
    "chest_depth_good": "Lower your chest, elbows to ninety",
    "torso_rigid": "Brace your core, hips in line",
    "elbow_lockout": "Press all the way to lockout",
}


@lru_cache(maxsize=1)
def _get_llm() -> Optional[ChatGroq]:
    if not config.GROQ_API_KEY:
        logger.info("GROQ_API_KEY not set, using rule-based coaching")
        return None
    return ChatGroq(
        api_key=config.GROQ_API_KEY,
        model=config.LLM_MODEL,
        temperature=0.2,
        max_retries=1,
        timeout=config.LLM_TIMEOUT,
    )


def _parse_llm_json(raw: str) -> Optional[Dict]:
    """Extract JSON from raw LLM output."""
    text = raw.strip()
    if text.startswith("```"):
        text = text.strip("`")
        if text.lower().startswith("json"):
            text = text[4:].strip()
    try:
        return json.loads(text)
    except ValueError:
        pass
    try:
        s = text.index("{")
        e = text.rindex("}") + 1
        return json.loads(text[s:e])
    except ValueError:
        return None


def analyze_rep_with_llm(rep_summary: Dict) -> Optional[Dict]:
    """
    Ask the LLM for a coaching line and return the parsed JSON dict.
    None when no LLM is configured or the call/parse fails.
    """
    llm = _get_llm()
    if llm is None:
        return None

    exercise = rep_summary.get("exercise") or "unknown"
    messages = [
        SystemMessage(content=SYSTEM_PROMPT),
        HumanMessage(
            content=(
                f"Exercise: {exercise}\n"
                f"Rep JSON: {json.dumps(rep_summary, ensure_ascii=False)}"
            )
        ),
    ]

    try:
        resp = llm.invoke(messages)
    except Exception as e:
        logger.warning("LLM call failed: %s", e)
        return None

    raw = resp.content if hasattr(resp, "content") else str(resp)
    parsed = _parse_llm_json(raw)
    if not parsed:
        logger.warning("Could not parse LLM JSON. Raw: %s", raw)
        return None
    return parsed


def fallback_coaching(rep_summary: Dict) -> Dict:
    """Rule-based coaching line when the LLM is unavailable."""
    exercise = rep_summary.get("exercise") or "unknown"
    faults = [f for f in rep_summary.get("faults", []) if f in FAULT_MESSAGES]

    if faults:
        main_issue = faults[0]
        severity = "high" if len(faults) >= 3 else "medium" if len(faults) == 2 else "low"
        message = FAULT_MESSAGES[main_issue]
    elif rep_summary.get("duration_s", 1.0) < 0.4:
        main_issue, severity, message = "tempo", "low", "Slow down and control the rep"
    else:
        main_issue, severity, message = None, "none", "Nice rep, keep that form"

    return {"exercise": exercise, "main_issue": main_issue, "severity": severity, "message": message}
