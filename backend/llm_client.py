from __future__ import annotations
import json
import logging
import os
from typing import Any, Dict

from openai import OpenAI, OpenAIError

from helpers import _parse_json_object

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "meta-llama/llama-3.3-70b-instruct:free"

_client: OpenAI | None = None


class AnalysisError(RuntimeError):
    """The model call failed or its reply held no usable JSON."""


def get_client() -> OpenAI:
    global _client
    if _client is None:
        api_key = os.getenv("OPENROUTER_API_KEY") or os.getenv("OPENAI_API_KEY")
        if not api_key:
            raise RuntimeError("OPENROUTER_API_KEY or OPENAI_API_KEY must be set")
        _client = OpenAI(
            base_url="https://openrouter.ai/api/v1",
            api_key=api_key,
        )
    return _client


def _complete_json(system_prompt: str, user_prompt: str, what: str) -> Dict[str, Any]:
    try:
        client = get_client()
    except RuntimeError as e:
        raise AnalysisError(f"{what} engine unavailable: {e}") from e

    model = os.getenv("LLM_MODEL") or DEFAULT_MODEL
    try:
        completion = client.chat.completions.create(
            model=model,
            temperature=0.2,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
        )
    except OpenAIError as e:
        raise AnalysisError(f"{what} request failed: {e}") from e

    try:
        content = completion.choices[0].message.content or ""
    except (AttributeError, IndexError, TypeError) as e:
        raise AnalysisError(f"{what} reply had no message") from e
    logger.debug("%s response snippet: %s...", what, content[:200])

    data = _parse_json_object(content)
    if data is None:
        logger.error("%s: no JSON object in model reply: %s", what, content[:500])
        raise AnalysisError(f"Failed to parse {what} response as JSON")
    return data


def analyze_resume_with_llm(raw_text: str) -> Dict[str, Any]:
    """Score a resume and list strengths and suggestions.

    Returns:
    {
      "overallScore": int 0-100,
      "categoryScores": {"formatting", "content", "keywords", "impact"},
      "suggestions": string[],
      "strengths": string[]
    }
    """
    system_prompt = (
        "You are an ATS and resume review expert. "
        "Return ONLY a single JSON object, no markdown, no explanation, following this exact schema: "
        "{ "
        "  \"overallScore\": integer 0-100, "
        "  \"categoryScores\": { "
        "    \"formatting\": integer 0-100 (layout, readability, consistency), "
        "    \"content\": integer 0-100 (clarity, conciseness, grammar, spelling), "
        "    \"keywords\": integer 0-100 (relevance of skills and terms to common job descriptions), "
        "    \"impact\": integer 0-100 (achievements and quantifiable results) "
        "  }, "
        "  \"suggestions\": string[] (specific, actionable), "
        "  \"strengths\": string[] "
        "}."
    )
    user_prompt = (
        "Analyze the following resume text and provide feedback.\n\n"
        "--- START RESUME ---\n" + raw_text + "\n--- END RESUME ---"
    )
    logger.info("calling LLM for analysis, raw_text length=%d", len(raw_text))
    return _complete_json(system_prompt, user_prompt, "analysis")


def generate_resume_llm(inputs: Dict[str, Any]) -> Dict[str, Any]:
    """Draft resume content from the builder form.

    Returns JSON:
    {
      "summary": string,
      "experience": [{"title", "company", "start", "end", "bullets": string[]}],
      "education": [{"institution", "degree", "field", "end_year"}],
      "skills": string[]
    }
    """
    system_prompt = (
        "You are an expert resume writer for ATS. Return ONLY JSON. "
        "Given the candidate details (personal info, work history, education, skills and an optional "
        "target job), write a polished resume following this exact schema: "
        "{ \n"
        "  \"summary\": string, \n"
        "  \"experience\": [{\"title\": string, \"company\": string, \"start\": string, \"end\": string, \"bullets\": string[]}], \n"
        "  \"education\": [{\"institution\": string, \"degree\": string, \"field\": string, \"end_year\": number|null}], \n"
        "  \"skills\": string[] \n"
        "}. "
        "Use strong action verbs and quantify impact where the details allow; never invent employers or degrees."
    )
    user_prompt = (
        "Candidate details JSON:\n" + json.dumps(inputs, ensure_ascii=False) + "\n\n"
        "Return ONLY valid JSON per schema."
    )
    logger.info("calling LLM for resume generation")
    return _complete_json(system_prompt, user_prompt, "generation")
