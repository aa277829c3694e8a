from __future__ import annotations

from typing import Dict, List, Optional

import google.generativeai as genai

from .config import Settings

JSON_MIME_TYPE = "application/json"


class GeminiClient:
    """Thin wrapper around the Gemini SDK with per-model caching."""

    def __init__(self, settings: Settings) -> None:
        """Purpose: Configure the Gemini SDK and initialize the model cache.
        Inputs/Outputs: Input is Settings; no return value.
        Side Effects / State: Configures the SDK API key globally.
        Dependencies: google.generativeai and Settings from config.
        Failure Modes: Raises ValueError if the API key or model name is missing.
        If Removed: The reference recommendation agent cannot call the model.
        Testing Notes: Validate a missing key raises ValueError.
        """
        if not settings.gemini_api_key:
            raise ValueError("GEMINI_API_KEY is required")
        default_model = _normalize_model_name(settings.gemini_model)
        if not default_model:
            raise ValueError("Gemini model name is required")
        genai.configure(api_key=settings.gemini_api_key)
        self._default_model = default_model
        self._models: Dict[tuple, genai.GenerativeModel] = {}

    def generate_content(
        self,
        contents: List[dict],
        model: Optional[str] = None,
        system_instruction: Optional[str] = None,
        temperature: float = 0.4,
        max_output_tokens: int = 4096,
        response_mime_type: Optional[str] = JSON_MIME_TYPE,
    ) -> str:
        """Purpose: Generate a reply from role-tagged chat contents.
        Inputs/Outputs: Input is a list of content entries plus options; returns text.
        Side Effects / State: May add a model instance to the cache.
        Dependencies: genai.GenerativeModel.generate_content and _flatten_contents.
        Failure Modes: SDK errors propagate; a TypeError from older SDKs triggers a
            flattened plain-text retry.
        If Removed: The recommendation agent has no generation step.
        Testing Notes: Exercise both the structured path and the flattened fallback.
        """
        model_name = _normalize_model_name(model) if model else self._default_model
        generation_config = {
            "temperature": temperature,
            "max_output_tokens": max_output_tokens,
        }
        if response_mime_type:
            generation_config["response_mime_type"] = response_mime_type

        try:
            instance = self._model(model_name, system_instruction)
            response = instance.generate_content(contents, generation_config=generation_config)
        except TypeError:
            combined = _flatten_contents(contents)
            if system_instruction:
                combined = f"{system_instruction}\n\n{combined}"
            generation_config.pop("response_mime_type", None)
            response = self._model(model_name, None).generate_content(
                combined, generation_config=generation_config
            )

        text: Optional[str] = getattr(response, "text", None)
        return (text or "").strip()

    def _model(self, model_name: str, system_instruction: Optional[str]) -> genai.GenerativeModel:
        key = (model_name, system_instruction or "")
        if key not in self._models:
            if system_instruction:
                self._models[key] = genai.GenerativeModel(model_name, system_instruction=system_instruction)
            else:
                self._models[key] = genai.GenerativeModel(model_name)
        return self._models[key]


def _normalize_model_name(name: Optional[str]) -> str:
    # "models/gemini-x" and "gemini-x" name the same model.
    if not name:
        return ""
    cleaned = name.strip()
    if cleaned.startswith("models/"):
        return cleaned.split("/", 1)[1]
    return cleaned


def _flatten_contents(contents: List[dict]) -> str:
    parts: List[str] = []
    for entry in contents:
        if not isinstance(entry, dict):
            continue
        role = entry.get("role", "")
        texts = [
            str(segment.get("text"))
            for segment in entry.get("parts", []) or []
            if isinstance(segment, dict) and segment.get("text")
        ]
        if texts:
            prefix = f"{role.upper()}: " if role else ""
            parts.append(prefix + "\n".join(texts))
    return "\n\n".join(parts)
