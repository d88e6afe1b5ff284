"""Vertex AI Gemini oracle for scheme scoring.

Wraps the ``vertexai`` SDK behind the single call the AI scorer needs:
send a fully-formatted prompt, get the model's JSON text back.  Transient
failures are retried with tenacity; anything still failing is raised to
the caller, which decides how to degrade.
"""

from __future__ import annotations

import time
from typing import Final

import structlog
import vertexai
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from vertexai.generative_models import (
    Content,
    GenerationConfig,
    GenerativeModel,
    Part,
)

from src.services.errors import OracleError

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

# ---------------------------------------------------------------------------
# System prompt
# ---------------------------------------------------------------------------

SARKARMITRA_SYSTEM_PROMPT: Final[str] = """\
You are SarkarMitra, an expert on Indian central and state government \
welfare schemes.  You assess how well a citizen matches each scheme you \
are given.

- Judge only from the citizen profile and the scheme details provided. \
Do not invent schemes, benefits or eligibility rules.
- When a criterion cannot be verified from the profile, say so and lower \
the score rather than assuming the citizen qualifies.
- Write the reasoning in simple, everyday language a citizen with limited \
formal education can follow.
- Always answer with the exact JSON structure requested.\
"""

# Approximate cost per million tokens for Gemini 2.0 Flash (USD).
_COST_PER_M_INPUT_TOKENS: Final[float] = 0.10
_COST_PER_M_OUTPUT_TOKENS: Final[float] = 0.40


class LLMService:
    """Async interface to Vertex AI Gemini, usable as a ``SchemeOracle``."""

    def __init__(
        self,
        project_id: str,
        region: str = "asia-south1",
        model_name: str = "gemini-2.0-flash",
    ) -> None:
        self._project_id = project_id
        self._region = region
        self._model_name = model_name
        self._model: GenerativeModel | None = None
        self._initialized = False

    # -- lifecycle ----------------------------------------------------------

    def _initialize(self) -> None:
        """Lazily initialize the Vertex AI SDK and model handle."""
        if self._initialized:
            return
        vertexai.init(project=self._project_id, location=self._region)
        self._model = GenerativeModel(
            model_name=self._model_name,
            system_instruction=[Part.from_text(SARKARMITRA_SYSTEM_PROMPT)],
        )
        self._initialized = True
        logger.info(
            "llm.initialized",
            project=self._project_id,
            region=self._region,
            model=self._model_name,
        )

    def _get_model(self) -> GenerativeModel:
        self._initialize()
        assert self._model is not None  # noqa: S101
        return self._model

    @staticmethod
    def _estimate_cost(input_tokens: int, output_tokens: int) -> float:
        return round(
            (input_tokens / 1_000_000) * _COST_PER_M_INPUT_TOKENS
            + (output_tokens / 1_000_000) * _COST_PER_M_OUTPUT_TOKENS,
            8,
        )

    # -- public API ---------------------------------------------------------

    @retry(
        retry=retry_if_exception_type(Exception),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
        reraise=True,
    )
    async def rank_schemes(self, prompt: str) -> str:
        """Send a scheme-ranking prompt and return the raw JSON text.

        Uses a low temperature and a JSON response mime type so the reply
        can be parsed deterministically.

        Raises
        ------
        OracleError
            If the model returns an empty (or safety-blocked) response.
        """
        start = time.perf_counter()
        model = self._get_model()

        generation_config = GenerationConfig(
            temperature=0.3,
            top_p=0.8,
            max_output_tokens=4096,
            response_mime_type="application/json",
        )

        response = await model.generate_content_async(
            contents=[Content(role="user", parts=[Part.from_text(prompt)])],
            generation_config=generation_config,
        )

        elapsed_ms = (time.perf_counter() - start) * 1000

        try:
            raw_text = (response.text or "").strip()
        except ValueError as exc:
            # ``response.text`` raises when the candidate was blocked.
            raise OracleError("model response has no text") from exc
        if not raw_text:
            raise OracleError("model returned an empty response")

        usage = response.usage_metadata
        input_tokens = usage.prompt_token_count if usage else 0
        output_tokens = usage.candidates_token_count if usage else 0

        logger.info(
            "llm.rank_schemes",
            prompt_length=len(prompt),
            response_length=len(raw_text),
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            cost_usd=self._estimate_cost(input_tokens, output_tokens),
            processing_time_ms=round(elapsed_ms, 2),
        )
        return raw_text
