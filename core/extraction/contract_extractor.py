"""Contract Extraction Agent - the unstructured-to-structured collaborator.

Reads plain contract text and returns the raw JSON object described in
``core.contracts.models.ExtractionResult``. The lifecycle controller only
depends on the ``ContractExtractor`` protocol, so tests substitute a double.

Key features:
- Deterministic settings (temperature=0, seed=42, JSON response format)
- JSON repair for fenced or slightly malformed model output
- Retry logic with exponential backoff for transient API errors
- Cost tracking for every call
"""

import asyncio
import json
import logging
import re
import time
from dataclasses import dataclass, field
from typing import Any, Protocol

from openai import OpenAI
from pydantic import BaseModel, Field

from app.config import Settings, get_settings
from core.cost_tracker import CostTracker, ExecutionStatus
from core.errors import ExtractionFailure
from core.extraction.prompts import CONTRACT_EXTRACTION_SYSTEM_PROMPT, format_contract_extraction_prompt

logger = logging.getLogger("creatorlens.contract_extractor")


class ExtractionRequest(BaseModel):
    """Input for one extraction call."""
    contract_id: str = Field(..., description="Contract being analyzed")
    contract_text: str = Field(..., min_length=1, description="Plain extracted contract text")
    brand_name: str = Field(default="", description="Brand party to the contract")
    contract_type: str = Field(default="", description="e.g. sponsorship, collaboration")
    platforms: list[str] = Field(default_factory=list, description="Target social platforms")


class ContractExtractor(Protocol):
    """Anything that turns contract text into the extraction JSON object."""

    model_name: str

    async def extract(self, request: ExtractionRequest) -> dict[str, Any]:
        """Return the raw extraction object; raise ExtractionFailure on failure."""
        ...


@dataclass
class ExtractionExecutionResult:
    """Result of an extraction call including metadata."""
    data: dict[str, Any] | None
    success: bool
    model: str
    input_tokens: int
    output_tokens: int
    execution_time_ms: int
    cost_usd: float
    error_message: str | None = None
    retry_count: int = 0
    raw_response: str | None = None


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""
    max_retries: int = 3
    backoff_factor: float = 2.0
    initial_delay_seconds: float = 1.0
    retryable_errors: list[str] = field(default_factory=lambda: ["timeout", "rate_limit", "server_error"])


class ContractExtractionAgent:
    """OpenAI-backed implementation of ``ContractExtractor``.

    Example:
        agent = ContractExtractionAgent()
        data = await agent.extract(ExtractionRequest(
            contract_id="c0ffee",
            contract_text="The Creator shall deliver two Instagram reels...",
            brand_name="Acme Cosmetics",
        ))
    """

    OPERATION = "CONTRACT_EXTRACTION"
    MAX_COMPLETION_TOKENS = 4000
    SEED = 42

    def __init__(
        self,
        settings: Settings | None = None,
        client: OpenAI | None = None,
        cost_tracker: CostTracker | None = None,
        retry_config: RetryConfig | None = None,
    ) -> None:
        """Initialize the agent. The OpenAI client is created lazily."""
        self.settings = settings or get_settings()
        self._client = client
        self.model_name = self.settings.extraction_model
        self.cost_tracker = cost_tracker or CostTracker(logger_name="creatorlens.contract_extractor.cost")
        self.retry_config = retry_config or RetryConfig(max_retries=self.settings.extraction_max_retries)

    @property
    def client(self) -> OpenAI:
        """Get or create OpenAI client (lazy initialization)."""
        if self._client is None:
            api_key = self.settings.openai_api_key
            if not api_key or api_key == "your_openai_api_key_here":
                raise ValueError("OpenAI API key not configured. Set OPENAI_API_KEY in .env")
            self._client = OpenAI(api_key=api_key, timeout=self.settings.extraction_timeout_seconds)
        return self._client

    def _format_prompt(self, request: ExtractionRequest) -> str:
        return format_contract_extraction_prompt(
            contract_text=request.contract_text,
            brand_name=request.brand_name,
            contract_type=request.contract_type,
            platforms=request.platforms,
        )

    def _parse_json_response(self, text: str) -> dict[str, Any]:
        """Parse the JSON object from a model response.

        Raises:
            ValueError: No JSON object could be recovered.
        """
        # Strategy 1: Extract from markdown code blocks
        if "```json" in text:
            text = text.split("```json")[1].split("```")[0]
        elif "```" in text:
            parts = text.split("```")
            if len(parts) >= 2:
                text = parts[1]

        text = text.strip()

        # Strategy 2: Direct parsing
        try:
            data = json.loads(text)
            if isinstance(data, dict):
                return data
        except json.JSONDecodeError:
            pass

        # Strategy 3: Outermost braces
        start, end = text.find("{"), text.rfind("}")
        if start != -1 and end > start:
            text = text[start:end + 1]
            try:
                data = json.loads(text)
                if isinstance(data, dict):
                    return data
            except json.JSONDecodeError:
                pass

        # Strategy 4: Repair trailing commas
        repaired = re.sub(r",\s*([}\]])", r"\1", text)
        try:
            data = json.loads(repaired)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid extraction response format: {e.msg}") from e
        if not isinstance(data, dict):
            raise ValueError("Invalid extraction response format: expected a JSON object")
        return data

    def _is_retryable_error(self, error: Exception) -> bool:
        """Check if an error should trigger a retry."""
        error_str = str(error).lower()

        if "rate" in error_str and "limit" in error_str:
            return True
        if "timeout" in error_str or "timed out" in error_str:
            return True
        if any(code in error_str for code in ("500", "502", "503", "504")):
            return True
        if "connection" in error_str:
            return True
        return False

    def _log_result(
        self,
        request: ExtractionRequest,
        status: ExecutionStatus,
        input_tokens: int,
        output_tokens: int,
        execution_time_ms: int,
        retry_count: int,
        data: dict[str, Any] | None = None,
        error_message: str | None = None,
    ) -> float:
        extra: dict[str, Any] = {"text_length": len(request.contract_text)}
        if data is not None:
            extra["red_flags"] = len(data.get("redFlags") or [])
            extra["missing_clauses"] = len(data.get("missingClauses") or [])
        log = self.cost_tracker.create_log(
            operation=self.OPERATION,
            contract_id=request.contract_id,
            model=self.model_name,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            execution_time_ms=execution_time_ms,
            status=status,
            extra_data=extra,
            error_message=error_message,
            retry_count=retry_count,
        )
        self.cost_tracker.log_execution(log)
        return log.cost_usd

    def run(self, request: ExtractionRequest) -> ExtractionExecutionResult:
        """Run one extraction (synchronous, with retries).

        Args:
            request: Contract text and metadata.

        Returns:
            ExtractionExecutionResult; ``data`` is None when unsuccessful.
        """
        start_time = time.time()
        retry_count = 0
        last_error: str | None = None
        status = ExecutionStatus.FAILURE

        while retry_count <= self.retry_config.max_retries:
            try:
                response = self.client.chat.completions.create(
                    model=self.model_name,
                    messages=[
                        {"role": "system", "content": CONTRACT_EXTRACTION_SYSTEM_PROMPT},
                        {"role": "user", "content": self._format_prompt(request)},
                    ],
                    temperature=0,
                    seed=self.SEED,
                    max_tokens=self.MAX_COMPLETION_TOKENS,
                    response_format={"type": "json_object"},
                )

                usage = response.usage
                input_tokens = usage.prompt_tokens if usage else 0
                output_tokens = usage.completion_tokens if usage else 0
                raw_response = response.choices[0].message.content or ""
                execution_time_ms = int((time.time() - start_time) * 1000)

                try:
                    data = self._parse_json_response(raw_response)
                except ValueError as e:
                    # Malformed output is not retried; the attempt fails
                    cost_usd = self._log_result(
                        request, ExecutionStatus.VALIDATION_ERROR, input_tokens, output_tokens,
                        execution_time_ms, retry_count, error_message=str(e),
                    )
                    return ExtractionExecutionResult(
                        data=None,
                        success=False,
                        model=self.model_name,
                        input_tokens=input_tokens,
                        output_tokens=output_tokens,
                        execution_time_ms=execution_time_ms,
                        cost_usd=cost_usd,
                        error_message=str(e),
                        retry_count=retry_count,
                        raw_response=raw_response,
                    )

                cost_usd = self._log_result(
                    request, ExecutionStatus.SUCCESS, input_tokens, output_tokens,
                    execution_time_ms, retry_count, data=data,
                )
                return ExtractionExecutionResult(
                    data=data,
                    success=True,
                    model=self.model_name,
                    input_tokens=input_tokens,
                    output_tokens=output_tokens,
                    execution_time_ms=execution_time_ms,
                    cost_usd=cost_usd,
                    retry_count=retry_count,
                    raw_response=raw_response,
                )

            except Exception as e:
                last_error = str(e)
                logger.warning(f"Contract extraction attempt {retry_count + 1} failed: {last_error}")

                if "rate" in last_error.lower() and "limit" in last_error.lower():
                    status = ExecutionStatus.RATE_LIMITED
                elif "timeout" in last_error.lower() or "timed out" in last_error.lower():
                    status = ExecutionStatus.TIMEOUT
                else:
                    status = ExecutionStatus.FAILURE

                if not self._is_retryable_error(e) or retry_count >= self.retry_config.max_retries:
                    break

                delay = self.retry_config.initial_delay_seconds * (
                    self.retry_config.backoff_factor ** retry_count
                )
                time.sleep(delay)
                retry_count += 1

        execution_time_ms = int((time.time() - start_time) * 1000)
        self._log_result(
            request, status, 0, 0, execution_time_ms, retry_count, error_message=last_error,
        )
        return ExtractionExecutionResult(
            data=None,
            success=False,
            model=self.model_name,
            input_tokens=0,
            output_tokens=0,
            execution_time_ms=execution_time_ms,
            cost_usd=0.0,
            error_message=last_error,
            retry_count=retry_count,
        )

    async def extract(self, request: ExtractionRequest) -> dict[str, Any]:
        """Run the extraction in a worker thread.

        Raises:
            ExtractionFailure: The call failed or returned unparsable output.
        """
        loop = asyncio.get_running_loop()
        result = await loop.run_in_executor(None, self.run, request)
        if not result.success or result.data is None:
            raise ExtractionFailure(
                f"Contract extraction failed: {result.error_message}",
                {
                    "contract_id": request.contract_id,
                    "model": result.model,
                    "retry_count": result.retry_count,
                },
            )
        result.data.setdefault("_meta", {}).update({
            "model": result.model,
            "processing_time_ms": result.execution_time_ms,
        })
        return result.data
