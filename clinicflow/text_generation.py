"""AI text helpers for the reports page.

Both helpers are one-shot requests to a hosted chat model: a prompt is
filled in, the reply is parsed into a small pydantic model, and any failure
surfaces as ``TextGenerationError``.
"""
import logging
from typing import Any, Dict, Optional, Type, TypeVar

import openai
from langchain_core.exceptions import OutputParserException
from langchain_core.language_models import BaseChatModel
from langchain_core.output_parsers import PydanticOutputParser
from langchain_core.prompts import ChatPromptTemplate
from langchain_openai import ChatOpenAI
from pydantic import BaseModel, Field
from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from clinicflow import config
from clinicflow.logging_config import get_logger

logger = get_logger(__name__)
retry_logger = logging.getLogger(__name__)

OutputModel = TypeVar("OutputModel", bound=BaseModel)

TRANSIENT_ERRORS = (
    openai.APIConnectionError,
    openai.APITimeoutError,
    openai.RateLimitError,
)

EXPLAIN_TERM_PROMPT = (
    "You are a medical expert with a talent for explaining complex topics in simple terms. "
    "A user has asked for an explanation of a medical term.\n\n"
    "Provide a concise, easy-to-understand explanation for the following term: {term}\n\n"
    "Keep the explanation to 2-3 sentences."
)

REPORT_DRAFT_PROMPT = (
    "You are an AI assistant to a doctor. You are provided with notes from a medical appointment. "
    "Your job is to generate a draft report for billing purposes, including relevant ICD codes.\n\n"
    "Appointment Notes: {appointment_notes}"
)


class TextGenerationError(Exception):
    """Raised when the model cannot be reached or its reply cannot be used."""
    pass


class TermExplanation(BaseModel):
    explanation: str = Field(..., description="A simple, easy-to-understand explanation of the medical term.")


class ReportDraft(BaseModel):
    report_draft: str = Field(..., description="The draft medical report, including ICD codes.")


class ClinicTextGenerator:
    """
    Prompt-to-structured-output helper over a LangChain chat model.

    The hosted model is created on first use so the service starts without
    an OpenAI key; tests pass their own ``llm``.
    """

    def __init__(
        self,
        llm: Optional[BaseChatModel] = None,
        max_retries: int = config.LLM_MAX_RETRIES,
        max_wait_seconds: float = 8
    ):
        self._llm = llm
        self.max_retries = max_retries
        self.max_wait_seconds = max_wait_seconds

    @property
    def llm(self) -> BaseChatModel:
        if self._llm is None:
            self._llm = ChatOpenAI(
                model=config.LLM_MODEL,
                temperature=config.LLM_TEMPERATURE,
                timeout=config.LLM_TIMEOUT_SECONDS,
                max_retries=0,
            )
        return self._llm

    def generate(self, prompt: str, variables: Dict[str, Any], output_model: Type[OutputModel]) -> OutputModel:
        """
        Fill ``prompt`` with ``variables`` and parse the reply into ``output_model``.

        Args:
            prompt: Template with ``{name}`` placeholders
            variables: Values for the placeholders
            output_model: Pydantic model the reply must match

        Returns:
            Parsed ``output_model`` instance

        Raises:
            TextGenerationError: On transport failure (after retries) or
                                 an unparseable reply
        """
        parser = PydanticOutputParser(pydantic_object=output_model)
        template = ChatPromptTemplate.from_messages([
            ("system", "Reply only with JSON.\n{format_instructions}"),
            ("human", prompt),
        ]).partial(format_instructions=parser.get_format_instructions())
        chain = template | self.llm | parser

        retrying = Retrying(
            stop=stop_after_attempt(self.max_retries + 1),
            wait=wait_exponential(multiplier=1, min=1, max=self.max_wait_seconds),
            retry=retry_if_exception_type(TRANSIENT_ERRORS),
            before_sleep=before_sleep_log(retry_logger, logging.WARNING),
            reraise=True,
        )
        try:
            result = retrying(chain.invoke, variables)
        except TRANSIENT_ERRORS as e:
            logger.error("text_generation_unavailable", model=output_model.__name__, error=str(e))
            raise TextGenerationError("The text generation service is unavailable. Try again later.") from e
        except OutputParserException as e:
            logger.error("text_generation_unparseable", model=output_model.__name__, error=str(e))
            raise TextGenerationError("The text generation service returned an unusable reply.") from e
        except openai.OpenAIError as e:
            logger.error("text_generation_failed", model=output_model.__name__, error=str(e))
            raise TextGenerationError(f"Text generation failed: {e}") from e
        except KeyError as e:
            raise TextGenerationError(f"Missing prompt variable: {e}") from e

        logger.info("text_generated", model=output_model.__name__)
        return result

    def explain_medical_term(self, term: str) -> TermExplanation:
        """Plain-language explanation of ``term`` in 2-3 sentences."""
        term = (term or "").strip()
        if not term:
            raise ValueError("term is required")
        return self.generate(EXPLAIN_TERM_PROMPT, {"term": term}, TermExplanation)

    def generate_report_draft(self, appointment_notes: str) -> ReportDraft:
        """Billing report draft, including ICD codes, from appointment notes."""
        appointment_notes = (appointment_notes or "").strip()
        if not appointment_notes:
            raise ValueError("appointment_notes is required")
        return self.generate(REPORT_DRAFT_PROMPT, {"appointment_notes": appointment_notes}, ReportDraft)
