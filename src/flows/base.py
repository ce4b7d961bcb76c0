"""
Prompt Flow Base

A flow is a schema-typed wrapper around one templated model call:
validate input -> render prompt -> call model -> validate output.
"""

import json
import logging
import re
from typing import Any, Dict, Generic, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from services.llm_service import OllamaService, get_llm_service
from .oracle import FlowExecutionError, FlowInputError, FlowValidationError


InputT = TypeVar("InputT", bound=BaseModel)
OutputT = TypeVar("OutputT", bound=BaseModel)

FENCE_PATTERN = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


def extract_json(content: str) -> Any:
    """
    Decode a JSON reply, tolerating a markdown code fence around it.

    Raises:
        FlowValidationError: if no JSON object can be decoded
    """
    text = content.strip()
    fenced = FENCE_PATTERN.match(text)
    if fenced:
        text = fenced.group(1)

    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    # Fall back to the outermost {...} span (models like to add a preamble)
    start, end = text.find("{"), text.rfind("}")
    if start != -1 and end > start:
        try:
            return json.loads(text[start:end + 1])
        except json.JSONDecodeError:
            pass

    raise FlowValidationError("Model reply is not valid JSON")


class PromptFlow(Generic[InputT, OutputT]):
    """
    One prompt template bound to typed input and output schemas.

    Subclasses set name, input_model, output_model, system_prompt and
    implement render_prompt().
    """

    name: str = "flow"
    input_model: Type[InputT]
    output_model: Type[OutputT]
    system_prompt: str = "recipe_chef"
    logger_name: str = "Flow"

    def __init__(self, llm: Optional[OllamaService] = None):
        self.llm = llm or get_llm_service()
        self.logger = logging.getLogger(self.logger_name)

    def render_prompt(self, request: InputT) -> str:
        raise NotImplementedError

    def output_schema(self) -> Dict[str, Any]:
        """JSON schema of the output, with the camelCase wire names."""
        return self.output_model.model_json_schema(by_alias=True)

    def validate_input(self, request: Any) -> InputT:
        if isinstance(request, self.input_model):
            return request
        try:
            return self.input_model.model_validate(request)
        except ValidationError as e:
            raise FlowInputError(f"Invalid {self.name} input: {e}") from e

    def parse_output(self, content: str) -> OutputT:
        data = extract_json(content)
        try:
            return self.output_model.model_validate(data)
        except ValidationError as e:
            raise FlowValidationError(
                f"{self.name} output does not match schema: {e.error_count()} error(s)"
            ) from e

    def run(self, request: Any) -> OutputT:
        """
        Execute the flow once. No retries.

        Raises:
            FlowInputError: request failed validation (no model call made)
            FlowExecutionError: model unreachable or returned an error
            FlowValidationError: reply does not match the output schema
        """
        validated = self.validate_input(request)
        prompt = self.render_prompt(validated)

        response = self.llm.generate_structured(
            prompt, system_prompt=self.system_prompt, schema=self.output_schema()
        )
        if not response.success:
            raise FlowExecutionError(response.error or f"{self.name} failed")

        output = self.parse_output(response.content)
        self.logger.info("%s completed (%d chars in reply)", self.name, len(response.content))
        return output
