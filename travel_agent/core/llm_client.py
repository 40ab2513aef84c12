"""Client for interacting with the Google Gemini LLM."""

import google.generativeai as genai
from travel_agent.config import settings
from travel_agent.models.chat import Message
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence, Union
import json
import re
import logging

logger = logging.getLogger(__name__)


@dataclass
class TextChunk:
    """An incremental piece of model text."""

    text: str


@dataclass
class FunctionCall:
    """The model asked to call a tool."""

    name: str
    args: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ToolFeedback:
    """A rejected tool call, sent back so the model can correct itself."""

    call: FunctionCall
    error: str


ModelEvent = Union[TextChunk, FunctionCall]


def build_contents(
    history: Sequence[Message], feedback: Sequence[ToolFeedback] = ()
) -> List[Any]:
    """Maps the conversation (and any rejected calls) to Gemini contents."""
    contents: List[Any] = []
    for message in history:
        if message.role == "system":
            continue
        role = "user" if message.role == "user" else "model"
        contents.append({"role": role, "parts": [{"text": message.content}]})

    for item in feedback:
        contents.append(
            genai.protos.Content(
                role="model",
                parts=[
                    genai.protos.Part(
                        function_call=genai.protos.FunctionCall(
                            name=item.call.name, args=item.call.args
                        )
                    )
                ],
            )
        )
        contents.append(
            genai.protos.Content(
                role="user",
                parts=[
                    genai.protos.Part(
                        function_response=genai.protos.FunctionResponse(
                            name=item.call.name, response={"error": item.error}
                        )
                    )
                ],
            )
        )
    return contents


def build_system_instruction(system_prompt: str, history: Sequence[Message]) -> str:
    """System prompt plus any system turns kept in the history, in order."""
    extra = [m.content for m in history if m.role == "system"]
    return "\n\n".join([system_prompt, *extra])


class GeminiClient:
    """A client to handle interactions with the Google Gemini API."""

    def __init__(self, model_name: Optional[str] = None):
        """Initializes the Gemini client and configures the API key."""
        genai.configure(api_key=settings.google_api_key)
        self.model_name = model_name or settings.gemini_model

    async def stream_step(
        self,
        system_prompt: str,
        history: Sequence[Message],
        function_declarations: Sequence[Dict[str, Any]],
        feedback: Sequence[ToolFeedback] = (),
        temperature: float = settings.temperature,
    ) -> AsyncIterator[ModelEvent]:
        """
        Runs one model step and yields text chunks and function calls as they
        arrive. Errors from the API propagate to the caller.
        """
        model = genai.GenerativeModel(
            self.model_name,
            system_instruction=build_system_instruction(system_prompt, history),
            tools=(
                [{"function_declarations": list(function_declarations)}]
                if function_declarations
                else None
            ),
            generation_config=genai.GenerationConfig(temperature=temperature),
        )
        response = await model.generate_content_async(
            build_contents(history, feedback), stream=True
        )
        async for chunk in response:
            if not chunk.candidates:
                continue
            for part in chunk.candidates[0].content.parts:
                if part.function_call.name:
                    call = genai.protos.FunctionCall.to_dict(part.function_call)
                    yield FunctionCall(name=call["name"], args=call.get("args") or {})
                elif part.text:
                    yield TextChunk(part.text)

    async def generate_json(self, prompt: str, temperature: float = 0.4) -> Any:
        """Asks the model for JSON and returns the parsed value."""
        model = genai.GenerativeModel(
            self.model_name,
            generation_config=genai.GenerationConfig(
                temperature=temperature, response_mime_type="application/json"
            ),
        )
        response = await model.generate_content_async(prompt)
        json_text_match = re.search(r"[\[{].*[\]}]", response.text, re.DOTALL)
        if not json_text_match:
            raise ValueError("LLM did not return a valid JSON value.")
        return json.loads(json_text_match.group(0))
