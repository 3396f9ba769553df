"""Stream orchestration: model generation, mid-stream tool calls and deadlines.

A request runs in a producer task that drives the model round by round and
puts tagged ``StreamStep`` values on a queue; the caller only ever awaits that
queue. The request deadline wraps the producer, so expiry cancels the
in-flight generation and any tool call together. Each tool call has its own,
shorter deadline whose expiry becomes a TOOL_TIMEOUT result for the model.
"""

import asyncio
from collections.abc import AsyncIterator, Callable, Sequence
from contextlib import aclosing
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, Protocol

from wager_wizard.errors import ErrorKind, InvalidRequestError, WagerWizardError
from wager_wizard.models.llm import (
    ContentBlock,
    LLMMessage,
    LLMMessageComplete,
    LLMStreamEvent,
    LLMTextDelta,
    LLMTool,
    LLMUsage,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
)
from wager_wizard.models.messages import Message
from wager_wizard.models.odds import ToolFailure
from wager_wizard.models.stream import (
    StreamDone,
    StreamFailed,
    StreamStep,
    TextDelta,
    ToolCallRequested,
    ToolResultAvailable,
)
from wager_wizard.services.persistence import PersistenceSink
from wager_wizard.tools.registry import ToolsRegistry
from wager_wizard.utils.logging import get_logger

logger = get_logger(__name__)

BASE_SYSTEM_PROMPT = (
    "You are a helpful AI assistant, who provides sports analytics and real-time betting suggestions. "
    "You base your suggestions on data and insights from professional analysts and experts worldwide. "
    "Your primary function is to provide data-driven recommendations, not guaranteed wins."
)

TOOL_GUIDANCE = (
    "When the user asks about upcoming football matches or odds, call getUpcomingFootballOdds instead of "
    "guessing prices. If the user names a single match, fetch its league and pick that match from the result. "
    "Decimal odds convert to implied probability as 1 / price. If the tool reports that odds are unavailable, "
    "say so plainly and answer from general knowledge."
)

TOOL_TIMEOUT_MESSAGE = "The odds lookup timed out, so live odds are unavailable right now."
REQUEST_TIMEOUT_MESSAGE = "The request timed out before the answer was complete."
UNCLASSIFIED_FAULT_MESSAGE = "Internal server error"


def get_system_prompt(extra_instructions: Sequence[str] = ()) -> str:
    """Build the system prompt, appending any system messages from the conversation."""
    sections = [BASE_SYSTEM_PROMPT, TOOL_GUIDANCE, *extra_instructions]
    sections.append(f"Current date and time (UTC): {datetime.now(UTC).strftime('%Y-%m-%d %H:%M')}")
    return "\n\n".join(sections)


class LLMStreamClient(Protocol):
    """Narrow contract over the inference service."""

    def stream_message(
        self,
        messages: list[LLMMessage],
        system_prompt: str,
        tools: Sequence[LLMTool] | None = None,
        **kwargs: Any,
    ) -> AsyncIterator[LLMStreamEvent]: ...


@dataclass
class OrchestratorConfig:
    """Deadlines in seconds."""

    request_timeout: float = 55.0
    tool_timeout: float = 10.0
    round_separator: str = "\n\n"


def to_model_messages(messages: Sequence[Message]) -> tuple[list[LLMMessage], list[str]]:
    """Convert UI messages into model input.

    System messages are returned separately for the system prompt. Empty
    messages are dropped and consecutive messages of the same role merged.
    """
    system_texts: list[str] = []
    llm_messages: list[LLMMessage] = []

    for message in messages:
        text = message.text
        if not text.strip():
            continue
        if message.role == "system":
            system_texts.append(text)
            continue
        if llm_messages and llm_messages[-1].role == message.role:
            previous = llm_messages[-1]
            llm_messages[-1] = LLMMessage(role=previous.role, content=f"{previous.content}\n\n{text}")
        else:
            llm_messages.append(LLMMessage(role=message.role, content=text))

    return llm_messages, system_texts


def last_user_text(messages: Sequence[Message]) -> str:
    for message in reversed(messages):
        if message.role == "user" and message.text.strip():
            return message.text
    return ""


class StreamOrchestrator:
    """Turns a conversation into a stream of tagged steps."""

    def __init__(
        self,
        llm_client: LLMStreamClient,
        tools_registry: ToolsRegistry,
        persistence_sink: PersistenceSink,
        config: OrchestratorConfig | None = None,
    ):
        self.llm_client = llm_client
        self.tools_registry = tools_registry
        self.persistence_sink = persistence_sink
        self.config = config or OrchestratorConfig()

    def stream(self, messages: Any) -> AsyncIterator[StreamStep]:
        """Validate the conversation and start streaming.

        Validation happens eagerly, before any model call.

        Raises:
            InvalidRequestError: If ``messages`` is not a non-empty sequence of Message
                or has no user turn with text
        """
        if isinstance(messages, str | bytes) or not isinstance(messages, Sequence) or not messages:
            raise InvalidRequestError("Conversation must be a non-empty list of messages")
        if not all(isinstance(message, Message) for message in messages):
            raise InvalidRequestError("Conversation entries must be messages")

        conversation = list(messages)
        llm_messages, system_texts = to_model_messages(conversation)
        if not any(message.role == "user" for message in llm_messages):
            raise InvalidRequestError("Conversation contains no user text")

        return self._consume(conversation, llm_messages, system_texts)

    async def _consume(
        self, conversation: list[Message], llm_messages: list[LLMMessage], system_texts: list[str]
    ) -> AsyncIterator[StreamStep]:
        queue: asyncio.Queue[StreamStep | None] = asyncio.Queue()
        producer = asyncio.create_task(self._produce(conversation, llm_messages, system_texts, queue.put_nowait))

        try:
            while True:
                step = await queue.get()
                if step is None:
                    break
                yield step
        finally:
            if not producer.done():
                logger.info("Stream consumer went away, cancelling generation")
                producer.cancel()

    async def _produce(
        self,
        conversation: list[Message],
        llm_messages: list[LLMMessage],
        system_texts: list[str],
        emit: Callable[[StreamStep | None], None],
    ) -> None:
        try:
            async with asyncio.timeout(self.config.request_timeout):
                await self._run(conversation, llm_messages, system_texts, emit)
        except TimeoutError:
            logger.warning(f"Request exceeded {self.config.request_timeout}s deadline, generation cancelled")
            emit(StreamFailed(kind=ErrorKind.REQUEST_TIMEOUT, message=REQUEST_TIMEOUT_MESSAGE))
        except WagerWizardError as e:
            logger.warning(f"Stream rejected ({e.kind}): {e.message}")
            emit(StreamFailed(kind=e.kind, message=e.message))
        except Exception as e:
            logger.error(f"Stream orchestration failed: {e}", exc_info=True)
            emit(StreamFailed(kind=ErrorKind.UNCLASSIFIED_FAULT, message=UNCLASSIFIED_FAULT_MESSAGE))
        finally:
            emit(None)

    async def _run(
        self,
        conversation: list[Message],
        llm_messages: list[LLMMessage],
        system_texts: list[str],
        emit: Callable[[StreamStep | None], None],
    ) -> None:
        system_prompt = get_system_prompt(system_texts)
        tools = self.tools_registry.get_llm_tools()
        response_parts: list[str] = []
        usage = LLMUsage()
        rounds = 0

        logger.info(f"Starting stream with {len(llm_messages)} messages, tools: {self.tools_registry.get_tool_names()}")

        while True:
            rounds += 1
            separator = self.config.round_separator if response_parts else ""
            completed: LLMMessageComplete | None = None

            events = self.llm_client.stream_message(llm_messages, system_prompt, list(tools.values()))
            async with aclosing(events):
                async for event in events:
                    if isinstance(event, LLMTextDelta):
                        if not event.text:
                            continue
                        text = separator + event.text
                        separator = ""
                        response_parts.append(text)
                        emit(TextDelta(text=text))
                    elif isinstance(event, LLMMessageComplete):
                        completed = event

            if completed is None:
                raise RuntimeError("Model stream ended without a completed message")

            usage.add(completed.usage)
            tool_uses = completed.tool_uses
            if completed.stop_reason != "tool_use" or not tool_uses:
                break

            logger.info(f"Round {rounds}: model requested {len(tool_uses)} tool call(s)")
            llm_messages.append(LLMMessage(role="assistant", content=_replayable(completed.content)))

            # Sequential: each result is in context before the next model round
            results: list[ContentBlock] = []
            for block in tool_uses:
                emit(ToolCallRequested(tool_use_id=block.id, name=block.name, input=block.input))
                step = await self._execute_tool(block, tools)
                emit(step)
                results.append(ToolResultBlock(tool_use_id=block.id, content=step.content, is_error=step.is_error))

            llm_messages.append(LLMMessage(role="user", content=results))

        response_text = "".join(response_parts)
        final_message = Message.from_text("assistant", response_text)
        logger.info(
            f"Stream completed in {rounds} round(s), {len(response_text)} chars, {usage.total_tokens} tokens "
            f"(in {usage.input_tokens}, out {usage.output_tokens}, cache hit {usage.cache_hit_rate:.0f}%)"
        )
        emit(StreamDone(message=final_message))

        self.persistence_sink.submit(last_user_text(conversation), response_text)

    async def _execute_tool(self, block: ToolUseBlock, tools: dict[str, LLMTool]) -> ToolResultAvailable:
        tool = tools.get(block.name)
        if tool is None:
            logger.error(f"Unknown tool requested: {block.name}")
            return ToolResultAvailable(
                tool_use_id=block.id, name=block.name, content=f"Error: Unknown tool {block.name}", is_error=True
            )

        logger.debug(f"Executing tool: {block.name} with input: {block.input}")
        try:
            async with asyncio.timeout(self.config.tool_timeout):
                result = await tool.callable(block.input)
        except TimeoutError:
            logger.warning(f"Tool {block.name} exceeded {self.config.tool_timeout}s deadline")
            result = ToolFailure(error=ErrorKind.TOOL_TIMEOUT, message=TOOL_TIMEOUT_MESSAGE)
        except Exception as e:
            logger.error(f"Tool {block.name} failed: {e}", exc_info=True)
            return ToolResultAvailable(tool_use_id=block.id, name=block.name, content=f"Error: {e!s}", is_error=True)

        error = result.error if isinstance(result, ToolFailure) else None
        logger.info(f"Tool {block.name} finished: {error or 'ok'}")
        return ToolResultAvailable(
            tool_use_id=block.id,
            name=block.name,
            content=result.as_model_content(),
            is_error=result.is_error,
            error=error,
        )


def _replayable(content: list[ContentBlock]) -> list[ContentBlock]:
    """Drop empty text blocks, which the API rejects when sent back."""
    return [block for block in content if not (isinstance(block, TextBlock) and not block.text)]
