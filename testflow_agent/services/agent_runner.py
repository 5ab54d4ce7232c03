"""Agent Runner — bounded tool-calling loop against the Copilot chat backend.

Invariants:
    - At most max_tool_calls tool executions per run(), counted across all rounds
    - Every attempted tool call yields exactly one ExecutionStep with a terminal status
    - Tool failures never abort the turn: they return to the model as "Error: ..." text
    - Tool calls of one response run sequentially, in the order the model requested them
    - History windowed (system kept + last N, orphan-free) before every re-submission
    - Tools are routed through the snapshot fetched at the start of the turn
    - Not reentrant: overlapping run() on one instance → AgentBusyError

Design Decisions:
    - Non-streaming completions for the tool path: tool calls arrive whole
    - Ceiling reached mid-response: only the executed calls are kept on the assistant
      message, so the re-submitted history stays consistent; later requests discarded
    - Session validity checked up front; re-authentication is the caller's concern
    - A tool call the backend sent without an id gets `call_<round>_<n>`, used on
      both the assistant and the tool message so windowing keeps the pair
    - Pure helpers live in agent_runner_helpers.py
"""

import logging

from testflow_agent.config import Settings
from testflow_agent.core.context_window import window_messages
from testflow_agent.core.domain_types import ToolCallId
from testflow_agent.core.errors import (
    AgentBusyError, ErrorContext, UnauthenticatedError,
)
from testflow_agent.core.execution_step import ExecutionStep
from testflow_agent.core.synthesize_action_code import synthesize_action_code
from testflow_agent.core.token_session import TokenSession
from testflow_agent.core.tool_result import ToolResult, truncate_for_model
from testflow_agent.core.tool_schema import as_function_schema
from testflow_agent.infrastructure.copilot_client import CopilotChatClient
from testflow_agent.services.agent_runner_helpers import (
    ChatResult, assistant_message, build_chat_result, first_message,
    parse_arguments, requested_tool_calls, result_succeeded, system_message,
    tool_message, user_message, with_call_ids,
)
from testflow_agent.services.system_prompt import DEFAULT_INSTRUCTIONS, build_system_prompt
from testflow_agent.services.tool_dispatch import ToolExecutor
from testflow_agent.services.tools_registry import ToolCatalog, ToolSnapshot

logger = logging.getLogger(__name__)


class AgentConversation:
    """One conversational session: prompt → tool rounds → final text + steps."""

    def __init__(
        self,
        client: CopilotChatClient,
        session: TokenSession,
        catalog: ToolCatalog,
        executor: ToolExecutor,
        settings: Settings,
        instructions: str = DEFAULT_INSTRUCTIONS,
    ):
        self.client = client
        self.session = session
        self.catalog = catalog
        self.executor = executor
        self.settings = settings
        self.instructions = instructions
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    async def run(
        self,
        message: str,
        tools_enabled: bool = True,
        max_tool_calls: int | None = None,
        model: str | None = None,
    ) -> ChatResult:
        if self._running:
            raise AgentBusyError()
        self._running = True
        try:
            return await self._run(
                message,
                tools_enabled,
                self.settings.agent_max_tool_calls if max_tool_calls is None else max_tool_calls,
                model,
            )
        finally:
            self._running = False

    async def _run(
        self, message: str, tools_enabled: bool, max_tool_calls: int, model: str | None,
    ) -> ChatResult:
        token = self._require_token()
        tools = await self.catalog.list_tools()
        schema = as_function_schema(tools) if tools_enabled and tools else None
        messages = [
            system_message(build_system_prompt(tools, tools_enabled, self.instructions)),
            user_message(message),
        ]

        round_number = 1
        response = await self.client.create_completion(
            token, messages, schema, model, ErrorContext(round_number=round_number),
        )
        reply = first_message(response)
        steps: list[ExecutionStep] = []
        executed = 0

        while schema and executed < max_tool_calls:
            calls = with_call_ids(requested_tool_calls(reply), round_number)
            if not calls:
                break
            batch = calls[: max_tool_calls - executed]
            if len(batch) < len(calls):
                logger.warning(
                    f"Tool-call ceiling reached; discarding {len(calls) - len(batch)} request(s)",
                    extra={"round_number": round_number},
                )
            messages.append(assistant_message(reply, batch))
            for call in batch:
                executed += 1
                step, content = await self._execute_call(tools, call, executed)
                steps.append(step)
                messages.append(tool_message(ToolCallId(call["id"]), content))

            round_number += 1
            windowed = window_messages(messages, self.settings.agent_history_window)
            response = await self.client.create_completion(
                token, windowed, schema, model, ErrorContext(round_number=round_number),
            )
            reply = first_message(response)

        logger.info(
            f"Chat completed after {executed} tool call(s)",
            extra={"round_number": round_number, "model": response.get("model")},
        )
        return build_chat_result(reply, response, steps, executed)

    async def _execute_call(
        self, tools: ToolSnapshot, call: dict, index: int,
    ) -> tuple[ExecutionStep, str]:
        """Run one tool call. Returns the finished step and the tool-message content."""
        function = call["function"]
        tool_name = str(function.get("name") or "")
        args, arg_error = parse_arguments(function.get("arguments"))
        step = ExecutionStep.start(index, tool_name, args)

        if arg_error:
            result = ToolResult.failure(arg_error)
        else:
            result = await self.executor.execute(tools, tool_name, args)

        content = result.to_message_content()
        code = synthesize_action_code(tool_name, args, content)
        step.finish(
            result_succeeded(result), content, code,
            self.settings.agent_step_excerpt_limit,
        )
        logger.info(
            f"Tool call → {step.status.value}",
            extra={
                "tool_name": tool_name,
                "tool_call_id": call.get("id"),
                "step_id": step.id,
            },
        )
        return step, truncate_for_model(content, self.settings.agent_tool_result_limit)

    def _require_token(self) -> str:
        if not self.session.is_valid() or not self.session.token:
            raise UnauthenticatedError()
        return self.session.token
